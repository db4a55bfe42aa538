"""SQLAlchemy ORM Models for Knowloop Database Schema"""
from knowloop.models.user import User
from knowloop.models.study_session import StudySession, SessionReview
from knowloop.models.booked_session import BookedSession
from knowloop.models.material import Material
from knowloop.models.transaction import Transaction
from knowloop.models.note import Note

__all__ = [
    "User",
    "StudySession",
    "SessionReview",
    "BookedSession",
    "Material",
    "Transaction",
    "Note",
]
