"""StudySession model - Tutor-proposed sessions moving through admin approval"""
from sqlalchemy import Column, String, Text, Float, Integer, DateTime, ForeignKey, Uuid, Index, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class StudySession(Base):
    """
    Study session with approval status, fee and aggregated rating.

    status is one of pending/approved/rejected; rejection_reason and
    rejection_feedback are only populated while the session is rejected.
    """

    __tablename__ = "study_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tutor_name = Column(String(255), nullable=True)
    tutor_email = Column(String(255), nullable=False)
    registration_start_date = Column(DateTime(timezone=True), nullable=True)
    registration_end_date = Column(DateTime(timezone=True), nullable=True)
    class_start_date = Column(DateTime(timezone=True), nullable=True)
    class_end_date = Column(DateTime(timezone=True), nullable=True)
    duration = Column(String(50), nullable=True)
    fee = Column(String(32), nullable=False, default="0")
    status = Column(String(20), nullable=False, default="pending")
    rejection_reason = Column(Text, nullable=True)
    rejection_feedback = Column(Text, nullable=True)
    average_rating = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    reviews = relationship(
        "SessionReview",
        order_by="SessionReview.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_study_sessions_status_start", "status", "registration_start_date"),
        Index("idx_study_sessions_tutor", "tutor_email"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "tutor_name": self.tutor_name,
            "tutor_email": self.tutor_email,
            "registration_start_date": isoformat(self.registration_start_date),
            "registration_end_date": isoformat(self.registration_end_date),
            "class_start_date": isoformat(self.class_start_date),
            "class_end_date": isoformat(self.class_end_date),
            "duration": self.duration,
            "fee": self.fee,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "rejection_feedback": self.rejection_feedback,
            "reviews": [review.to_dict() for review in self.reviews],
            "average_rating": self.average_rating,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<StudySession(id={self.id}, status={self.status}, fee={self.fee})>"


class SessionReview(Base):
    """One entry of a session's append-only review list"""

    __tablename__ = "session_reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid,
        ForeignKey("study_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False)
    student_name = Column(String(255), nullable=True)
    review_text = Column(Text, nullable=True)
    rating = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("session_id", "position", name="uq_session_reviews_position"),
    )

    def to_dict(self):
        return {
            "student_name": self.student_name,
            "review_text": self.review_text,
            "rating": self.rating,
        }
