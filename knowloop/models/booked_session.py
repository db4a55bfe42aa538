"""BookedSession model - A student's booking of a study session"""
from sqlalchemy import Column, String, DateTime, Uuid, Index, UniqueConstraint
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class BookedSession(Base):
    """
    Booking with payment status (unpaid/paid).

    session_id is a lookup reference only; the session may be deleted
    later and the access gate treats such bookings as denied.
    """

    __tablename__ = "booked_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, nullable=False)
    student_email = Column(String(255), nullable=False)
    student_name = Column(String(255), nullable=True)
    tutor_email = Column(String(255), nullable=True)
    payment_status = Column(String(10), nullable=False, default="unpaid")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("session_id", "student_email", name="uq_booked_sessions_session_student"),
        Index("idx_booked_sessions_student", "student_email"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "session_id": str(self.session_id),
            "student_email": self.student_email,
            "student_name": self.student_name,
            "tutor_email": self.tutor_email,
            "payment_status": self.payment_status,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<BookedSession(session={self.session_id}, student={self.student_email}, {self.payment_status})>"
