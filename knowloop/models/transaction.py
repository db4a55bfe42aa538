"""Transaction model - Append-only payment ledger"""
from sqlalchemy import Column, String, Numeric, DateTime, Uuid, Index
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class Transaction(Base):
    """Ledger entry; inserted once and never updated"""

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_email = Column(String(255), nullable=False)
    session_id = Column(Uuid, nullable=False)
    session_title = Column(String(255), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    payment_reference = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_transactions_student_date", "student_email", "date"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "student_email": self.student_email,
            "session_id": str(self.session_id),
            "session_title": self.session_title,
            "amount": float(self.amount) if self.amount is not None else None,
            "date": isoformat(self.date),
            "payment_reference": self.payment_reference,
        }

    def __repr__(self):
        return f"<Transaction(student={self.student_email}, session={self.session_id}, amount={self.amount})>"
