"""Note model - Private study notes"""
from sqlalchemy import Column, String, Text, DateTime, Uuid, Index
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class Note(Base):
    __tablename__ = "notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_notes_email", "email"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "email": self.email,
            "title": self.title,
            "description": self.description,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
