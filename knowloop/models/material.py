"""Material model - Study material links uploaded by a session's tutor"""
from sqlalchemy import Column, String, DateTime, Uuid, Index
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class Material(Base):
    __tablename__ = "materials"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, nullable=False)
    tutor_email = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    link = Column(String(2048), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_materials_session", "session_id"),
        Index("idx_materials_tutor", "tutor_email"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "session_id": str(self.session_id),
            "tutor_email": self.tutor_email,
            "title": self.title,
            "link": self.link,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Material(id={self.id}, session={self.session_id}, title={self.title})>"
