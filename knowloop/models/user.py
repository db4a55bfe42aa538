"""User model - Marketplace accounts keyed by email"""
from sqlalchemy import Column, String, DateTime, Uuid, Index
import uuid

from knowloop.database import Base
from knowloop.models._common import utcnow, isoformat


class User(Base):
    """Account created on first sign-in; role gates every protected operation"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    photo = Column(String(1024), nullable=True)
    role = Column(String(20), nullable=False, default="student")
    last_login = Column(DateTime(timezone=True), nullable=True, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "photo": self.photo,
            "role": self.role,
            "last_login": isoformat(self.last_login),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<User(email={self.email}, role={self.role})>"
