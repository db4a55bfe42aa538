"""Column helpers shared by the ORM models"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value is not None else None
