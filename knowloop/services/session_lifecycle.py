"""
Session Lifecycle Engine

Owns the approval state machine of a study session:

    (create) -> pending
    pending  -> approved   admin approve, sets the fee
    pending  -> rejected   admin reject, records reason + feedback
    rejected -> pending    owning tutor resends

Price updates mutate the fee without touching status. No other edge is
reachable; attempts raise ConflictError.
"""
import logging
import uuid
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import ConflictError, NotFoundError, ValidationError
from knowloop.models.study_session import StudySession
from knowloop.services.authorization import ensure_owner
from knowloop.services.identity import Identity

logger = logging.getLogger(__name__)

FREE_FEE = "Free"
DEFAULT_FEE = "0"
MAX_FEE_LENGTH = StudySession.__table__.c.fee.type.length

# Client-editable fields accepted on creation; everything else is server-owned
CREATE_FIELDS = (
    "title",
    "description",
    "tutor_name",
    "registration_start_date",
    "registration_end_date",
    "class_start_date",
    "class_end_date",
    "duration",
)


class SessionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS = {
    (None, SessionStatus.PENDING),
    (SessionStatus.PENDING, SessionStatus.APPROVED),
    (SessionStatus.PENDING, SessionStatus.REJECTED),
    (SessionStatus.REJECTED, SessionStatus.PENDING),
}


def can_transition(current: Optional[SessionStatus], target: SessionStatus) -> bool:
    return (current, target) in ALLOWED_TRANSITIONS


def normalize_fee(value: Union[str, int, float, None], default: Optional[str] = DEFAULT_FEE) -> str:
    """
    Canonicalise a fee to its stored string form.

    "free" in any case becomes the "Free" sentinel; numbers lose trailing
    zeros ("30.0" -> "30"). Missing values fall back to default.

    Raises:
        ValidationError: negative, non-finite, non-numeric or overlong fee, or missing without default
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValidationError("Fee is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"Invalid fee: {value!r}")
    if isinstance(value, str) and value.strip().lower() == FREE_FEE.lower():
        return FREE_FEE

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid fee: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Invalid fee: {value!r}")
    if amount == 0:
        return DEFAULT_FEE
    # Bound the magnitude before expanding the exponent
    fee = format(amount, "f") if abs(amount.adjusted()) < MAX_FEE_LENGTH else ""
    if "." in fee:
        fee = fee.rstrip("0").rstrip(".")
    if not fee or len(fee) > MAX_FEE_LENGTH:
        raise ValidationError(f"Fee must fit in {MAX_FEE_LENGTH} characters", details={"fee": str(value)})
    return fee


def is_free(fee: Optional[str]) -> bool:
    return fee == FREE_FEE


async def get_session(db: AsyncSession, session_id: uuid.UUID, for_update: bool = False) -> StudySession:
    query = select(StudySession).where(StudySession.id == session_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    study_session = result.scalar_one_or_none()
    if study_session is None:
        raise NotFoundError("Study session not found")
    return study_session


def _transition(study_session: StudySession, target: SessionStatus, message: str) -> None:
    current = SessionStatus(study_session.status)
    if not can_transition(current, target):
        raise ConflictError(message, details={"status": current.value})
    study_session.status = target.value
    logger.info(f"Session {study_session.id}: {current.value} -> {target.value}")


async def list_sessions(
    db: AsyncSession,
    status: Optional[str] = None,
    tutor_email: Optional[str] = None,
) -> List[StudySession]:
    """
    List sessions, earliest registration start first.

    status=None lists approved sessions only; status="all" drops the filter.
    Ties keep insertion order.
    """
    query = select(StudySession)
    if tutor_email:
        query = query.where(StudySession.tutor_email == tutor_email.strip().lower())
    if status is None:
        query = query.where(StudySession.status == SessionStatus.APPROVED.value)
    elif status != "all":
        try:
            wanted = SessionStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status filter: {status}")
        query = query.where(StudySession.status == wanted.value)

    query = query.order_by(
        StudySession.registration_start_date.asc().nulls_last(),
        StudySession.created_at.asc(),
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_session(db: AsyncSession, tutor: Identity, payload: Dict[str, Any]) -> StudySession:
    """
    Create a session owned by the calling tutor.

    The result is always pending with an empty review list and a 0 rating,
    whatever status/reviews/rating the payload carries.
    """
    if not (payload.get("title") or "").strip():
        raise ValidationError("Title is required")

    fields = {name: payload.get(name) for name in CREATE_FIELDS if payload.get(name) is not None}
    study_session = StudySession(
        **fields,
        tutor_email=tutor.email,
        fee=normalize_fee(payload.get("fee")),
        status=SessionStatus.PENDING.value,
        average_rating=0,
        reviews=[],
    )
    db.add(study_session)
    await db.flush()
    logger.info(f"Session {study_session.id} created by {tutor.email} (pending)")
    return study_session


async def approve_session(db: AsyncSession, session_id: uuid.UUID, fee: Union[str, int, float]) -> StudySession:
    approved_fee = normalize_fee(fee, default=None)
    study_session = await get_session(db, session_id, for_update=True)
    _transition(study_session, SessionStatus.APPROVED, "Only pending sessions can be approved")
    study_session.fee = approved_fee
    study_session.rejection_reason = None
    study_session.rejection_feedback = None
    await db.flush()
    return study_session


async def reject_session(
    db: AsyncSession,
    session_id: uuid.UUID,
    reason: str,
    feedback: Optional[str],
) -> StudySession:
    if not (reason or "").strip():
        raise ValidationError("Rejection reason is required")
    study_session = await get_session(db, session_id, for_update=True)
    _transition(study_session, SessionStatus.REJECTED, "Only pending sessions can be rejected")
    study_session.rejection_reason = reason
    study_session.rejection_feedback = feedback
    await db.flush()
    return study_session


async def resend_session(db: AsyncSession, tutor: Identity, session_id: uuid.UUID) -> StudySession:
    """Move the tutor's own rejected session back to pending"""
    study_session = await get_session(db, session_id, for_update=True)
    ensure_owner(tutor, study_session.tutor_email, resource="session")
    _transition(study_session, SessionStatus.PENDING, "Session not found or already pending.")
    study_session.rejection_reason = None
    study_session.rejection_feedback = None
    await db.flush()
    return study_session


async def update_price(db: AsyncSession, session_id: uuid.UUID, price: Union[str, int, float]) -> StudySession:
    study_session = await get_session(db, session_id, for_update=True)
    study_session.fee = normalize_fee(price, default=None)
    await db.flush()
    logger.info(f"Session {session_id} fee set to {study_session.fee}")
    return study_session


async def delete_session(db: AsyncSession, session_id: uuid.UUID) -> None:
    study_session = await get_session(db, session_id)
    await db.delete(study_session)
    await db.flush()
    logger.info(f"Session {session_id} deleted")
