"""
Booking & Access Gate

A student may see a session's materials iff a booking exists for
(student, session) AND the session is free or the booking is paid.
Bookings pointing at a deleted session grant nothing.
"""
import logging
import uuid
from enum import Enum
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import ConflictError, NotFoundError
from knowloop.models.booked_session import BookedSession
from knowloop.models.study_session import StudySession
from knowloop.services.identity import normalize_email
from knowloop.services.session_lifecycle import get_session, is_free

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


def grants_access(booking: Optional[BookedSession], study_session: Optional[StudySession]) -> bool:
    """Access predicate over an already-loaded booking and session"""
    if booking is None or study_session is None:
        return False
    return is_free(study_session.fee) or booking.payment_status == PaymentStatus.PAID.value


async def find_booking(
    db: AsyncSession,
    student_email: str,
    session_id: uuid.UUID,
) -> Optional[BookedSession]:
    result = await db.execute(
        select(BookedSession).where(
            BookedSession.session_id == session_id,
            BookedSession.student_email == normalize_email(student_email),
        )
    )
    return result.scalar_one_or_none()


async def can_access_materials(db: AsyncSession, student_email: str, session_id: uuid.UUID) -> bool:
    booking = await find_booking(db, student_email, session_id)
    if booking is None:
        return False
    study_session = await db.get(StudySession, session_id)
    return grants_access(booking, study_session)


async def accessible_session_ids(db: AsyncSession, student_email: str) -> List[uuid.UUID]:
    """Session ids whose materials the student may read, evaluating the gate per booking"""
    result = await db.execute(
        select(BookedSession, StudySession)
        .outerjoin(StudySession, StudySession.id == BookedSession.session_id)
        .where(BookedSession.student_email == normalize_email(student_email))
    )
    return [
        booking.session_id
        for booking, study_session in result.all()
        if grants_access(booking, study_session)
    ]


async def book_session(
    db: AsyncSession,
    student_email: str,
    session_id: uuid.UUID,
    student_name: Optional[str] = None,
) -> BookedSession:
    """
    Book a session for a student. No fee check: payment happens afterwards.

    Raises:
        NotFoundError: The session does not exist
        ConflictError: The student already booked this session
    """
    study_session = await get_session(db, session_id)
    if await find_booking(db, student_email, session_id) is not None:
        raise ConflictError("already booked")

    booking = BookedSession(
        session_id=session_id,
        student_email=normalize_email(student_email),
        student_name=student_name,
        tutor_email=study_session.tutor_email,
        payment_status=PaymentStatus.UNPAID.value,
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request inserted the same (session, student) pair
        raise ConflictError("already booked")
    logger.info(f"{booking.student_email} booked session {session_id}")
    return booking


async def list_bookings(db: AsyncSession, student_email: str) -> List[BookedSession]:
    result = await db.execute(
        select(BookedSession)
        .where(BookedSession.student_email == normalize_email(student_email))
        .order_by(BookedSession.created_at.desc())
    )
    return list(result.scalars().all())


async def cancel_booking(db: AsyncSession, student_email: str, session_id: uuid.UUID) -> None:
    """
    Delete an unpaid booking. Paid bookings are never removed.

    Raises:
        ConflictError: The booking is paid
        NotFoundError: No booking exists
    """
    result = await db.execute(
        delete(BookedSession).where(
            BookedSession.session_id == session_id,
            BookedSession.student_email == normalize_email(student_email),
            BookedSession.payment_status == PaymentStatus.UNPAID.value,
        )
    )
    if result.rowcount > 0:
        logger.info(f"{student_email} canceled booking for session {session_id}")
        return

    if await find_booking(db, student_email, session_id) is not None:
        raise ConflictError("No unpaid booking found to cancel")
    raise NotFoundError("No unpaid booking found to cancel")


async def set_payment_status(
    db: AsyncSession,
    student_email: str,
    session_id: uuid.UUID,
    payment_status: PaymentStatus = PaymentStatus.PAID,
) -> BookedSession:
    booking = await find_booking(db, student_email, session_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    booking.payment_status = payment_status.value
    await db.flush()
    logger.info(f"Booking {booking.id} payment status -> {payment_status.value}")
    return booking
