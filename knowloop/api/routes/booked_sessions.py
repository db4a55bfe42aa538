"""
Booking API Endpoints

POST   /booked-sessions                             - Book a session for the caller
GET    /booked-sessions/user/{email}                - Caller's bookings
GET    /booked-sessions/check?email=&session_id=    - Already-booked check
GET    /booked-sessions/access?email=&session_id=   - Material access decision
DELETE /booked-sessions?email=&session_id=          - Cancel an unpaid booking
"""
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity
from knowloop.api.responses import EnvelopeResponse, ok
from knowloop.database import get_db
from knowloop.services import booking_gate
from knowloop.services.authorization import check_self
from knowloop.services.identity import Identity

router = APIRouter(prefix="/booked-sessions", tags=["bookings"])


class BookingRequest(BaseModel):
    session_id: uuid.UUID
    student_email: Optional[str] = None
    student_name: Optional[str] = Field(None, max_length=255)


class BookingResponse(EnvelopeResponse):
    """Response carrying one booking"""
    data: Dict[str, Any]


class BookingListResponse(EnvelopeResponse):
    """Response for GET /booked-sessions/user/{email}"""
    data: List[Dict[str, Any]]


class BookingCheckResponse(EnvelopeResponse):
    """Response for GET /booked-sessions/check"""
    booked: bool
    data: Optional[Dict[str, Any]] = None


class AccessResponse(EnvelopeResponse):
    """Response for GET /booked-sessions/access"""
    access: bool


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookingResponse)
async def book_session(
    request: BookingRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Book a session for the caller. Payment, if any, happens afterwards.

    Args:
        request: Session to book; student_email, when given, must be the caller

    Returns:
        The new booking, unpaid

    Raises:
        403: student_email is someone else
        404: No such session
        409: Already booked
    """
    if request.student_email is not None:
        check_self(identity, request.student_email)
    booking = await booking_gate.book_session(
        db, identity.email, request.session_id, student_name=request.student_name
    )
    return ok("Session booked", data=booking.to_dict())


@router.get("/user/{email}", response_model=BookingListResponse)
async def list_bookings(
    email: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Caller's bookings, newest first"""
    check_self(identity, email)
    bookings = await booking_gate.list_bookings(db, email)
    return ok("Bookings fetched", data=[booking.to_dict() for booking in bookings])


@router.get("/check", response_model=BookingCheckResponse)
async def check_booking(
    email: str = Query(...),
    session_id: uuid.UUID = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Whether the caller already booked the session, whatever its payment state"""
    check_self(identity, email)
    booking = await booking_gate.find_booking(db, email, session_id)
    return ok(
        "Booking checked",
        booked=booking is not None,
        data=booking.to_dict() if booking is not None else None,
    )


@router.get("/access", response_model=AccessResponse)
async def check_access(
    email: str = Query(...),
    session_id: uuid.UUID = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Material access decision for the caller.

    Returns:
        access: true iff a booking exists and the session is free or the booking is paid
    """
    check_self(identity, email)
    access = await booking_gate.can_access_materials(db, email, session_id)
    return ok("Access checked", access=access)


@router.delete("", response_model=EnvelopeResponse)
async def cancel_booking(
    email: str = Query(...),
    session_id: uuid.UUID = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Cancel the caller's unpaid booking.

    Raises:
        403: email is someone else
        404: No booking exists
        409: The booking is paid and cannot be canceled
    """
    check_self(identity, email)
    await booking_gate.cancel_booking(db, email, session_id)
    return ok("Booking canceled")
