"""
Study Session API Endpoints

GET    /sessions                 - List sessions (approved by default)
GET    /sessions/{id}            - Session detail
POST   /study-sessions           - Tutor proposes a session (always pending)
PATCH  /sessions/resend/{id}     - Tutor resends a rejected session
PATCH  /sessions/approve/{id}    - Admin approves and sets the fee
PATCH  /sessions/reject/{id}     - Admin rejects with reason + feedback
PATCH  /sessions/{id}            - Admin updates the fee
DELETE /sessions/{id}            - Admin deletes a session
POST   /sessions/review/{id}     - Submit a review
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity, get_optional_identity, require_admin, require_tutor
from knowloop.api.responses import EnvelopeResponse, ok
from knowloop.database import get_db
from knowloop.errors import UnauthenticatedError
from knowloop.services import review_aggregator, session_lifecycle
from knowloop.services.authorization import Role, is_self, require_role
from knowloop.services.identity import Identity
from knowloop.services.session_lifecycle import SessionStatus

router = APIRouter(tags=["sessions"])

Fee = Union[str, float]


class SessionCreateRequest(BaseModel):
    """Tutor proposal; status/reviews/rating in the body are ignored"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    tutor_name: Optional[str] = Field(None, max_length=255)
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    class_start_date: Optional[datetime] = None
    class_end_date: Optional[datetime] = None
    duration: Optional[str] = Field(None, max_length=50)
    fee: Optional[Fee] = None


class ApproveRequest(BaseModel):
    fee: Fee


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    feedback: Optional[str] = None


class PriceUpdateRequest(BaseModel):
    price: Fee


class ReviewRequest(BaseModel):
    student_name: Optional[str] = Field(None, max_length=255)
    review_text: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)


class SessionResponse(EnvelopeResponse):
    """Response carrying one session"""
    data: Dict[str, Any]


class SessionCreatedResponse(SessionResponse):
    """Response for POST /study-sessions"""
    inserted_id: str


class SessionListResponse(EnvelopeResponse):
    """Response for GET /sessions"""
    data: List[Dict[str, Any]]


class ReviewResponse(EnvelopeResponse):
    """Response for POST /sessions/review/{id}"""
    updated: bool
    average_rating: float
    review_count: int


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    status: Optional[str] = Query(None, description="approved (default), pending, rejected or all"),
    email: Optional[str] = Query(None, description="Filter by tutor email"),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    List sessions, earliest registration start first.

    Approved sessions are public. Other statuses are visible to admins,
    and to a tutor filtering by their own email.

    Args:
        status: Status filter; "all" drops it
        email: Tutor email filter

    Raises:
        400: Unknown status
        401: Non-approved listing without a token
        403: Non-approved listing by a non-admin for someone else's sessions
    """
    if status not in (None, SessionStatus.APPROVED.value):
        if identity is None:
            raise UnauthenticatedError("unauthorized access", code="AUTH_001")
        if not is_self(identity, email):
            await require_role(db, identity, Role.ADMIN)

    sessions = await session_lifecycle.list_sessions(db, status=status, tutor_email=email)
    return ok("Sessions fetched", data=[s.to_dict() for s in sessions])


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """
    Session detail including its reviews.

    Raises:
        400: Malformed id
        404: No such session
    """
    study_session = await session_lifecycle.get_session(db, session_id)
    return ok("Session fetched", data=study_session.to_dict())


@router.post("/study-sessions", response_model=SessionCreatedResponse)
async def create_session(
    request: SessionCreateRequest,
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Propose a session owned by the calling tutor.

    Returns:
        The new session, always pending with no reviews

    Raises:
        400: Missing title or invalid fee
        403: Caller is not a tutor
    """
    study_session = await session_lifecycle.create_session(db, tutor, request.model_dump())
    return ok("Session created", inserted_id=str(study_session.id), data=study_session.to_dict())


@router.patch("/sessions/resend/{session_id}", response_model=SessionResponse)
async def resend_session(
    session_id: uuid.UUID,
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Move the tutor's own rejected session back to pending.

    Raises:
        403: Caller is not the owning tutor
        404: No such session
        409: Session is not rejected
    """
    study_session = await session_lifecycle.resend_session(db, tutor, session_id)
    return ok("Approval request resent successfully.", data=study_session.to_dict())


@router.patch("/sessions/approve/{session_id}", response_model=SessionResponse)
async def approve_session(
    session_id: uuid.UUID,
    request: ApproveRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Approve a pending session and set its fee.

    Args:
        session_id: Session to approve
        request: Fee, a non-negative number or "Free"

    Raises:
        400: Invalid fee
        403: Caller is not an admin
        404: No such session
        409: Session is not pending
    """
    study_session = await session_lifecycle.approve_session(db, session_id, request.fee)
    return ok("Session approved", data=study_session.to_dict())


@router.patch("/sessions/reject/{session_id}", response_model=SessionResponse)
async def reject_session(
    session_id: uuid.UUID,
    request: RejectRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Reject a pending session, recording the reason and optional feedback.

    Raises:
        400: Missing reason
        403: Caller is not an admin
        404: No such session
        409: Session is not pending
    """
    study_session = await session_lifecycle.reject_session(db, session_id, request.reason, request.feedback)
    return ok("Session rejected", data=study_session.to_dict())


@router.post("/sessions/review/{session_id}", response_model=ReviewResponse)
async def add_review(
    session_id: uuid.UUID,
    request: ReviewRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    Append a review and recompute the session's average rating.

    Returns:
        The new average and review count

    Raises:
        400: Rating outside 1-5
        404: No such session
    """
    study_session = await review_aggregator.add_review(
        db, session_id, request.student_name, request.review_text, request.rating
    )
    return ok(
        "Review submitted",
        updated=True,
        average_rating=study_session.average_rating,
        review_count=len(study_session.reviews),
    )


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
async def update_price(
    session_id: uuid.UUID,
    request: PriceUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    study_session = await session_lifecycle.update_price(db, session_id, request.price)
    return ok("Session fee updated", data=study_session.to_dict())


@router.delete("/sessions/{session_id}", response_model=EnvelopeResponse)
async def delete_session(
    session_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    await session_lifecycle.delete_session(db, session_id)
    return ok("Session deleted")
