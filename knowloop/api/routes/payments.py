"""
Payment API Endpoints

POST  /create-payment-intent       - Processor client secret for an amount
POST  /transactions                - Record a ledger entry
GET   /transactions?email=         - Caller's transactions, newest first
PATCH /sessions/payment/{id}       - Reconcile a booking's payment status
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity
from knowloop.api.responses import ok
from knowloop.database import get_db
from knowloop.services import booking_gate, payment_ledger
from knowloop.services.authorization import Role, check_self, is_self, require_role
from knowloop.services.booking_gate import PaymentStatus
from knowloop.services.identity import Identity

router = APIRouter(tags=["payments"])


class PaymentIntentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class TransactionRequest(BaseModel):
    session_id: uuid.UUID
    amount: Decimal = Field(..., gt=0)
    student_email: Optional[str] = None
    session_title: Optional[str] = Field(None, max_length=255)
    payment_reference: Optional[str] = Field(None, max_length=255)
    date: Optional[datetime] = None


class PaymentStatusRequest(BaseModel):
    payment_status: PaymentStatus = PaymentStatus.PAID
    student_email: Optional[str] = None


@router.post("/create-payment-intent")
async def create_payment_intent(
    request: PaymentIntentRequest,
    http_request: Request,
    identity: Identity = Depends(get_current_identity),
) -> Dict[str, Any]:
    state = http_request.app.state
    client_secret = await payment_ledger.create_payment_intent(
        state.payment_processor, request.amount, currency=state.settings.payment_currency
    )
    return ok("Payment intent created", client_secret=client_secret)


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
async def record_transaction(
    request: TransactionRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    if request.student_email is not None:
        check_self(identity, request.student_email)
    transaction = await payment_ledger.record_transaction(
        db,
        identity.email,
        request.session_id,
        request.amount,
        payment_reference=request.payment_reference,
        session_title=request.session_title,
        date=request.date,
    )
    return ok("Transaction recorded", inserted_id=str(transaction.id), data=transaction.to_dict())


@router.get("/transactions")
async def list_transactions(
    email: str = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    transactions = await payment_ledger.list_transactions(db, email)
    return ok("Transactions fetched", data=[t.to_dict() for t in transactions])


@router.patch("/sessions/payment/{session_id}")
async def mark_booking_paid(
    session_id: uuid.UUID,
    request: PaymentStatusRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """The booking's own student, or an admin, may reconcile its payment status"""
    student_email = request.student_email or identity.email
    if not is_self(identity, student_email):
        await require_role(db, identity, Role.ADMIN)

    booking = await booking_gate.set_payment_status(db, student_email, session_id, request.payment_status)
    return ok("Payment status updated", data=booking.to_dict())
