"""
Payment Ledger

Payment intents are created by the external processor (Stripe) and carry no
local state. Transactions are an append-only ledger; booking payment status
is reconciled separately through the Booking & Access Gate.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Protocol, Union

import stripe
from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import UpstreamError, ValidationError
from knowloop.models._common import utcnow
from knowloop.models.transaction import Transaction
from knowloop.services.identity import normalize_email

logger = logging.getLogger(__name__)

PAYMENT_METHOD_TYPES = ["card"]


Amount = Union[str, int, float, Decimal]

CENT = Decimal("0.01")
# Transaction.amount is Numeric(10, 2)
MAX_AMOUNT = Decimal("99999999.99")


def parse_amount(amount: Amount) -> Decimal:
    """
    Parse a base-currency amount, rounded half-up to cents.

    Raises:
        ValidationError: non-numeric, non-positive or too large
    """
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a positive number")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("Amount must be a positive number")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be a positive number")
    if value > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}")
    value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if value == 0:
        raise ValidationError("Amount must be at least 0.01")
    return value


def to_minor_units(amount: Amount) -> int:
    """Convert a base-currency amount to minor units (cents)"""
    return int(parse_amount(amount) * 100)


class PaymentProcessor(Protocol):
    async def create_payment_intent(self, amount_minor: int, currency: str) -> str:
        """Create an intent and return its client-side confirmation secret"""
        ...


class StripePaymentProcessor:
    """PaymentProcessor backed by Stripe PaymentIntents"""

    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    async def create_payment_intent(self, amount_minor: int, currency: Optional[str] = None) -> str:
        if not self.api_key:
            raise UpstreamError(
                "Payment processor is not configured",
                code="PAYMENT_UNAVAILABLE",
                status_code=status.HTTP_502_BAD_GATEWAY,
            )
        try:
            # stripe-python is synchronous; keep the event loop free
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=amount_minor,
                currency=currency or self.currency,
                payment_method_types=PAYMENT_METHOD_TYPES,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent failed: {e}", exc_info=True)
            raise UpstreamError(
                "Payment processor error",
                code="PAYMENT_ERROR",
                details=getattr(e, "user_message", None),
                status_code=status.HTTP_502_BAD_GATEWAY,
            ) from e
        return intent.client_secret


async def create_payment_intent(
    processor: PaymentProcessor,
    amount: Amount,
    currency: str = "usd",
) -> str:
    amount_minor = to_minor_units(amount)
    client_secret = await processor.create_payment_intent(amount_minor, currency)
    logger.info(f"Payment intent created for {amount_minor} {currency}")
    return client_secret


async def record_transaction(
    db: AsyncSession,
    student_email: str,
    session_id: uuid.UUID,
    amount: Amount,
    payment_reference: Optional[str] = None,
    session_title: Optional[str] = None,
    date: Optional[datetime] = None,
) -> Transaction:
    """Append a ledger entry. Not checked against the processor."""
    value = parse_amount(amount)
    transaction = Transaction(
        student_email=normalize_email(student_email),
        session_id=session_id,
        session_title=session_title,
        amount=value,
        date=date or utcnow(),
        payment_reference=payment_reference,
    )
    db.add(transaction)
    await db.flush()
    logger.info(f"Transaction {transaction.id} recorded for {transaction.student_email}")
    return transaction


async def list_transactions(db: AsyncSession, student_email: str) -> List[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.student_email == normalize_email(student_email))
        .order_by(Transaction.date.desc())
    )
    return list(result.scalars().all())
