"""
Integration tests for the Review Aggregator and the Payment Ledger
"""
import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from knowloop.errors import NotFoundError, ValidationError
from knowloop.services import payment_ledger, review_aggregator, session_lifecycle
from tests.conftest import FakePaymentProcessor, make_identity

TUTOR = make_identity("tutor@example.com")


async def _session(db):
    study_session = await session_lifecycle.create_session(db, TUTOR, {"title": "Organic Chemistry"})
    return await session_lifecycle.approve_session(db, study_session.id, "15")


@pytest.mark.asyncio
@pytest.mark.integration
class TestAddReview:

    async def test_new_session_has_zero_rating(self, db):
        study_session = await _session(db)
        assert study_session.average_rating == 0
        assert study_session.reviews == []

    async def test_average_recomputed_after_each_review(self, db):
        study_session = await _session(db)

        after_first = await review_aggregator.add_review(db, study_session.id, "Ana", "Great", 4)
        assert after_first.average_rating == 4.0

        after_second = await review_aggregator.add_review(db, study_session.id, "Ben", "Superb", 5)
        assert after_second.average_rating == 4.5
        assert len(after_second.reviews) == 2

    async def test_reviews_keep_submission_order(self, db):
        study_session = await _session(db)
        for name, rating in (("first", 3), ("second", 5), ("third", 4)):
            await review_aggregator.add_review(db, study_session.id, name, None, rating)

        reloaded = await session_lifecycle.get_session(db, study_session.id, for_update=True)

        assert [r.student_name for r in reloaded.reviews] == ["first", "second", "third"]
        assert [r.position for r in reloaded.reviews] == [0, 1, 2]
        assert reloaded.average_rating == 4.0

    async def test_rounds_to_one_decimal(self, db):
        study_session = await _session(db)
        for rating in (5, 4, 4):
            updated = await review_aggregator.add_review(db, study_session.id, None, None, rating)

        assert updated.average_rating == 4.3

    async def test_out_of_range_rating_leaves_session_untouched(self, db):
        study_session = await _session(db)

        with pytest.raises(ValidationError):
            await review_aggregator.add_review(db, study_session.id, "Eve", "bad", 6)

        assert study_session.reviews == []
        assert study_session.average_rating == 0

    async def test_review_for_missing_session(self, db):
        with pytest.raises(NotFoundError):
            await review_aggregator.add_review(db, uuid.uuid4(), "Eve", "?", 3)


@pytest.mark.asyncio
@pytest.mark.integration
class TestLedger:

    async def test_transactions_listed_newest_first(self, db):
        session_id = uuid.uuid4()
        await payment_ledger.record_transaction(
            db, "student@example.com", session_id, 10, session_title="Old", date=datetime(2026, 1, 1)
        )
        await payment_ledger.record_transaction(
            db, "student@example.com", session_id, 30, session_title="Newest", date=datetime(2026, 3, 1)
        )
        await payment_ledger.record_transaction(
            db, "student@example.com", session_id, 20, session_title="Middle", date=datetime(2026, 2, 1)
        )
        await payment_ledger.record_transaction(
            db, "someone.else@example.com", session_id, 99, date=datetime(2026, 4, 1)
        )

        transactions = await payment_ledger.list_transactions(db, "Student@Example.com")

        assert [t.session_title for t in transactions] == ["Newest", "Middle", "Old"]

    async def test_record_keeps_amount_and_reference(self, db):
        transaction = await payment_ledger.record_transaction(
            db, "student@example.com", uuid.uuid4(), "25.555", payment_reference="pi_123"
        )
        await db.refresh(transaction)

        assert transaction.amount == Decimal("25.56")
        assert transaction.to_dict()["amount"] == 25.56
        assert transaction.payment_reference == "pi_123"
        assert transaction.date is not None

    @pytest.mark.parametrize("amount", [0, "-1", "1e12"])
    async def test_record_rejects_out_of_range_amount(self, db, amount):
        with pytest.raises(ValidationError):
            await payment_ledger.record_transaction(db, "student@example.com", uuid.uuid4(), amount)

    async def test_unknown_student_has_empty_ledger(self, db):
        assert await payment_ledger.list_transactions(db, "nobody@example.com") == []


@pytest.mark.asyncio
class TestPaymentIntent:

    async def test_amount_sent_in_minor_units(self):
        processor = FakePaymentProcessor()

        secret = await payment_ledger.create_payment_intent(processor, 25)

        assert secret == "pi_test_2500_secret"
        assert processor.calls == [(2500, "usd")]

    async def test_invalid_amount_never_reaches_processor(self):
        processor = FakePaymentProcessor()

        with pytest.raises(ValidationError):
            await payment_ledger.create_payment_intent(processor, -5)

        assert processor.calls == []

    async def test_unconfigured_stripe_is_upstream_error(self):
        from knowloop.errors import UpstreamError

        processor = payment_ledger.StripePaymentProcessor(api_key="")

        with pytest.raises(UpstreamError) as exc_info:
            await processor.create_payment_intent(2500)

        assert exc_info.value.status_code == 502
        assert exc_info.value.code == "PAYMENT_UNAVAILABLE"
