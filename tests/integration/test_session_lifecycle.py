"""
Integration tests for the Session Lifecycle Engine against SQLite
"""
from datetime import datetime

import pytest

from knowloop.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from knowloop.services import session_lifecycle
from tests.conftest import make_identity

TUTOR = make_identity("tutor@example.com")
OTHER_TUTOR = make_identity("other.tutor@example.com")


async def _create(db, tutor=TUTOR, **payload):
    payload.setdefault("title", "Linear Algebra")
    return await session_lifecycle.create_session(db, tutor, payload)


@pytest.mark.asyncio
@pytest.mark.integration
class TestCreateSession:

    async def test_status_forced_to_pending(self, db):
        """Client-supplied status/reviews/rating are ignored"""
        study_session = await _create(
            db, fee="25", status="approved", average_rating=5, reviews=[{"rating": 5}]
        )

        assert study_session.status == "pending"
        assert study_session.fee == "25"
        assert study_session.reviews == []
        assert study_session.average_rating == 0
        assert study_session.tutor_email == "tutor@example.com"

    async def test_fee_defaults_to_zero(self, db):
        study_session = await _create(db)
        assert study_session.fee == "0"

    async def test_title_required(self, db):
        with pytest.raises(ValidationError):
            await _create(db, title="  ")


@pytest.mark.asyncio
@pytest.mark.integration
class TestTransitions:

    async def test_approve_sets_fee_and_status(self, db):
        study_session = await _create(db, fee="10")

        approved = await session_lifecycle.approve_session(db, study_session.id, 30)

        assert approved.status == "approved"
        assert approved.fee == "30"

    async def test_reject_records_reason_and_feedback(self, db):
        study_session = await _create(db)

        rejected = await session_lifecycle.reject_session(
            db, study_session.id, "Too short", "Add a syllabus"
        )

        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Too short"
        assert rejected.rejection_feedback == "Add a syllabus"

    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_reject_requires_reason(self, db, reason):
        study_session = await _create(db)

        with pytest.raises(ValidationError):
            await session_lifecycle.reject_session(db, study_session.id, reason, "feedback")

        assert study_session.status == "pending"

    async def test_resend_moves_rejected_back_to_pending(self, db):
        study_session = await _create(db)
        await session_lifecycle.reject_session(db, study_session.id, "r", "f")

        resent = await session_lifecycle.resend_session(db, TUTOR, study_session.id)

        assert resent.status == "pending"
        assert resent.rejection_reason is None
        assert resent.rejection_feedback is None

    async def test_resend_pending_is_conflict(self, db):
        study_session = await _create(db)

        with pytest.raises(ConflictError, match="already pending"):
            await session_lifecycle.resend_session(db, TUTOR, study_session.id)
        assert study_session.status == "pending"

    async def test_resend_approved_is_conflict(self, db):
        study_session = await _create(db)
        await session_lifecycle.approve_session(db, study_session.id, "Free")

        with pytest.raises(ConflictError):
            await session_lifecycle.resend_session(db, TUTOR, study_session.id)

    async def test_resend_by_other_tutor_is_forbidden(self, db):
        study_session = await _create(db)
        await session_lifecycle.reject_session(db, study_session.id, "r", "f")

        with pytest.raises(ForbiddenError):
            await session_lifecycle.resend_session(db, OTHER_TUTOR, study_session.id)

    async def test_approve_twice_is_conflict(self, db):
        study_session = await _create(db)
        await session_lifecycle.approve_session(db, study_session.id, 20)

        with pytest.raises(ConflictError):
            await session_lifecycle.approve_session(db, study_session.id, 25)

    async def test_reject_approved_is_conflict(self, db):
        study_session = await _create(db)
        await session_lifecycle.approve_session(db, study_session.id, 20)

        with pytest.raises(ConflictError):
            await session_lifecycle.reject_session(db, study_session.id, "late", None)

    async def test_approve_rejected_is_conflict(self, db):
        study_session = await _create(db)
        await session_lifecycle.reject_session(db, study_session.id, "r", "f")

        with pytest.raises(ConflictError):
            await session_lifecycle.approve_session(db, study_session.id, 20)

    async def test_price_update_keeps_status(self, db):
        study_session = await _create(db)
        await session_lifecycle.approve_session(db, study_session.id, 20)

        updated = await session_lifecycle.update_price(db, study_session.id, "45")

        assert updated.fee == "45"
        assert updated.status == "approved"

    async def test_unknown_session_is_not_found(self, db):
        import uuid

        with pytest.raises(NotFoundError):
            await session_lifecycle.approve_session(db, uuid.uuid4(), 20)

    async def test_delete_session(self, db):
        study_session = await _create(db)

        await session_lifecycle.delete_session(db, study_session.id)

        with pytest.raises(NotFoundError):
            await session_lifecycle.get_session(db, study_session.id)


@pytest.mark.asyncio
@pytest.mark.integration
class TestListSessions:

    async def _seed(self, db):
        late = await _create(db, title="Late", registration_start_date=datetime(2026, 3, 1))
        early = await _create(db, title="Early", registration_start_date=datetime(2026, 1, 1))
        middle = await _create(db, title="Middle", registration_start_date=datetime(2026, 2, 1))
        pending = await _create(db, tutor=OTHER_TUTOR, title="Pending", registration_start_date=datetime(2025, 1, 1))
        for study_session in (late, early, middle):
            await session_lifecycle.approve_session(db, study_session.id, "Free")
        return late, early, middle, pending

    async def test_default_lists_approved_earliest_first(self, db):
        await self._seed(db)

        sessions = await session_lifecycle.list_sessions(db)

        assert [s.title for s in sessions] == ["Early", "Middle", "Late"]

    async def test_all_includes_every_status(self, db):
        await self._seed(db)

        sessions = await session_lifecycle.list_sessions(db, status="all")

        assert [s.title for s in sessions] == ["Pending", "Early", "Middle", "Late"]

    async def test_filter_by_tutor_and_status(self, db):
        await self._seed(db)

        sessions = await session_lifecycle.list_sessions(
            db, status="pending", tutor_email="other.tutor@example.com"
        )

        assert [s.title for s in sessions] == ["Pending"]

    async def test_unknown_status_filter(self, db):
        with pytest.raises(ValidationError):
            await session_lifecycle.list_sessions(db, status="archived")
