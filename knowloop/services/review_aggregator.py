"""
Review Aggregator

Appends to a session's review list and recomputes average_rating in the
same transaction. The session row is locked (SELECT ... FOR UPDATE) for the
duration, so concurrent reviewers of one session are serialized and no
append is lost.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import ValidationError
from knowloop.models.study_session import SessionReview, StudySession
from knowloop.services.session_lifecycle import get_session

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: Union[int, float, str, None]) -> float:
    """
    Coerce and bound-check a rating.

    Raises:
        ValidationError: non-numeric or outside 1-5
    """
    if isinstance(rating, bool) or rating is None:
        raise ValidationError("Rating must be a number between 1 and 5")
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be a number between 1 and 5")
    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError("Rating must be a number between 1 and 5")
    return value


def average_rating(ratings: Iterable[float]) -> float:
    """Mean rounded half-up to one decimal; 0 for no ratings"""
    values = [Decimal(str(r)) for r in ratings]
    if not values:
        return 0
    mean = sum(values) / len(values)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def add_review(
    db: AsyncSession,
    session_id: uuid.UUID,
    student_name: Optional[str],
    review_text: Optional[str],
    rating: Union[int, float, str],
) -> StudySession:
    value = validate_rating(rating)
    study_session = await get_session(db, session_id, for_update=True)

    study_session.reviews.append(
        SessionReview(
            position=len(study_session.reviews),
            student_name=student_name,
            review_text=review_text,
            rating=value,
        )
    )
    study_session.average_rating = average_rating(r.rating for r in study_session.reviews)
    await db.flush()

    logger.info(
        f"Review added to session {session_id}: "
        f"{len(study_session.reviews)} reviews, average {study_session.average_rating}"
    )
    return study_session
