"""
User accounts and the Role Resolver's backing records.

Users are upserted on sign-in. Self-service updates cover name/photo only;
role changes are an admin operation.
"""
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import NotFoundError, ValidationError
from knowloop.models._common import utcnow
from knowloop.models.user import User
from knowloop.services.authorization import Role
from knowloop.services.identity import normalize_email

logger = logging.getLogger(__name__)


async def find_user(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def upsert_user(
    db: AsyncSession,
    email: str,
    name: Optional[str] = None,
    photo: Optional[str] = None,
) -> Tuple[User, bool]:
    """
    Create the user on first sign-in, otherwise refresh last_login.

    New accounts always start as students; roles are granted by an admin.

    Returns:
        (user, created)
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    user = await find_user(db, email)
    if user is not None:
        user.last_login = utcnow()
        await db.flush()
        return user, False

    user = User(email=email, name=name, photo=photo, role=Role.STUDENT.value, last_login=utcnow())
    db.add(user)
    await db.flush()
    logger.info(f"Created user {email}")
    return user, True


async def get_user(db: AsyncSession, email: str) -> User:
    user = await find_user(db, email)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_profile(
    db: AsyncSession,
    email: str,
    name: Optional[str],
    photo: Optional[str],
) -> User:
    user = await get_user(db, email)
    if name is not None:
        user.name = name
    if photo is not None:
        user.photo = photo
    await db.flush()
    return user


async def list_tutors(db: AsyncSession) -> List[User]:
    result = await db.execute(
        select(User).where(User.role == Role.TUTOR.value).order_by(User.created_at)
    )
    return list(result.scalars().all())


async def search_users(db: AsyncSession, search: str = "") -> List[User]:
    """Case-insensitive substring search over name and email"""
    query = select(User).order_by(User.created_at)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(User.email.ilike(pattern), User.name.ilike(pattern))
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def set_role(db: AsyncSession, user_id: uuid.UUID, role: Role) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    previous = user.role
    user.role = role.value
    await db.flush()
    logger.info(f"Role of {user.email} changed {previous} -> {role.value}")
    return user
