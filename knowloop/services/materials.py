"""
Study materials.

Owned and edited by the uploading tutor, visible to admins unconditionally
and to students only through the Booking & Access Gate.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import ForbiddenError, NotFoundError, ValidationError
from knowloop.models.material import Material
from knowloop.services import booking_gate
from knowloop.services.authorization import Role, ensure_owner, is_self
from knowloop.services.identity import Identity, normalize_email
from knowloop.services.session_lifecycle import get_session

logger = logging.getLogger(__name__)


def _newest_first(query):
    return query.order_by(Material.created_at.desc())


async def get_material(db: AsyncSession, material_id: uuid.UUID) -> Material:
    material = await db.get(Material, material_id)
    if material is None:
        raise NotFoundError("Material not found")
    return material


async def create_material(
    db: AsyncSession,
    tutor: Identity,
    session_id: uuid.UUID,
    title: str,
    link: str,
) -> Material:
    """Attach a material to one of the tutor's own sessions"""
    if not title or not link:
        raise ValidationError("Title and link are required")
    study_session = await get_session(db, session_id)
    ensure_owner(tutor, study_session.tutor_email, resource="session")

    material = Material(session_id=session_id, tutor_email=tutor.email, title=title, link=link)
    db.add(material)
    await db.flush()
    logger.info(f"Material {material.id} uploaded for session {session_id}")
    return material


async def update_material(
    db: AsyncSession,
    tutor: Identity,
    material_id: uuid.UUID,
    title: Optional[str] = None,
    link: Optional[str] = None,
) -> Material:
    material = await get_material(db, material_id)
    ensure_owner(tutor, material.tutor_email, resource="material")
    if title is not None:
        material.title = title
    if link is not None:
        material.link = link
    await db.flush()
    return material


async def delete_material(db: AsyncSession, material_id: uuid.UUID, owner: Optional[Identity] = None) -> None:
    """Delete a material; owner is None for admin removals"""
    material = await get_material(db, material_id)
    if owner is not None:
        ensure_owner(owner, material.tutor_email, resource="material")
    await db.delete(material)
    await db.flush()
    logger.info(f"Material {material_id} deleted")


async def list_tutor_materials(db: AsyncSession, tutor_email: str) -> List[Material]:
    result = await db.execute(
        _newest_first(select(Material).where(Material.tutor_email == normalize_email(tutor_email)))
    )
    return list(result.scalars().all())


async def list_all_materials(db: AsyncSession) -> List[Material]:
    result = await db.execute(_newest_first(select(Material)))
    return list(result.scalars().all())


async def list_student_materials(db: AsyncSession, student_email: str) -> List[Material]:
    """Materials of every booked session the gate lets the student into"""
    session_ids = await booking_gate.accessible_session_ids(db, student_email)
    if not session_ids:
        return []
    result = await db.execute(
        _newest_first(select(Material).where(Material.session_id.in_(session_ids)))
    )
    return list(result.scalars().all())


async def list_session_materials(
    db: AsyncSession,
    viewer: Identity,
    session_id: uuid.UUID,
    viewer_role: Optional[Role] = None,
) -> List[Material]:
    """
    Materials of one session.

    Admins and the session's own tutor always see them; everyone else goes
    through the access gate.
    """
    study_session = await get_session(db, session_id)
    privileged = viewer_role is Role.ADMIN or (
        viewer_role is Role.TUTOR and is_self(viewer, study_session.tutor_email)
    )
    if not privileged and not await booking_gate.can_access_materials(db, viewer.email, session_id):
        raise ForbiddenError("Book this session (and pay, if it has a fee) to view its materials")
    result = await db.execute(
        _newest_first(select(Material).where(Material.session_id == session_id))
    )
    return list(result.scalars().all())
