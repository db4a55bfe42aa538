"""Private notes, fully owned by their creator"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import NotFoundError, ValidationError
from knowloop.models.note import Note
from knowloop.services.authorization import ensure_owner
from knowloop.services.identity import Identity, normalize_email

logger = logging.getLogger(__name__)


async def create_note(db: AsyncSession, owner: Identity, title: str, description: str) -> Note:
    if not (title or "").strip() or not (description or "").strip():
        raise ValidationError("All fields required")
    note = Note(email=owner.email, title=title, description=description)
    db.add(note)
    await db.flush()
    return note


async def list_notes(db: AsyncSession, email: str) -> List[Note]:
    result = await db.execute(
        select(Note).where(Note.email == normalize_email(email)).order_by(Note.created_at.desc())
    )
    return list(result.scalars().all())


async def _owned_note(db: AsyncSession, owner: Identity, note_id: uuid.UUID) -> Note:
    note = await db.get(Note, note_id)
    if note is None:
        raise NotFoundError("Note not found")
    ensure_owner(owner, note.email, resource="note")
    return note


async def update_note(
    db: AsyncSession,
    owner: Identity,
    note_id: uuid.UUID,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Note:
    note = await _owned_note(db, owner, note_id)
    if title is not None:
        note.title = title
    if description is not None:
        note.description = description
    await db.flush()
    return note


async def delete_note(db: AsyncSession, owner: Identity, note_id: uuid.UUID) -> None:
    note = await _owned_note(db, owner, note_id)
    await db.delete(note)
    await db.flush()
    logger.info(f"Note {note_id} deleted by {owner.email}")
