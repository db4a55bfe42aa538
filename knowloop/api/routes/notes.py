"""
Note API Endpoints

POST   /notes            - Create a note for the caller
GET    /notes/{email}    - Caller's notes
PATCH  /notes/{note_id}  - Edit own note
DELETE /notes/{note_id}  - Delete own note
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity
from knowloop.api.responses import ok
from knowloop.database import get_db
from knowloop.services import notes
from knowloop.services.authorization import check_self
from knowloop.services.identity import Identity

router = APIRouter(prefix="/notes", tags=["notes"])


class NoteCreateRequest(BaseModel):
    email: Optional[str] = None
    title: str = Field(..., max_length=255)
    description: str


class NoteUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    if request.email is not None:
        check_self(identity, request.email)
    note = await notes.create_note(db, identity, request.title, request.description)
    return ok("Note created", inserted_id=str(note.id), data=note.to_dict())


@router.get("/{email}")
async def list_notes(
    email: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    found = await notes.list_notes(db, email)
    return ok("Notes fetched", data=[note.to_dict() for note in found])


@router.patch("/{note_id}")
async def update_note(
    note_id: uuid.UUID,
    request: NoteUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    note = await notes.update_note(db, identity, note_id, title=request.title, description=request.description)
    return ok("Note updated successfully", data=note.to_dict())


@router.delete("/{note_id}")
async def delete_note(
    note_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    await notes.delete_note(db, identity, note_id)
    return ok("Note deleted")
