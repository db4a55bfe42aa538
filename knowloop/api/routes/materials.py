"""
Material API Endpoints

GET    /student/materials?email=         - Materials the student's bookings unlock
GET    /materials/session/{session_id}   - One session's materials (gated)
GET    /materials?email=                 - Tutor's own materials
POST   /materials                        - Tutor uploads a material
PATCH  /materials/{id}                   - Tutor edits own material
DELETE /materials/{id}                   - Tutor deletes own material
GET    /admin/materials                  - All materials
DELETE /admin/materials/{id}             - Admin removal
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity, require_admin, require_tutor
from knowloop.api.responses import ok
from knowloop.database import get_db
from knowloop.errors import ForbiddenError
from knowloop.services import materials
from knowloop.services.authorization import check_self, resolve_role
from knowloop.services.identity import Identity

router = APIRouter(tags=["materials"])


class MaterialCreateRequest(BaseModel):
    session_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255)
    link: str = Field(..., min_length=1, max_length=2048)


class MaterialUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    link: Optional[str] = Field(None, min_length=1, max_length=2048)


@router.get("/student/materials")
async def list_student_materials(
    email: str = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    found = await materials.list_student_materials(db, email)
    return ok("Materials fetched", data=[m.to_dict() for m in found])


@router.get("/materials/session/{session_id}")
async def list_session_materials(
    session_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    try:
        role = await resolve_role(db, identity.email)
    except ForbiddenError:
        role = None
    found = await materials.list_session_materials(db, identity, session_id, viewer_role=role)
    return ok("Materials fetched", data=[m.to_dict() for m in found])


@router.get("/materials")
async def list_tutor_materials(
    email: str = Query(...),
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(tutor, email)
    found = await materials.list_tutor_materials(db, email)
    return ok("Materials fetched", data=[m.to_dict() for m in found])


@router.post("/materials", status_code=status.HTTP_201_CREATED)
async def create_material(
    request: MaterialCreateRequest,
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    material = await materials.create_material(db, tutor, request.session_id, request.title, request.link)
    return ok("Material uploaded", inserted_id=str(material.id), data=material.to_dict())


@router.patch("/materials/{material_id}")
async def update_material(
    material_id: uuid.UUID,
    request: MaterialUpdateRequest,
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    material = await materials.update_material(db, tutor, material_id, title=request.title, link=request.link)
    return ok("Material updated", data=material.to_dict())


@router.delete("/materials/{material_id}")
async def delete_material(
    material_id: uuid.UUID,
    tutor: Identity = Depends(require_tutor),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    await materials.delete_material(db, material_id, owner=tutor)
    return ok("Material deleted")


@router.get("/admin/materials")
async def list_all_materials(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    found = await materials.list_all_materials(db)
    return ok("Materials fetched", data=[m.to_dict() for m in found])


@router.delete("/admin/materials/{material_id}")
async def admin_delete_material(
    material_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    await materials.delete_material(db, material_id)
    return ok("Material deleted")
