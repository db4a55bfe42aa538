"""
User API Endpoints

POST  /users                   - Sign-in upsert for the caller
GET   /users/role/tutor        - Public tutor directory
GET   /users/{email}           - Own profile
PUT   /users-update/{email}    - Update own name/photo
GET   /role/users?email=       - Own role
GET   /admin/users?search=     - Admin user search
PATCH /admin/users/{user_id}   - Admin role change
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.api.auth import get_current_identity, require_admin
from knowloop.api.responses import ok
from knowloop.database import get_db
from knowloop.services import users
from knowloop.services.authorization import Role, check_self
from knowloop.services.identity import Identity

router = APIRouter(tags=["users"])


class UserCreateRequest(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = Field(None, max_length=255)
    photo: Optional[str] = Field(None, max_length=1024)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    photo: Optional[str] = Field(None, max_length=1024)


class RoleUpdateRequest(BaseModel):
    role: Role


@router.post("/users")
async def sign_in_user(
    request: UserCreateRequest,
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Create the caller's account on first sign-in, otherwise refresh last_login"""
    if request.email is not None:
        check_self(identity, request.email)

    user, created = await users.upsert_user(db, identity.email, name=request.name, photo=request.photo)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return ok("New user created", inserted_id=str(user.id), data=user.to_dict())
    return ok("User already exists", updated=True, data=user.to_dict())


@router.get("/users/role/tutor")
async def list_tutors(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    tutors = await users.list_tutors(db)
    return ok("Tutors fetched", data=[tutor.to_dict() for tutor in tutors])


@router.get("/users/{email}")
async def get_user(
    email: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    user = await users.get_user(db, email)
    return ok("User fetched", data=user.to_dict())


@router.put("/users-update/{email}")
async def update_profile(
    email: str,
    request: ProfileUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    user = await users.update_profile(db, email, name=request.name, photo=request.photo)
    return ok("Profile updated", data=user.to_dict())


@router.get("/role/users")
async def get_role(
    email: str = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    check_self(identity, email)
    user = await users.get_user(db, email)
    return ok("Role fetched", role=user.role)


@router.get("/admin/users")
async def search_users(
    search: str = Query("", max_length=255),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    found = await users.search_users(db, search)
    return ok("Users fetched", data=[user.to_dict() for user in found])


@router.patch("/admin/users/{user_id}")
async def set_role(
    user_id: uuid.UUID,
    request: RoleUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    user = await users.set_role(db, user_id, request.role)
    return ok("Role updated", data=user.to_dict())
