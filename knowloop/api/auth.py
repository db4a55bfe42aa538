"""
Authentication Dependencies

Bearer tokens issued by the external identity provider are verified by the
IdentityVerifier stored on app.state; role checks go through the
Authorization Guard.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.database import get_db
from knowloop.errors import UnauthenticatedError
from knowloop.services.authorization import Role, require_role
from knowloop.services.identity import Identity

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """
    Verify the bearer token and return the caller identity.

    Raises:
        UnauthenticatedError: header missing/malformed (AUTH_001) or token invalid (AUTH_002)
    """
    if credentials is None:
        raise UnauthenticatedError("unauthorized access", code="AUTH_001")
    return request.app.state.identity_verifier.verify(credentials.credentials)


async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Identity]:
    """Identity for endpoints that are public but reveal more to known callers"""
    if credentials is None:
        return None
    return request.app.state.identity_verifier.verify(credentials.credentials)


async def require_tutor(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    await require_role(db, identity, Role.TUTOR)
    return identity


async def require_admin(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    await require_role(db, identity, Role.ADMIN)
    return identity
