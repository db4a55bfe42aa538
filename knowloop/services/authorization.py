"""
Authorization Guard

Composes a verified identity with the caller's stored role into an
allow/deny decision. Evaluated before any mutation or sensitive read.

Capabilities:
    SELF       caller email must equal the target email
    ROLE(r)    caller's stored role must be r

A caller without a user record is Forbidden, never NotFound, so the guard
does not reveal which accounts exist.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowloop.errors import ForbiddenError
from knowloop.models.user import User
from knowloop.services.identity import Identity, normalize_email

logger = logging.getLogger(__name__)


class Role(str, Enum):
    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        try:
            return cls(value)
        except ValueError:
            return None


class CapabilityKind(str, Enum):
    SELF = "self"
    ROLE = "role"


@dataclass(frozen=True)
class Capability:
    kind: CapabilityKind
    role: Optional[Role] = None

    @classmethod
    def self_only(cls) -> "Capability":
        return cls(CapabilityKind.SELF)

    @classmethod
    def role_of(cls, role: Role) -> "Capability":
        return cls(CapabilityKind.ROLE, role)

    def __str__(self):
        if self.kind is CapabilityKind.ROLE:
            return f"role:{self.role.value}"
        return self.kind.value


def is_self(identity: Identity, target_email: Optional[str]) -> bool:
    return bool(target_email) and identity.email == normalize_email(target_email)


def decide(
    identity: Identity,
    capability: Capability,
    role: Optional[Role] = None,
    target_email: Optional[str] = None,
) -> bool:
    """
    Pure access decision.

    Args:
        identity: Verified caller
        capability: Capability required by the operation
        role: Caller's stored role (None when no user record exists)
        target_email: Email the operation acts on, for SELF checks

    Returns:
        True when the capability is satisfied
    """
    if capability.kind is CapabilityKind.SELF:
        return is_self(identity, target_email)
    return role is not None and role is capability.role


async def resolve_role(db: AsyncSession, email: str) -> Role:
    """
    Look up the caller's role.

    Raises:
        ForbiddenError: No user record, or a role outside the known set
    """
    result = await db.execute(select(User.role).where(User.email == normalize_email(email)))
    stored = result.scalar_one_or_none()
    role = Role.parse(stored)
    if role is None:
        logger.warning(f"Role lookup failed for {email}")
        raise ForbiddenError("forbidden access")
    return role


async def authorize(
    db: AsyncSession,
    identity: Identity,
    capability: Capability,
    target_email: Optional[str] = None,
) -> Optional[Role]:
    """
    Enforce a capability, returning the caller's role when one was looked up.

    Raises:
        ForbiddenError: Capability not satisfied
    """
    role = None
    if capability.kind is CapabilityKind.ROLE:
        role = await resolve_role(db, identity.email)
    if not decide(identity, capability, role=role, target_email=target_email):
        logger.warning(f"Denied {capability} to {identity.email}")
        raise ForbiddenError("forbidden access")
    return role


def check_self(identity: Identity, target_email: Optional[str]) -> None:
    if not decide(identity, Capability.self_only(), target_email=target_email):
        logger.warning(f"Denied self access to {target_email} for {identity.email}")
        raise ForbiddenError("forbidden access")


async def require_role(db: AsyncSession, identity: Identity, role: Role) -> Role:
    return await authorize(db, identity, Capability.role_of(role))


def ensure_owner(identity: Identity, owner_email: Optional[str], resource: str = "resource") -> None:
    """Ownership check for sessions, materials and notes; fails closed"""
    if not is_self(identity, owner_email):
        logger.warning(f"{identity.email} attempted to modify a {resource} owned by {owner_email}")
        raise ForbiddenError(f"forbidden access: not the owner of this {resource}")
