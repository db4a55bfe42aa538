"""
Identity Context

Wraps the caller identity asserted by the external identity provider.
Tokens are only validated here (signature, expiry, audience, issuer);
they are never issued by this service.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence

import jwt

from knowloop.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class Identity:
    """Verified caller; the email claim is trusted verbatim after verification"""

    email: str
    claims: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "email", normalize_email(self.email))


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity:
        ...


class JWTIdentityVerifier:
    """Validates bearer tokens minted by the identity provider using PyJWT"""

    def __init__(
        self,
        key: str,
        algorithms: Sequence[str] = ("HS256",),
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.key = key
        self.algorithms = list(algorithms)
        self.audience = audience
        self.issuer = issuer

    def verify(self, token: str) -> Identity:
        if not token:
            raise UnauthenticatedError("unauthorized access", code="AUTH_001")
        if not self.key:
            logger.error("Identity verification key is not configured")
            raise UnauthenticatedError("unauthorized access")

        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("token expired", code="AUTH_002")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected identity token: {e}")
            raise UnauthenticatedError("unauthorized access", code="AUTH_002")

        email = normalize_email(claims.get("email"))
        if not email:
            raise UnauthenticatedError("token has no email claim", code="AUTH_002")
        return Identity(email=email, claims=claims)
