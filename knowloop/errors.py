"""
Domain errors.

Each error carries the HTTP status it surfaces as; the API layer renders
all of them into the same envelope:

    {"success": false, "message": "...", "error": {"code": "...", "details": ...}}
"""
from typing import Any, Dict, Optional

from fastapi import status


class KnowloopError(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error": {"code": self.code, "details": self.details},
        }


class UnauthenticatedError(KnowloopError):
    """Missing or invalid identity assertion."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTH_002"


class ForbiddenError(KnowloopError):
    """Valid identity lacking the required role, or acting on another identity's resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class NotFoundError(KnowloopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ValidationError(KnowloopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class ConflictError(KnowloopError):
    """Operation is incompatible with the current state of the resource."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class UpstreamError(KnowloopError):
    """Storage or payment-processor failure. Never retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        if status_code is not None:
            self.status_code = status_code
