"""
Error taxonomy shared by the callable surface, the trigger ingress and the services.

Every error carries a stable code (the same strings the mobile client already
understands from Firebase callable functions) so callers can tell a quota
problem from a configuration problem without parsing messages.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    FAILED_PRECONDITION = "failed-precondition"
    INVALID_ARGUMENT = "invalid-argument"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    INTERNAL = "internal"


# ---------------------------------------------------------------------------
# Code -> HTTP status. Add new codes here instead of scattering checks in routes.
# ---------------------------------------------------------------------------
HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.FAILED_PRECONDITION: 400,
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.RESOURCE_EXHAUSTED: 429,
    ErrorCode.INTERNAL: 500,
}


class AdonError(Exception):
    """Base error. `code` is fixed per subclass."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_callable_error(self) -> dict:
        """Firebase callable error envelope: status is the upper-snake form of the code."""
        error: dict[str, Any] = {
            "status": self.code.value.upper().replace("-", "_"),
            "message": self.message,
        }
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class ConfigurationError(AdonError):
    """Missing secrets or credentials. Never retried automatically."""

    code = ErrorCode.FAILED_PRECONDITION


class InvalidArgumentError(AdonError):
    code = ErrorCode.INVALID_ARGUMENT


class UnauthenticatedError(AdonError):
    code = ErrorCode.UNAUTHENTICATED


class PermissionDeniedError(AdonError):
    code = ErrorCode.PERMISSION_DENIED


class NotFoundError(AdonError):
    code = ErrorCode.NOT_FOUND


class QuotaExceededError(AdonError):
    """Rate limit or attempt limit hit (429). Callers should back off, not retry immediately."""

    code = ErrorCode.RESOURCE_EXHAUSTED


class UpstreamError(AdonError):
    """Non-2xx response from an external provider."""

    code = ErrorCode.INTERNAL

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, status_code=status_code, details={"status": status_code} if status_code else None)
        self.body = body


class IndexSyncError(UpstreamError):
    """Search index rejected a write. Fatal for the invocation."""


class IllegalTransitionError(AdonError):
    code = ErrorCode.FAILED_PRECONDITION


class PushDeliveryError(AdonError):
    """Push provider refused or failed a single delivery."""


class StaleTokenError(PushDeliveryError):
    """Device token is unregistered or belongs to another project."""


def error_to_http(exc: AdonError) -> JSONResponse:
    """Render an AdonError as the callable error envelope with a matching HTTP status."""
    status_code = HTTP_STATUS_BY_CODE.get(exc.code, 500)
    return JSONResponse(status_code=status_code, content=exc.to_callable_error())
