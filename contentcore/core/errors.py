# contentcore/core/errors.py
# Taxonomía de errores del engine. Cada error lleva un code estable y un
# status_code HTTP-equivalente; los servicios no conocen FastAPI.
from __future__ import annotations

from typing import Any, Optional


class ContentError(Exception):
    code: str = "CONTENT_ERROR"
    status_code: int = 400

    def __init__(self, message: str, *, code: Optional[str] = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.context}


class NotFoundError(ContentError):
    code = "NOT_FOUND"
    status_code = 404


class ContentValidationError(ContentError):
    code = "VALIDATION"
    status_code = 400


class ConflictError(ContentError):
    code = "CONFLICT"
    status_code = 409


class LockedError(ContentError):
    """Another holder owns an active lock. Context carries `locked_by` and `locked_until`."""

    code = "LOCKED"
    status_code = 423


class ForbiddenError(ContentError):
    code = "FORBIDDEN"
    status_code = 403


class ProtectedItemError(ForbiddenError):
    code = "PROTECTED_ITEM"


class NotLockOwnerError(ForbiddenError):
    code = "NOT_LOCK_OWNER"


class LimitExceededError(ContentError):
    code = "LIMIT_EXCEEDED"
    status_code = 400


class CircularReferenceError(ContentError):
    code = "CIRCULAR_REFERENCE"
    status_code = 400


class MaxDepthExceededError(ContentError):
    code = "MAX_DEPTH_EXCEEDED"
    status_code = 400


class FeatureDisabledError(ContentError):
    code = "FEATURE_DISABLED"
    status_code = 400
