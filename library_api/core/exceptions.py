# library_api/core/exceptions.py
"""
Application exception hierarchy.

Every failure the API reports deliberately is a subclass of BaseAppException,
carrying the HTTP status and the stable error code used on the wire.
"""
from typing import Any, Dict, Optional


class BaseAppException(Exception):
    """Base class for all exceptions raised by the application."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    default_detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        **context: Any,
    ):
        self.detail = detail or self.default_detail
        self.details = details
        self.headers = headers
        self.context = context
        super().__init__(self.detail)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(status={self.status_code}, detail='{self.detail}')>"


class ValidationError(BaseAppException):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_detail = "Validation failed"


class NotAuthenticated(BaseAppException):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_detail = "Missing or invalid authentication token"

    def __init__(self, detail: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(detail, **kwargs)


class InvalidToken(NotAuthenticated):
    default_detail = "Invalid or expired token"


class NotAuthorized(BaseAppException):
    status_code = 403
    error_code = "FORBIDDEN"
    default_detail = "Insufficient permissions"


class ResourceNotFound(BaseAppException):
    status_code = 404
    error_code = "NOT_FOUND"
    default_detail = "Resource not found"


class ResourceConflict(BaseAppException):
    status_code = 409
    error_code = "CONFLICT"
    default_detail = "Operation conflicts with current state"


class InternalServerError(BaseAppException):
    status_code = 500
    error_code = "INTERNAL_ERROR"
    default_detail = "An unexpected error occurred"


__all__ = [
    "BaseAppException",
    "ValidationError",
    "NotAuthenticated",
    "InvalidToken",
    "NotAuthorized",
    "ResourceNotFound",
    "ResourceConflict",
    "InternalServerError",
]
