# library_api/utils/deps.py
"""
FastAPI Dependencies for Authentication, Authorization, and Request Processing.
This module focuses purely on dependency injection, delegating business logic to services.
"""

import logging
from typing import Iterable, Optional

from fastapi import Depends, Request, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.db.session import get_session
from library_api.models.book_model import BookStatus
from library_api.models.user_model import User, UserRole
from library_api.schemas.book_schema import BookFilters, SortOrder
from library_api.services.auth_service import AuthService, auth_service
from library_api.core.exceptions import NotAuthenticated, NotAuthorized

# Setup logging
logger = logging.getLogger(__name__)

# Documents the bearer scheme in OpenAPI; the header itself is parsed below
bearer_scheme = HTTPBearer(auto_error=False, description="Bearer access token")


def get_auth_service() -> AuthService:
    """The process-wide auth service. Overridden in tests."""
    return auth_service


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization`` header value."""
    if not authorization:
        raise NotAuthenticated("Missing authentication token")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise NotAuthenticated("Invalid authorization header format")
    return token


# ================== CORE AUTHENTICATION DEPENDENCIES ==================
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
    _credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_svc: AuthService = Depends(get_auth_service),
) -> User:
    """
    Primary authentication dependency. Validates the bearer token and returns
    the caller's user record, creating it on first sight.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    user = await auth_svc.authenticate(db, token=token)
    request.state.user = user
    return user


# ================== AUTHORIZATION DEPENDENCIES ==================
def ensure_role(caller_role: UserRole, required_roles: Iterable[UserRole]) -> None:
    """Raise NotAuthorized unless ``caller_role`` is one of ``required_roles``."""
    required = list(required_roles)
    if not required or caller_role in required:
        return
    allowed = ", ".join(role.value for role in required)
    raise NotAuthorized(
        f"Role '{caller_role.value}' does not have permission. Required: {allowed}"
    )


class RoleChecker:
    """
    Dependency class for role-based access control.
    The caller passes when their role is in the allowed set.
    """

    def __init__(self, *allowed_roles: UserRole):
        self.allowed_roles = list(allowed_roles)

    def __call__(
        self, request: Request, current_user: User = Depends(get_current_user)
    ) -> User:
        """Check the current user's role against the allowed set."""
        try:
            ensure_role(current_user.role, self.allowed_roles)
        except NotAuthorized:
            logger.warning(
                "Insufficient privileges for user.",
                extra={
                    "user_id": current_user.id,
                    "user_role": current_user.role.value,
                    "required_roles": [role.value for role in self.allowed_roles],
                    "path": request.url.path,
                },
            )
            raise
        return current_user


# Role-based dependency instances
require_staff = RoleChecker(UserRole.ADMIN, UserRole.LIBRARIAN)
require_admin = RoleChecker(UserRole.ADMIN)


# ================== UTILITY DEPENDENCIES ==================
class BookQueryParams:
    """Pagination, filter and sort parameters for the book listing."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=100, description="Page size"),
        sort_by: Optional[str] = Query(
            None,
            alias="sortBy",
            description="title, author, createdAt, updatedAt, publishedYear or status",
        ),
        sort_order: SortOrder = Query(
            SortOrder.DESC, alias="sortOrder", description="Sort direction"
        ),
        q: Optional[str] = Query(None, description="Free-text search"),
        status: Optional[BookStatus] = Query(None, description="Filter by status"),
        genre: Optional[str] = Query(None, description="Filter by genre"),
        author: Optional[str] = Query(None, description="Filter by author"),
    ):
        self.page = page
        self.limit = limit
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.filters = BookFilters(q=q, status=status, genre=genre, author=author)


# ================== EXPORTS ==================

__all__ = [
    "bearer_scheme",
    "get_auth_service",
    "extract_bearer_token",
    "get_current_user",
    "ensure_role",
    "RoleChecker",
    "require_staff",
    "require_admin",
    "BookQueryParams",
]
