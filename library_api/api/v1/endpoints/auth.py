# library_api/api/v1/endpoints/auth.py
"""
Authentication endpoints.

Only the development login lives here; production tokens are issued by the
external identity provider.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.db.session import get_session
from library_api.schemas.auth_schema import DevLoginRequest, TokenResponse
from library_api.schemas.common_schema import ErrorResponse
from library_api.services.auth_service import AuthService
from library_api.utils.deps import get_auth_service

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Authentication"],
    prefix=f"{settings.API_V1_STR}/auth",
)


@router.post(
    "/dev-login",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Development login",
    description="Issue a locally signed token for any identity. Only available when dev auth is enabled.",
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        403: {"model": ErrorResponse, "description": "Dev auth is not enabled"},
    },
)
async def dev_login(
    *,
    login_data: DevLoginRequest,
    db: AsyncSession = Depends(get_session),
    auth_svc: AuthService = Depends(get_auth_service),
):
    """
    Create or update a user and return a bearer token for it.

    - **sub**: Subject identifier, becomes the user id
    - **email**: Valid email address
    - **name**: Display name
    - **role**: ADMIN, LIBRARIAN or MEMBER (overwrites any stored role)
    """
    return await auth_svc.dev_login(db, login_data=login_data)
