import logging

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.db.session import get_session
from library_api.models.user_model import User
from library_api.schemas.common_schema import ErrorResponse
from library_api.schemas.user_schema import UserResponse
from library_api.services.auth_service import AuthService
from library_api.utils.deps import get_auth_service, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"], prefix=settings.API_V1_STR)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Profile of the authenticated caller.",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def read_me(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    auth_svc: AuthService = Depends(get_auth_service),
):
    return await auth_svc.get_me(db, user_id=current_user.id)
