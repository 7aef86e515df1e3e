# library_api/services/auth_service.py
"""
Authentication service module.

Turns bearer tokens into local ``User`` records and issues development tokens.
The verification strategy is fixed when the service is constructed from an
``AuthConfig``; nothing here reads settings at call time.
"""
import logging
from typing import Optional

import httpx
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.crud.user_crud import user_repository
from library_api.core.config import AuthConfig, settings
from library_api.core.security import TokenManager, build_token_verifier
from library_api.core.exception_utils import raise_for_status
from library_api.core.exceptions import InvalidToken, NotAuthorized, ResourceNotFound
from library_api.models.user_model import User, UserRole
from library_api.schemas.auth_schema import DevLoginRequest, TokenResponse

logger = logging.getLogger(__name__)


class AuthService:
    """
    Service class for authentication operations.

    Exactly one token verifier is active: an external OIDC issuer when one is
    configured, otherwise locally signed dev tokens when dev mode is on,
    otherwise none (every token is rejected).
    """

    def __init__(
        self,
        config: AuthConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.user_repository = user_repository
        self.token_manager = TokenManager(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            expires_in=config.dev_token_expires_in,
        )
        self.verifier = build_token_verifier(config, transport=transport)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def authenticate(self, db: AsyncSession, *, token: str) -> User:
        """
        Verify ``token`` and resolve the caller's local user record.

        Args:
            db: The database session.
            token: The raw bearer token.

        Returns:
            The user, created on first sight. Email and name are refreshed
            from the token on every call; role is only set on creation.

        Raises:
            InvalidToken: For any verification failure, or when no
                verification strategy is configured.
        """
        if self.verifier is None:
            self._logger.warning(
                "No authentication strategy configured; rejecting token"
            )
            raise InvalidToken()

        try:
            identity = await self.verifier.verify(token)
        except InvalidToken as e:
            self._logger.info(
                "Token verification failed",
                extra={"strategy": self.verifier.name, "reason": e.detail},
            )
            raise InvalidToken() from e

        return await self.user_repository.upsert(
            db,
            user_id=identity.subject_id,
            email=identity.email,
            name=identity.name,
            role=UserRole.parse(identity.role),
        )

    async def dev_login(
        self, db: AsyncSession, *, login_data: DevLoginRequest
    ) -> TokenResponse:
        """Issue a locally signed token, creating or re-roling the user."""
        raise_for_status(
            condition=not self.config.dev_auth_enabled,
            exception=NotAuthorized,
            detail="Dev auth is not enabled",
        )

        user = await self.user_repository.upsert(
            db,
            user_id=login_data.sub,
            email=login_data.email,
            name=login_data.name,
            role=login_data.role,
            overwrite_role=True,
        )

        access_token = self.token_manager.create_token(
            subject=user.id,
            additional_claims={
                "email": user.email,
                "name": user.name,
                "role": user.role.value,
            },
        )

        logger.info(f"Dev token issued for user {user.id}")
        return TokenResponse(
            access_token=access_token, expires_in=self.token_manager.expires_in
        )

    async def get_me(self, db: AsyncSession, *, user_id: str) -> User:
        user = await self.user_repository.get(db, obj_id=user_id)
        raise_for_status(
            condition=user is None,
            exception=ResourceNotFound,
            detail="User not found",
            resource_type="User",
        )
        return user


auth_service = AuthService(AuthConfig.from_settings(settings))
