from typing import Optional, Set

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Mini Library API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "A REST API for a small library catalog"

    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./library.db"

    # Database Pool Settings (ignored for SQLite)
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_TIMEOUT: int = 30

    # --- Authentication ---
    DEV_AUTH_ENABLED: bool = False
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    DEV_TOKEN_EXPIRE_SECONDS: int = 86400

    OIDC_ISSUER_URL: Optional[str] = None
    OIDC_AUDIENCE: Optional[str] = None
    JWKS_CACHE_TTL_SECONDS: int = 600
    JWKS_MIN_REFRESH_SECONDS: int = 30

    # --- AI ---
    AI_PROVIDER: str = "mock"

    # --- HTTP ---
    CORS_ORIGINS: str = "http://localhost:3001,http://localhost:4200"
    ALLOWED_HOSTS: str = "*"
    MAX_REQUEST_SIZE: int = 1024 * 1024
    LOGGING_EXCLUDE_PATHS: Set[str] = {"/api/v1/health", "/favicon.ico"}

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class AuthConfig(BaseModel):
    """Authentication settings handed to the auth service at construction."""

    dev_auth_enabled: bool = False
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    dev_token_expires_in: int = 86400
    oidc_issuer_url: Optional[str] = None
    oidc_audience: Optional[str] = None
    jwks_cache_ttl: int = 600
    jwks_min_refresh_interval: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            dev_auth_enabled=settings.DEV_AUTH_ENABLED,
            jwt_secret=settings.JWT_SECRET,
            jwt_algorithm=settings.JWT_ALGORITHM,
            dev_token_expires_in=settings.DEV_TOKEN_EXPIRE_SECONDS,
            oidc_issuer_url=settings.OIDC_ISSUER_URL or None,
            oidc_audience=settings.OIDC_AUDIENCE or None,
            jwks_cache_ttl=settings.JWKS_CACHE_TTL_SECONDS,
            jwks_min_refresh_interval=settings.JWKS_MIN_REFRESH_SECONDS,
        )


settings = Settings()
