import asyncio
import time
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from library_api.core.config import AuthConfig
from library_api.core.exceptions import InvalidToken
from library_api.schemas.auth_schema import TokenIdentity

# --- Setup ---
logger = logging.getLogger(__name__)


# --- Token Management (Infrastructure Only) ---
class TokenManager:
    """Creates and decodes the symmetric-key tokens used in development mode."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: int = 86400):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def create_token(
        self,
        subject: str,
        additional_claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Creates a signed JWT for ``subject``."""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(seconds=self.expires_in))

        claims = {"sub": str(subject), "iat": now, "exp": expire}
        if additional_claims:
            claims.update(additional_claims)

        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Verifies signature and expiry, returning the claims."""
        if not token:
            raise InvalidToken("Token cannot be empty.")
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JOSEError as e:
            raise InvalidToken(f"Token is invalid: {e}") from e


class JWKSClient:
    """
    Fetches signing keys from a remote JSON Web Key Set.

    Keys are cached for ``cache_ttl`` seconds. An unknown key id triggers a
    refetch, but never more than once per ``min_refresh_interval`` seconds.
    """

    def __init__(
        self,
        jwks_uri: str,
        cache_ttl: int = 600,
        min_refresh_interval: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.jwks_uri = jwks_uri
        self.cache_ttl = cache_ttl
        self.min_refresh_interval = min_refresh_interval
        self._transport = transport
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._fetched_at: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    async def _fetch_keys(self) -> Dict[str, Dict[str, Any]]:
        async with httpx.AsyncClient(transport=self._transport, timeout=5.0) as client:
            response = await client.get(self.jwks_uri)
            response.raise_for_status()
            data = response.json()

        keys = {key["kid"]: key for key in data.get("keys", []) if "kid" in key}
        logger.info(
            "JWKS refreshed", extra={"jwks_uri": self.jwks_uri, "key_count": len(keys)}
        )
        return keys

    def _should_refresh(self, kid: str) -> bool:
        if self._fetched_at is None:
            return True
        age = time.monotonic() - self._fetched_at
        if age > self.cache_ttl:
            return True
        return kid not in self._keys and age >= self.min_refresh_interval

    async def get_signing_key(self, kid: str) -> Dict[str, Any]:
        if self._should_refresh(kid):
            async with self._refresh_lock:
                # Another request may have refreshed while this one waited
                if self._should_refresh(kid):
                    try:
                        self._keys = await self._fetch_keys()
                    except (httpx.HTTPError, ValueError) as e:
                        raise InvalidToken(f"Unable to fetch signing keys: {e}") from e
                    self._fetched_at = time.monotonic()

        key = self._keys.get(kid)
        if key is None:
            raise InvalidToken(f"No signing key found for kid '{kid}'.")
        return key


# --- Verification strategies ---
class TokenVerifier(ABC):
    """Turns a bearer token into a verified caller identity."""

    name: str = "abstract"

    @abstractmethod
    async def verify(self, token: str) -> TokenIdentity:
        """Verify ``token`` or raise InvalidToken."""

    @staticmethod
    def _identity_from_claims(
        claims: Dict[str, Any], name_fallback: Optional[str] = None
    ) -> TokenIdentity:
        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email:
            raise InvalidToken("Token is missing the 'sub' or 'email' claim.")
        return TokenIdentity(
            subject_id=str(subject),
            email=str(email),
            name=claims.get("name") or name_fallback or str(email),
            role=claims.get("role"),
        )


class DevTokenVerifier(TokenVerifier):
    """Verifies locally signed development tokens."""

    name = "dev"

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager

    async def verify(self, token: str) -> TokenIdentity:
        claims = self.token_manager.decode_token(token)
        return self._identity_from_claims(claims)


class OIDCTokenVerifier(TokenVerifier):
    """Verifies tokens issued by an external OpenID Connect provider."""

    name = "oidc"

    def __init__(
        self, issuer: str, audience: Optional[str], jwks_client: JWKSClient
    ):
        self.issuer = issuer
        self.audience = audience
        self.jwks_client = jwks_client

    async def verify(self, token: str) -> TokenIdentity:
        try:
            header = jwt.get_unverified_header(token)
        except JOSEError as e:
            raise InvalidToken("Invalid token format.") from e

        kid = header.get("kid")
        if not kid:
            raise InvalidToken("Token header is missing the 'kid' field.")

        key = await self.jwks_client.get_signing_key(kid)

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[key.get("alg", "RS256")],
                issuer=self.issuer,
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except JOSEError as e:
            raise InvalidToken(f"Token is invalid: {e}") from e

        return self._identity_from_claims(claims, name_fallback=claims.get("email"))


def build_token_verifier(
    config: AuthConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Optional[TokenVerifier]:
    """
    Select the single verification strategy allowed by ``config``.

    An external issuer takes precedence over development mode. Returns None
    when neither is configured.
    """
    if config.oidc_issuer_url:
        issuer = config.oidc_issuer_url.rstrip("/")
        jwks_client = JWKSClient(
            jwks_uri=f"{issuer}/.well-known/jwks.json",
            cache_ttl=config.jwks_cache_ttl,
            min_refresh_interval=config.jwks_min_refresh_interval,
            transport=transport,
        )
        return OIDCTokenVerifier(
            issuer=config.oidc_issuer_url,
            audience=config.oidc_audience,
            jwks_client=jwks_client,
        )
    if config.dev_auth_enabled:
        return DevTokenVerifier(
            TokenManager(
                secret=config.jwt_secret,
                algorithm=config.jwt_algorithm,
                expires_in=config.dev_token_expires_in,
            )
        )
    return None


class SecurityHeaders:
    """Centralized definition of security headers for API responses."""

    @staticmethod
    def get_headers() -> Dict[str, str]:
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
