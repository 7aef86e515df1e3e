# tests/services/test_auth_service.py
import asyncio
from datetime import timedelta

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from library_api.core.config import AuthConfig
from library_api.core.exceptions import InvalidToken, NotAuthorized, ResourceNotFound
from library_api.core.security import DevTokenVerifier, JWKSClient, OIDCTokenVerifier
from library_api.models.user_model import User, UserRole
from library_api.schemas.auth_schema import DevLoginRequest
from library_api.services.auth_service import AuthService
from tests.mocks.mock_user_repository import FakeUserRepository

pytestmark = pytest.mark.asyncio

ISSUER = "https://issuer.example.com"
AUDIENCE = "library-api"
KID = "test-key-1"


def _service(config: AuthConfig, transport=None) -> AuthService:
    service = AuthService(config, transport=transport)
    service.user_repository = FakeUserRepository()
    return service


@pytest.fixture
def dev_service() -> AuthService:
    return _service(AuthConfig(dev_auth_enabled=True, jwt_secret="unit-secret"))


def _dev_token(service: AuthService, **claims) -> str:
    subject = claims.pop("sub", "member-001")
    return service.token_manager.create_token(subject=subject, additional_claims=claims)


# ==================== authenticate (dev) TESTS ====================


async def test_dev_verifier_selected(dev_service: AuthService):
    assert isinstance(dev_service.verifier, DevTokenVerifier)


async def test_authenticate_creates_user_on_first_sight(dev_service: AuthService):
    token = _dev_token(
        dev_service, email="member@example.com", name="John Member", role="LIBRARIAN"
    )

    user = await dev_service.authenticate(db=None, token=token)

    assert user.id == "member-001"
    assert user.email == "member@example.com"
    assert user.name == "John Member"
    assert user.role == UserRole.LIBRARIAN


async def test_authenticate_unknown_role_defaults_to_member(dev_service: AuthService):
    token = _dev_token(dev_service, email="x@library.local", name="X", role="SUPERUSER")

    user = await dev_service.authenticate(db=None, token=token)

    assert user.role == UserRole.MEMBER


async def test_authenticate_refreshes_profile_but_keeps_role(dev_service: AuthService):
    existing = User(
        id="member-001", email="old@library.local", name="Old Name", role=UserRole.MEMBER
    )
    dev_service.user_repository = FakeUserRepository([existing])
    token = _dev_token(dev_service, email="new@library.local", name="New Name", role="ADMIN")

    user = await dev_service.authenticate(db=None, token=token)

    assert user.email == "new@library.local"
    assert user.name == "New Name"
    assert user.role == UserRole.MEMBER


async def test_authenticate_missing_email_claim_rejected(dev_service: AuthService):
    token = _dev_token(dev_service, name="No Email")

    with pytest.raises(InvalidToken) as exc_info:
        await dev_service.authenticate(db=None, token=token)

    assert exc_info.value.detail == "Invalid or expired token"


async def test_authenticate_expired_token_rejected(dev_service: AuthService):
    token = dev_service.token_manager.create_token(
        subject="member-001",
        additional_claims={"email": "m@library.local"},
        expires_delta=timedelta(seconds=-10),
    )

    with pytest.raises(InvalidToken):
        await dev_service.authenticate(db=None, token=token)


async def test_authenticate_wrong_secret_rejected(dev_service: AuthService):
    other = _service(AuthConfig(dev_auth_enabled=True, jwt_secret="another-secret"))
    token = _dev_token(other, email="m@library.local")

    with pytest.raises(InvalidToken):
        await dev_service.authenticate(db=None, token=token)


async def test_authenticate_without_strategy_rejects_everything():
    service = _service(AuthConfig(dev_auth_enabled=False))
    token = service.token_manager.create_token(
        subject="member-001", additional_claims={"email": "m@library.local"}
    )

    assert service.verifier is None
    with pytest.raises(InvalidToken) as exc_info:
        await service.authenticate(db=None, token=token)

    assert exc_info.value.detail == "Invalid or expired token"


# ==================== dev_login / get_me TESTS ====================


async def test_dev_login_disabled():
    service = _service(AuthConfig(dev_auth_enabled=False))
    login = DevLoginRequest(
        sub="admin-001", email="admin@example.com", name="Admin", role=UserRole.ADMIN
    )

    with pytest.raises(NotAuthorized) as exc_info:
        await service.dev_login(db=None, login_data=login)

    assert exc_info.value.detail == "Dev auth is not enabled"


async def test_dev_login_issues_token_and_overwrites_role(dev_service: AuthService):
    existing = User(
        id="member-001", email="member@example.com", name="John", role=UserRole.MEMBER
    )
    dev_service.user_repository = FakeUserRepository([existing])
    login = DevLoginRequest(
        sub="member-001",
        email="member@example.com",
        name="John Member",
        role=UserRole.LIBRARIAN,
    )

    response = await dev_service.dev_login(db=None, login_data=login)

    assert response.expires_in == 86400
    assert existing.role == UserRole.LIBRARIAN
    claims = jwt.decode(response.access_token, "unit-secret", algorithms=["HS256"])
    assert claims["sub"] == "member-001"
    assert claims["email"] == "member@example.com"
    assert claims["name"] == "John Member"
    assert claims["role"] == "LIBRARIAN"
    assert claims["exp"] - claims["iat"] == 86400


async def test_dev_login_token_authenticates(dev_service: AuthService):
    login = DevLoginRequest(
        sub="admin-001", email="admin@example.com", name="Admin", role=UserRole.ADMIN
    )
    response = await dev_service.dev_login(db=None, login_data=login)

    user = await dev_service.authenticate(db=None, token=response.access_token)

    assert user.id == "admin-001"
    assert user.role == UserRole.ADMIN


async def test_get_me_missing_user(dev_service: AuthService):
    with pytest.raises(ResourceNotFound) as exc_info:
        await dev_service.get_me(db=None, user_id="ghost")

    assert exc_info.value.detail == "User not found"


# ==================== OIDC TESTS ====================


@pytest.fixture(scope="module")
def rsa_keys():
    """A private PEM for signing and the matching public JWK."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk.update({"kid": KID, "alg": "RS256", "use": "sig"})
    return private_pem, public_jwk


@pytest.fixture
def jwks_requests():
    return []


@pytest.fixture
def oidc_service(rsa_keys, jwks_requests) -> AuthService:
    _, public_jwk = rsa_keys

    def handler(request: httpx.Request) -> httpx.Response:
        jwks_requests.append(str(request.url))
        return httpx.Response(200, json={"keys": [public_jwk]})

    config = AuthConfig(
        dev_auth_enabled=True, oidc_issuer_url=ISSUER, oidc_audience=AUDIENCE
    )
    return _service(config, transport=httpx.MockTransport(handler))


def _oidc_token(private_pem, kid: str = KID, **overrides) -> str:
    claims = {
        "sub": "oidc|123",
        "email": "reader@example.com",
        "iss": ISSUER,
        "aud": AUDIENCE,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


async def test_oidc_takes_precedence_over_dev(oidc_service: AuthService):
    assert isinstance(oidc_service.verifier, OIDCTokenVerifier)


async def test_oidc_token_verified_against_jwks(
    oidc_service: AuthService, rsa_keys, jwks_requests
):
    private_pem, _ = rsa_keys

    user = await oidc_service.authenticate(db=None, token=_oidc_token(private_pem))

    assert user.id == "oidc|123"
    assert user.name == "reader@example.com"
    assert user.role == UserRole.MEMBER
    assert jwks_requests == [f"{ISSUER}/.well-known/jwks.json"]


async def test_oidc_keys_are_cached(oidc_service: AuthService, rsa_keys, jwks_requests):
    private_pem, _ = rsa_keys

    await oidc_service.authenticate(db=None, token=_oidc_token(private_pem))
    await oidc_service.authenticate(db=None, token=_oidc_token(private_pem, name="Reader"))

    assert len(jwks_requests) == 1


async def test_oidc_wrong_audience_rejected(oidc_service: AuthService, rsa_keys):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidToken):
        await oidc_service.authenticate(
            db=None, token=_oidc_token(private_pem, aud="someone-else")
        )


async def test_oidc_wrong_issuer_rejected(oidc_service: AuthService, rsa_keys):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidToken):
        await oidc_service.authenticate(
            db=None, token=_oidc_token(private_pem, iss="https://evil.example.com")
        )


async def test_oidc_unknown_kid_rejected(oidc_service: AuthService, rsa_keys):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidToken):
        await oidc_service.authenticate(
            db=None, token=_oidc_token(private_pem, kid="rotated-away")
        )


async def test_oidc_rejects_dev_tokens(oidc_service: AuthService):
    token = oidc_service.token_manager.create_token(
        subject="member-001", additional_claims={"email": "m@library.local"}
    )

    with pytest.raises(InvalidToken):
        await oidc_service.authenticate(db=None, token=token)


async def test_oidc_jwks_unreachable(rsa_keys):
    private_pem, _ = rsa_keys

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    service = _service(
        AuthConfig(oidc_issuer_url=ISSUER, oidc_audience=AUDIENCE),
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(InvalidToken):
        await service.authenticate(db=None, token=_oidc_token(private_pem))


async def test_jwks_cold_cache_fetched_once_under_concurrency(rsa_keys):
    _, public_jwk = rsa_keys
    fetches = []

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        fetches.append(str(request.url))
        await asyncio.sleep(0.01)
        return httpx.Response(200, json={"keys": [public_jwk]})

    client = JWKSClient(
        f"{ISSUER}/.well-known/jwks.json", transport=httpx.MockTransport(slow_handler)
    )

    keys = await asyncio.gather(*(client.get_signing_key(KID) for _ in range(5)))

    assert len(fetches) == 1
    assert all(key["kid"] == KID for key in keys)
