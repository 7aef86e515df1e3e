from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import AuthConfig
from library_api.db import base  # noqa: F401
from library_api.db.session import get_session
from library_api.main import app
from library_api.models.book_model import Book
from library_api.services.auth_service import AuthService
from library_api.utils.deps import get_auth_service

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-secret"

# --- Test Database Setup ---


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# --- Auth Setup ---


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(dev_auth_enabled=True, jwt_secret=TEST_JWT_SECRET)


@pytest.fixture
def test_auth_service(auth_config: AuthConfig) -> AuthService:
    return AuthService(auth_config)


@pytest.fixture
def make_token(test_auth_service: AuthService) -> Callable[..., str]:
    """Builds a dev token for an arbitrary identity."""

    def _make_token(sub: str, role: str = "MEMBER", email: str = None, name: str = None) -> str:
        return test_auth_service.token_manager.create_token(
            subject=sub,
            additional_claims={
                "email": email or f"{sub}@library.local",
                "name": name or sub.title(),
                "role": role,
            },
        )

    return _make_token


@pytest.fixture
def admin_headers(make_token) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('admin-001', 'ADMIN')}"}


@pytest.fixture
def librarian_headers(make_token) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('librarian-001', 'LIBRARIAN')}"}


@pytest.fixture
def member_headers(make_token) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('member-001', 'MEMBER')}"}


# --- HTTP Client ---


@pytest_asyncio.fixture
async def test_client(
    session_factory, test_auth_service: AuthService
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for API testing, overriding the DB and auth dependencies.
    """

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_auth_service] = lambda: test_auth_service

    # Unhandled errors are turned into 500 responses instead of propagating
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


# --- Test Data Fixtures ---


@pytest.fixture
def sample_book_data() -> Dict:
    return {
        "title": "Clean Code",
        "author": "Robert C. Martin",
        "isbn": "978-0132350884",
        "genre": "Technology",
        "publishedYear": 2008,
        "tags": ["programming", "Clean-Code"],
        "description": "A handbook of agile software craftsmanship.",
    }


@pytest_asyncio.fixture
async def sample_books(db_session: AsyncSession) -> list[Book]:
    """Three books inserted straight into the database."""
    books = [
        Book(
            title="The Pragmatic Programmer",
            author="David Thomas, Andrew Hunt",
            isbn="978-0135957059",
            genre="Technology",
            published_year=2019,
            tags=["programming", "best-practices"],
            description="A classic guide to software development best practices.",
        ),
        Book(
            title="Dune",
            author="Frank Herbert",
            isbn="978-0441013593",
            genre="Science Fiction",
            published_year=1965,
            tags=["sci-fi", "desert"],
            description="Set on the desert planet Arrakis.",
        ),
        Book(
            title="1984",
            author="George Orwell",
            isbn="978-0451524935",
            genre="Dystopian Fiction",
            published_year=1949,
            tags=["classic", "dystopian"],
            description="A dystopian novel set in a totalitarian society.",
        ),
    ]
    for book in books:
        db_session.add(book)
    await db_session.commit()
    for book in books:
        await db_session.refresh(book)
    # End the read transaction opened by refresh()
    await db_session.commit()
    return books
