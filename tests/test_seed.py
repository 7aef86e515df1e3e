# tests/test_seed.py
import pytest
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.db.seed import seed
from library_api.models.book_model import Book, BookStatus
from library_api.models.user_model import User, UserRole

pytestmark = pytest.mark.asyncio


async def test_seed_populates_demo_data(db_session: AsyncSession):
    await seed(db_session)

    users = (await db_session.execute(select(User))).scalars().all()
    books = (await db_session.execute(select(Book))).scalars().all()

    assert {u.id: u.role for u in users} == {
        "admin-001": UserRole.ADMIN,
        "librarian-001": UserRole.LIBRARIAN,
        "member-001": UserRole.MEMBER,
    }
    assert len(books) == 5

    design_patterns = await db_session.get(Book, "book-004")
    assert design_patterns.status == BookStatus.CHECKED_OUT
    assert design_patterns.checked_out_by_user_id == "member-001"
    assert design_patterns.checked_out_at is not None


async def test_seed_is_idempotent(db_session: AsyncSession):
    await seed(db_session)
    await seed(db_session)

    books = (await db_session.execute(select(Book))).scalars().all()
    assert len(books) == 5
