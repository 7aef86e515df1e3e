"""
Populate a development database with demo users and books.

Run with ``python -m library_api.db.seed``. Existing rows are left untouched,
so the script can be run repeatedly.
"""
import asyncio
import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.core.logging_config import setup_logging
from library_api.db.session import Database, db as default_db
from library_api.models.book_model import Book, BookStatus
from library_api.models.user_model import User, UserRole, utcnow

logger = logging.getLogger(__name__)

users_data = [
    ("admin-001", "admin@library.local", "Admin User", UserRole.ADMIN),
    ("librarian-001", "librarian@library.local", "Jane Librarian", UserRole.LIBRARIAN),
    ("member-001", "member@library.local", "John Member", UserRole.MEMBER),
]

books_data = [
    {
        "id": "book-001",
        "title": "The Pragmatic Programmer",
        "author": "David Thomas, Andrew Hunt",
        "isbn": "978-0135957059",
        "genre": "Technology",
        "published_year": 2019,
        "tags": ["programming", "software-engineering", "best-practices"],
        "description": "Your journey to mastery. A classic guide to software development best practices.",
    },
    {
        "id": "book-002",
        "title": "Clean Code",
        "author": "Robert C. Martin",
        "isbn": "978-0132350884",
        "genre": "Technology",
        "published_year": 2008,
        "tags": ["programming", "clean-code", "refactoring"],
        "description": "A handbook of agile software craftsmanship for writing readable and maintainable code.",
    },
    {
        "id": "book-003",
        "title": "Dune",
        "author": "Frank Herbert",
        "isbn": "978-0441013593",
        "genre": "Science Fiction",
        "published_year": 1965,
        "tags": ["sci-fi", "classic", "desert", "politics"],
        "description": "Set on the desert planet Arrakis, Dune is the story of the boy Paul Atreides.",
    },
    {
        "id": "book-004",
        "title": "Design Patterns",
        "author": "Erich Gamma, Richard Helm, Ralph Johnson, John Vlissides",
        "isbn": "978-0201633610",
        "genre": "Technology",
        "published_year": 1994,
        "tags": ["programming", "design-patterns", "oop"],
        "description": "Elements of Reusable Object-Oriented Software by the Gang of Four.",
        "checked_out_by": "member-001",
    },
    {
        "id": "book-005",
        "title": "1984",
        "author": "George Orwell",
        "isbn": "978-0451524935",
        "genre": "Dystopian Fiction",
        "published_year": 1949,
        "tags": ["classic", "dystopian", "politics"],
        "description": "A dystopian novel set in a totalitarian society ruled by Big Brother.",
    },
]


async def seed(session: AsyncSession) -> None:
    """Insert any demo users and books that are not already present."""
    for user_id, email, name, role in users_data:
        if await session.get(User, user_id) is None:
            session.add(User(id=user_id, email=email, name=name, role=role))
    await session.commit()

    for data in books_data:
        data = dict(data)
        holder = data.pop("checked_out_by", None)
        if await session.get(Book, data["id"]) is not None:
            continue
        book = Book(**data)
        if holder:
            book.status = BookStatus.CHECKED_OUT
            book.checked_out_by_user_id = holder
            book.checked_out_at = utcnow()
        session.add(book)
    await session.commit()

    logger.info(
        "Seed completed",
        extra={
            "users": [name for _, _, name, _ in users_data],
            "books": [book["title"] for book in books_data],
        },
    )


async def main(database: Database = default_db) -> None:
    await database.connect()
    try:
        async with database.session_factory() as session:
            await seed(session)
    finally:
        await database.disconnect()


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    asyncio.run(main())
