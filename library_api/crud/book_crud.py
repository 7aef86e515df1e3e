import logging
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import Text, type_coerce, update
from sqlmodel import select, func, and_, or_, delete
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.exception_utils import handle_exceptions
from library_api.core.exceptions import InternalServerError
from library_api.crud.base_crud import BaseRepository
from library_api.models.book_model import Book, BookStatus
from library_api.schemas.book_schema import BookFilters, BookSortField

logger = logging.getLogger(__name__)

DB_ERROR_MESSAGE = "An unexpected database error occurred."

# Explicit whitelist of orderable columns
SORT_COLUMNS = {
    BookSortField.TITLE: Book.title,
    BookSortField.AUTHOR: Book.author,
    BookSortField.CREATED_AT: Book.created_at,
    BookSortField.UPDATED_AT: Book.updated_at,
    BookSortField.PUBLISHED_YEAR: Book.published_year,
    BookSortField.STATUS: Book.status,
}


class BookRepository(BaseRepository[Book]):
    """Catalog storage: lookups, filtered listing and conditional status updates."""

    def __init__(self):
        super().__init__(Book)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: str) -> Optional[Book]:
        """Retrieves a book by its ID."""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_many(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 20,
        filters: Optional[BookFilters] = None,
        sort_field: BookSortField = BookSortField.CREATED_AT,
        order_desc: bool = True,
    ) -> Tuple[List[Book], int]:
        """One page of books plus the total number of matches."""
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = self._apply_ordering(query, sort_field, order_desc)

        paginated_query = query.offset(skip).limit(limit)
        result = await db.execute(paginated_query)
        books = list(result.scalars().all())

        return books, total

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_all(self, db: AsyncSession) -> List[Book]:
        """Every book in the catalog, oldest first."""
        statement = select(self.model).order_by(self.model.created_at, self.model.id)
        result = await db.execute(statement)
        return list(result.scalars().all())

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: Book) -> Book:
        """Persist a pre-constructed Book model object."""
        db.add(obj_in)
        await db.commit()
        await db.refresh(obj_in)
        self._logger.info(f"Book created: {obj_in.id}")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, book: Book, fields_to_update: Dict[str, Any]
    ) -> Book:
        """Updates specific fields of a book object."""
        for field, value in fields_to_update.items():
            setattr(book, field, value)

        db.add(book)
        await db.commit()
        await db.refresh(book)

        self._logger.info(
            f"Book fields updated for {book.id}: {list(fields_to_update.keys())}"
        )
        return book

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def transition_status(
        self,
        db: AsyncSession,
        *,
        book: Book,
        expected_status: BookStatus,
        fields_to_update: Dict[str, Any],
    ) -> Optional[Book]:
        """
        Conditionally update a book only while it is still in ``expected_status``.

        Returns the refreshed book, or None when another request changed the
        status first (zero rows matched).
        """
        statement = (
            update(self.model)
            .where(
                and_(
                    self.model.id == book.id,
                    self.model.status == expected_status,
                )
            )
            .values(**fields_to_update)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(statement)
        await db.commit()

        if result.rowcount == 0:
            self._logger.warning(
                "Status transition lost a race",
                extra={"book_id": book.id, "expected_status": expected_status.value},
            )
            return None

        await db.refresh(book)
        return book

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete(self, db: AsyncSession, *, obj_id: str) -> None:
        """Hard delete. Activity entries for the book are kept."""
        statement = delete(self.model).where(self.model.id == obj_id)
        await db.execute(statement)
        await db.commit()
        self._logger.info(f"Book hard deleted: {obj_id}")

    def _apply_filters(self, query, *, filters: BookFilters):
        """AND together the structured filters; ``q`` ORs across the text columns."""
        conditions = []

        if filters.status:
            conditions.append(self.model.status == filters.status)

        if filters.genre:
            conditions.append(self.model.genre.icontains(filters.genre, autoescape=True))

        if filters.author:
            conditions.append(self.model.author.icontains(filters.author, autoescape=True))

        if filters.q:
            conditions.append(
                or_(
                    self.model.title.icontains(filters.q, autoescape=True),
                    self.model.author.icontains(filters.q, autoescape=True),
                    self.model.genre.icontains(filters.q, autoescape=True),
                    self.model.isbn.icontains(filters.q, autoescape=True),
                    self.model.description.icontains(filters.q, autoescape=True),
                    # Match against the stored JSON text, not the decoded list
                    type_coerce(self.model.tags, Text).icontains(filters.q, autoescape=True),
                )
            )

        if conditions:
            query = query.where(and_(*conditions))

        return query

    def _apply_ordering(self, query, sort_field: BookSortField, order_desc: bool):
        """Order by a whitelisted column with id as the tiebreaker."""
        order_column = SORT_COLUMNS[sort_field]
        if order_desc:
            return query.order_by(order_column.desc(), self.model.id)
        return query.order_by(order_column.asc(), self.model.id)


book_repository = BookRepository()
