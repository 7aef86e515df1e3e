import logging
from typing import Optional, Dict, Any, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession
from datetime import datetime, timezone

from library_api.crud.book_crud import book_repository
from library_api.crud.activity_log_crud import activity_log_repository
from library_api.schemas.book_schema import (
    BookCreate,
    BookUpdate,
    BookFilters,
    BookListResponse,
    BookResponse,
    BookSortField,
    PaginationMeta,
    SortOrder,
)
from library_api.models.book_model import Book, BookStatus
from library_api.models.activity_log_model import ActivityLog, ActivityType
from library_api.core.exception_utils import raise_for_status
from library_api.core.exceptions import (
    ResourceNotFound,
    ResourceConflict,
    ValidationError,
)

logger = logging.getLogger(__name__)


def resolve_sort(
    sort_by: Optional[str], sort_order: SortOrder = SortOrder.DESC
) -> Tuple[BookSortField, bool]:
    """
    Map a requested sort field onto the allow-list.

    Unknown fields fall back to ``createdAt`` descending regardless of the
    requested order. Returns ``(field, descending)``.
    """
    if sort_by is None:
        return BookSortField.CREATED_AT, sort_order == SortOrder.DESC
    try:
        field = BookSortField(sort_by)
    except ValueError:
        logger.info(f"Unsupported sort field '{sort_by}', using createdAt desc")
        return BookSortField.CREATED_AT, True
    return field, sort_order == SortOrder.DESC


class BookService:
    """
    Book lifecycle service.

    Owns the checkout state machine (AVAILABLE <-> CHECKED_OUT) and appends one
    activity log entry for every successful mutation. The audit entry is written
    after the mutation commits, so a failing audit write does not undo it.
    """

    def __init__(self):
        self.book_repository = book_repository
        self.activity_log_repository = activity_log_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _log_activity(
        self,
        db: AsyncSession,
        *,
        activity_type: ActivityType,
        book_id: str,
        actor_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            type=activity_type,
            book_id=book_id,
            actor_user_id=actor_id,
            event_metadata=metadata,
        )
        return await self.activity_log_repository.create(db, obj_in=entry)

    # ======= READ OPERATIONS =======
    async def get_book_by_id(self, db: AsyncSession, *, book_id: str) -> Book:
        """Get a book by its ID or raise ResourceNotFound."""
        book = await self.book_repository.get(db, obj_id=book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            detail=f"Book with id '{book_id}' not found",
            resource_type="Book",
        )
        return book

    async def get_books(
        self,
        db: AsyncSession,
        *,
        page: int = 1,
        limit: int = 20,
        filters: Optional[BookFilters] = None,
        sort_by: Optional[str] = None,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> BookListResponse:
        """Get a page of books with optional filtering and sorting."""
        if page < 1:
            raise ValidationError("Page must be a positive integer")
        if limit < 1 or limit > 100:
            raise ValidationError("Limit must be between 1 and 100")

        sort_field, order_desc = resolve_sort(sort_by, sort_order)

        books, total = await self.book_repository.get_many(
            db,
            skip=(page - 1) * limit,
            limit=limit,
            filters=filters,
            sort_field=sort_field,
            order_desc=order_desc,
        )

        response = BookListResponse(
            data=[BookResponse.model_validate(book) for book in books],
            meta=PaginationMeta.build(total=total, page=page, limit=limit),
        )

        self._logger.info(f"Book list retrieved : {len(books)} books returned")
        return response

    # ======= WRITE OPERATIONS =======
    async def create_book(
        self, db: AsyncSession, *, book_data: BookCreate, actor_id: str
    ) -> Book:
        """Create a book. New books are always AVAILABLE."""
        book_to_create = Book(
            **book_data.model_dump(),
            status=BookStatus.AVAILABLE,
            checked_out_by_user_id=None,
            checked_out_at=None,
        )
        new_book = await self.book_repository.create(db, obj_in=book_to_create)

        await self._log_activity(
            db,
            activity_type=ActivityType.BOOK_CREATED,
            book_id=new_book.id,
            actor_id=actor_id,
            metadata={"title": new_book.title},
        )

        self._logger.info(
            f"New book created: {new_book.title}",
            extra={"book_id": new_book.id, "actor_id": actor_id},
        )
        return new_book

    async def update_book(
        self,
        db: AsyncSession,
        *,
        book_id: str,
        book_data: BookUpdate,
        actor_id: str,
    ) -> Book:
        """Apply a partial update. Only fields present in ``book_data`` change."""
        book_to_update = await self.get_book_by_id(db, book_id=book_id)

        update_dict = book_data.model_dump(exclude_unset=True)
        updated_fields = list(book_data.model_dump(exclude_unset=True, by_alias=True))

        updated_book = await self.book_repository.update(
            db, book=book_to_update, fields_to_update=update_dict
        )

        await self._log_activity(
            db,
            activity_type=ActivityType.BOOK_UPDATED,
            book_id=updated_book.id,
            actor_id=actor_id,
            metadata={"updatedFields": updated_fields},
        )

        self._logger.info(
            f"Book {book_id} updated by {actor_id}",
            extra={"updated_book_id": book_id, "updated_fields": updated_fields},
        )
        return updated_book

    async def delete_book(
        self, db: AsyncSession, *, book_id: str, actor_id: str
    ) -> None:
        """Permanently delete a book."""
        book_to_delete = await self.get_book_by_id(db, book_id=book_id)
        title = book_to_delete.title

        await self.book_repository.delete(db, obj_id=book_id)

        await self._log_activity(
            db,
            activity_type=ActivityType.BOOK_DELETED,
            book_id=book_id,
            actor_id=actor_id,
            metadata={"title": title},
        )

        self._logger.warning(
            f"Book {book_id} permanently deleted by {actor_id}",
            extra={"deleted_book_id": book_id, "deleted_book_title": title},
        )

    # ======= STATE TRANSITIONS =======
    async def checkout_book(
        self, db: AsyncSession, *, book_id: str, actor_id: str
    ) -> Book:
        """AVAILABLE -> CHECKED_OUT, held by ``actor_id``."""
        book = await self.get_book_by_id(db, book_id=book_id)
        conflict = f"Book '{book.title}' is already checked out"
        raise_for_status(
            condition=book.is_checked_out,
            exception=ResourceConflict,
            detail=conflict,
        )

        title = book.title
        updated = await self.book_repository.transition_status(
            db,
            book=book,
            expected_status=BookStatus.AVAILABLE,
            fields_to_update={
                "status": BookStatus.CHECKED_OUT,
                "checked_out_by_user_id": actor_id,
                "checked_out_at": datetime.now(timezone.utc),
            },
        )
        raise_for_status(
            condition=updated is None, exception=ResourceConflict, detail=conflict
        )

        await self._log_activity(
            db,
            activity_type=ActivityType.BOOK_CHECKED_OUT,
            book_id=book_id,
            actor_id=actor_id,
            metadata={"title": title},
        )

        self._logger.info(f"Book {book_id} checked out by {actor_id}")
        return updated

    async def checkin_book(
        self, db: AsyncSession, *, book_id: str, actor_id: str
    ) -> Book:
        """CHECKED_OUT -> AVAILABLE, clearing the holder."""
        book = await self.get_book_by_id(db, book_id=book_id)
        conflict = f"Book '{book.title}' is not checked out"
        raise_for_status(
            condition=not book.is_checked_out,
            exception=ResourceConflict,
            detail=conflict,
        )

        title = book.title
        previous_holder = book.checked_out_by_user_id
        updated = await self.book_repository.transition_status(
            db,
            book=book,
            expected_status=BookStatus.CHECKED_OUT,
            fields_to_update={
                "status": BookStatus.AVAILABLE,
                "checked_out_by_user_id": None,
                "checked_out_at": None,
            },
        )
        raise_for_status(
            condition=updated is None, exception=ResourceConflict, detail=conflict
        )

        await self._log_activity(
            db,
            activity_type=ActivityType.BOOK_CHECKED_IN,
            book_id=book_id,
            actor_id=actor_id,
            metadata={"title": title, "previousHolder": previous_holder},
        )

        self._logger.info(
            f"Book {book_id} checked in by {actor_id}",
            extra={"previous_holder": previous_holder},
        )
        return updated


book_service = BookService()
