import logging
from typing import List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.exception_utils import handle_exceptions
from library_api.core.exceptions import InternalServerError
from library_api.crud.base_crud import BaseRepository
from library_api.models.activity_log_model import ActivityLog

logger = logging.getLogger(__name__)

DB_ERROR_MESSAGE = "An unexpected database error occurred."


class ActivityLogRepository(BaseRepository[ActivityLog]):
    """Append-only storage for audit entries. There is no update or delete."""

    def __init__(self):
        super().__init__(ActivityLog)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int):
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: ActivityLog) -> ActivityLog:
        db.add(obj_in)
        await db.commit()
        await db.refresh(obj_in)
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def list_for_book(self, db: AsyncSession, *, book_id: str) -> List[ActivityLog]:
        """A book's audit trail, oldest first."""
        statement = (
            select(self.model)
            .where(self.model.book_id == book_id)
            .order_by(self.model.created_at, self.model.id)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())


activity_log_repository = ActivityLogRepository()
