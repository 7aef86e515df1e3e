import logging
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.exception_utils import handle_exceptions
from library_api.core.exceptions import InternalServerError
from library_api.crud.base_crud import BaseRepository
from library_api.models.user_model import User, UserRole, utcnow

logger = logging.getLogger(__name__)

DB_ERROR_MESSAGE = "An unexpected database error occurred."

# Dialects with INSERT ... ON CONFLICT support
UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


class UserRepository(BaseRepository[User]):
    """Repository for all database operations related to the User model."""

    def __init__(self):
        super().__init__(User)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: str) -> Optional[User]:
        """Retrieves a user by their ID."""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: User) -> User:
        db.add(obj_in)
        await db.commit()
        await db.refresh(obj_in)
        self._logger.info(f"User created: {obj_in.id}")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        email: str,
        name: str,
        role: UserRole,
        overwrite_role: bool = False,
    ) -> User:
        """
        Create the user if absent, otherwise refresh email and name.

        ``role`` is only applied on creation unless ``overwrite_role`` is set.
        Runs as a single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent
        first requests for the same subject both succeed.
        """
        insert = UPSERT_INSERTS[db.get_bind().dialect.name]
        statement = insert(self.model).values(
            id=user_id, email=email, name=name, role=role
        )
        changes = {
            "email": statement.excluded.email,
            "name": statement.excluded.name,
            # onupdate defaults do not fire for ON CONFLICT updates
            "updated_at": utcnow(),
        }
        if overwrite_role:
            changes["role"] = statement.excluded.role

        await db.execute(
            statement.on_conflict_do_update(
                index_elements=["id"], set_=changes
            )
        )
        await db.commit()

        result = await db.execute(
            select(self.model)
            .where(self.model.id == user_id)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one()
        self._logger.info(f"User resolved: {user.id}", extra={"role": user.role.value})
        return user


user_repository = UserRepository()
