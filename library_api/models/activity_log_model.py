"""
Activity log model.

Append-only audit trail of mutating book operations. Entries are never updated
or deleted, and ``book_id`` is deliberately not a foreign key so the trail of a
deleted book survives it.
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Index
from sqlmodel import SQLModel, Field, Column, DateTime, String

from library_api.models.user_model import utcnow


class ActivityType(str, PyEnum):
    BOOK_CREATED = "BOOK_CREATED"
    BOOK_UPDATED = "BOOK_UPDATED"
    BOOK_DELETED = "BOOK_DELETED"
    BOOK_CHECKED_OUT = "BOOK_CHECKED_OUT"
    BOOK_CHECKED_IN = "BOOK_CHECKED_IN"


class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_logs"
    __table_args__ = (Index("idx_activity_book_id", "book_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    type: ActivityType = Field(nullable=False)
    book_id: str = Field(sa_column=Column(String(36), nullable=False))
    actor_user_id: str = Field(foreign_key="users.id")
    # "metadata" is reserved on declarative models, so the attribute is renamed.
    event_metadata: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), default=utcnow, nullable=False),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, type='{self.type.value}', book_id={self.book_id})>"
