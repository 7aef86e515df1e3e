# library_api/models/book_model.py
"""
Book model definition.

A book is a single catalog item. Its checkout state lives entirely in three
columns: ``status``, ``checked_out_by_user_id`` and ``checked_out_at``, which
are either all set (CHECKED_OUT) or all cleared (AVAILABLE).
"""
import json
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import Index, Text
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field, Column, DateTime, String

from library_api.models.user_model import utcnow


class BookStatus(str, PyEnum):
    AVAILABLE = "AVAILABLE"
    CHECKED_OUT = "CHECKED_OUT"


class JSONEncodedList(TypeDecorator):
    """Stores a list of strings as compact JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(list(value), separators=(",", ":"))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value)


class BookBase(SQLModel):

    title: str = Field(
        min_length=1,
        max_length=255,
        description="The title of the book",
        schema_extra={"example": "Clean Code"},
    )
    author: str = Field(
        min_length=1,
        max_length=255,
        description="The author of the book",
        schema_extra={"example": "Robert C. Martin"},
    )
    isbn: Optional[str] = Field(default=None, max_length=32)
    genre: Optional[str] = Field(default=None, max_length=255)
    published_year: Optional[int] = Field(default=None, ge=0, le=2100)
    description: Optional[str] = Field(default=None, sa_type=Text)
    cover_image_url: Optional[str] = Field(default=None, max_length=2048)


class Book(BookBase, table=True):
    __tablename__ = "books"
    __table_args__ = (
        Index("idx_book_status", "status"),
        Index("idx_book_author", "author"),
        Index("idx_book_created_at", "created_at"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True),
        description="Opaque unique identifier",
    )
    tags: Optional[List[str]] = Field(
        default=None,
        sa_column=Column(JSONEncodedList, nullable=True),
        description="Ordered tag names",
    )
    status: BookStatus = Field(default=BookStatus.AVAILABLE, nullable=False)
    checked_out_by_user_id: Optional[str] = Field(
        default=None,
        foreign_key="users.id",
        description="Id of the user currently holding the book",
    )
    checked_out_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), default=utcnow, nullable=False),
        description="Book creation timestamp",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(
            DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
        ),
        description="Book last updated timestamp",
    )

    @property
    def is_checked_out(self) -> bool:
        return self.status == BookStatus.CHECKED_OUT

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', status='{self.status.value}')>"
