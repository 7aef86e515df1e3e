# library_api/schemas/book_schema.py
"""
Book schemas for request/response models.

Wire payloads use camelCase keys (``publishedYear``, ``coverImageUrl``); the
Python side keeps snake_case attribute names. Both spellings are accepted on
input.
"""
from datetime import datetime
from typing import Optional, List
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    field_validator,
)

from library_api.models.book_model import BookStatus
from library_api.schemas.common_schema import CamelModel

_http_url = TypeAdapter(HttpUrl)


class BookSortField(str, Enum):
    """Fields a book listing may be ordered by."""

    TITLE = "title"
    AUTHOR = "author"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    PUBLISHED_YEAR = "publishedYear"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookBase(CamelModel):
    """Base schema for book data."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="The title of the book",
        examples=["Clean Code"],
    )
    author: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="The author of the book",
        examples=["Robert C. Martin"],
    )
    isbn: Optional[str] = Field(
        None, max_length=32, description="ISBN", examples=["978-0132350884"]
    )
    genre: Optional[str] = Field(None, max_length=255, examples=["Technology"])
    published_year: Optional[int] = Field(
        None, ge=0, le=2100, description="Year of publication", examples=[2008]
    )
    tags: Optional[List[str]] = Field(
        None,
        description="Tag names in display order",
        examples=[["programming", "clean-code"]],
    )
    description: Optional[str] = Field(None, description="Free-text summary")
    cover_image_url: Optional[str] = Field(
        None, max_length=2048, description="Absolute http(s) URL of a cover image"
    )

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        """Strip leading and trailing whitespace."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("cover_image_url")
    @classmethod
    def validate_cover_image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                _http_url.validate_python(v)
            except ValueError:
                raise ValueError("Must be a valid URL") from None
        return v


class BookCreate(BookBase):
    """Schema for creating a new book. Status and checkout fields are not accepted."""

    pass


class BookUpdate(BookBase):
    """
    Partial update. Only fields present in the request are applied; an empty
    ``tags`` list clears the tags, ``null`` clears an optional field.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    author: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("title", "author")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class BookResponse(CamelModel):
    """Book as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    author: str
    isbn: Optional[str] = None
    genre: Optional[str] = None
    published_year: Optional[int] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    status: BookStatus
    checked_out_by_user_id: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PaginationMeta(CamelModel):
    total: int = Field(..., ge=0, description="Total number of matching books")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., ge=1, le=100, description="Page size")
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, *, total: int, page: int, limit: int) -> "PaginationMeta":
        total_pages = (total + limit - 1) // limit  # Ceiling division
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class BookListResponse(CamelModel):
    """Response schema for paginated book list."""

    data: List[BookResponse] = Field(..., description="Books on this page")
    meta: PaginationMeta


class BookFilters(BaseModel):
    """Filters applied to a book listing."""

    q: Optional[str] = None
    status: Optional[BookStatus] = None
    genre: Optional[str] = None
    author: Optional[str] = None


__all__ = [
    "BookSortField",
    "SortOrder",
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "PaginationMeta",
    "BookListResponse",
    "BookFilters",
]
