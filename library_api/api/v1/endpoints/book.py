import logging

from fastapi import APIRouter, Depends, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.db.session import get_session
from library_api.utils.deps import (
    get_current_user,
    require_admin,
    require_staff,
    BookQueryParams,
)
from library_api.schemas.book_schema import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
)
from library_api.schemas.common_schema import ERROR_RESPONSES, ErrorResponse
from library_api.models.user_model import User
from library_api.services.book_service import book_service


logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Books"],
    prefix=f"{settings.API_V1_STR}/books",
    responses={401: ERROR_RESPONSES[401]},
)

NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "Book not found"}}
CONFLICT_RESPONSE = {409: {"model": ErrorResponse, "description": "Invalid state transition"}}


@router.get(
    "",
    response_model=BookListResponse,
    status_code=status.HTTP_200_OK,
    summary="List books",
    description="Retrieve a paginated list of books with optional filtering and search",
    responses={400: ERROR_RESPONSES[400]},
    dependencies=[Depends(get_current_user)],
)
async def list_books(
    *,
    db: AsyncSession = Depends(get_session),
    params: BookQueryParams = Depends(),
):
    """
    List books.

    - **q**: Case-insensitive search across title, author, genre, ISBN, description and tags
    - **status**: AVAILABLE or CHECKED_OUT
    - **genre** / **author**: Case-insensitive substring filters
    - **sortBy**: Unsupported values fall back to newest first
    """
    return await book_service.get_books(
        db,
        page=params.page,
        limit=params.limit,
        filters=params.filters,
        sort_by=params.sort_by,
        sort_order=params.sort_order,
    )


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new book",
    description="Create a new book entry. New books are always AVAILABLE.",
    responses={400: ERROR_RESPONSES[400], 403: ERROR_RESPONSES[403]},
)
async def create_book(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_staff),
    book_data: BookCreate,
):
    """
    Create a new book.
    - **title**: The title of the book (required)
    - **author**: The author of the book (required)
    - **publishedYear**: Between 0 and 2100
    - **coverImageUrl**: Absolute http(s) URL
    - **tags**: List of tag names
    """
    return await book_service.create_book(
        db, book_data=book_data, actor_id=current_user.id
    )


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    status_code=status.HTTP_200_OK,
    summary="Get book by id",
    description="Get a single book by its id.",
    responses=NOT_FOUND_RESPONSE,
    dependencies=[Depends(get_current_user)],
)
async def get_book(
    *,
    db: AsyncSession = Depends(get_session),
    book_id: str,
):
    return await book_service.get_book_by_id(db, book_id=book_id)


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a book",
    description="Partially update a book. Only the fields sent are changed.",
    responses={400: ERROR_RESPONSES[400], 403: ERROR_RESPONSES[403], **NOT_FOUND_RESPONSE},
)
async def update_book(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_staff),
    book_id: str,
    book_data: BookUpdate,
):
    return await book_service.update_book(
        db, book_id=book_id, book_data=book_data, actor_id=current_user.id
    )


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a book",
    description="Permanently delete a book. Admin only.",
    responses={403: ERROR_RESPONSES[403], **NOT_FOUND_RESPONSE},
)
async def delete_book(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
    book_id: str,
):
    await book_service.delete_book(db, book_id=book_id, actor_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{book_id}/checkout",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check out a book",
    description="Mark an available book as checked out by the caller.",
    responses={403: ERROR_RESPONSES[403], **NOT_FOUND_RESPONSE, **CONFLICT_RESPONSE},
)
async def checkout_book(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_staff),
    book_id: str,
):
    return await book_service.checkout_book(
        db, book_id=book_id, actor_id=current_user.id
    )


@router.post(
    "/{book_id}/checkin",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check in a book",
    description="Return a checked out book to the shelf.",
    responses={403: ERROR_RESPONSES[403], **NOT_FOUND_RESPONSE, **CONFLICT_RESPONSE},
)
async def checkin_book(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_staff),
    book_id: str,
):
    return await book_service.checkin_book(
        db, book_id=book_id, actor_id=current_user.id
    )
