import logging

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.db.session import get_session
from library_api.schemas.ai_schema import (
    MetadataSuggestion,
    SemanticSearchRequest,
    SemanticSearchResponse,
    SuggestMetadataRequest,
)
from library_api.schemas.common_schema import ERROR_RESPONSES
from library_api.services.ai_service import ai_service
from library_api.utils.deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["AI"],
    prefix=f"{settings.API_V1_STR}/ai",
    dependencies=[Depends(get_current_user)],
    responses={400: ERROR_RESPONSES[400], 401: ERROR_RESPONSES[401]},
)


@router.post(
    "/suggest-metadata",
    response_model=MetadataSuggestion,
    status_code=status.HTTP_201_CREATED,
    summary="Suggest book metadata",
    description="Suggest genre, tags and a description from a title and optional author.",
)
async def suggest_metadata(*, request_data: SuggestMetadataRequest):
    return ai_service.suggest_metadata(request_data)


@router.post(
    "/semantic-search",
    response_model=SemanticSearchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Search books by meaning",
    description="Rank catalog books by how many query terms appear in their metadata.",
)
async def semantic_search(
    *,
    db: AsyncSession = Depends(get_session),
    request_data: SemanticSearchRequest,
):
    return await ai_service.semantic_search(
        db, query=request_data.query, limit=request_data.limit
    )
