from typing import List, Optional

from pydantic import BaseModel, Field


class SuggestMetadataRequest(BaseModel):
    title: str = Field(..., min_length=1, examples=["Refactoring Legacy Code"])
    author: Optional[str] = Field(None, examples=["Michael Feathers"])


class MetadataSuggestion(BaseModel):
    genre: str
    tags: List[str]
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    provider: str


class SemanticSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, examples=["pragmatic programming"])
    limit: int = Field(5, ge=1, le=20, description="Maximum number of results")


class SemanticSearchResult(BaseModel):
    id: str
    title: str
    author: str
    score: float
    reason: str


class SemanticSearchResponse(BaseModel):
    results: List[SemanticSearchResult]
    provider: str
