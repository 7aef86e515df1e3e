"""
Mock AI service.

Deterministic stand-ins for metadata suggestion and semantic search. Genre
suggestions come from title keywords; search is plain keyword overlap scoring.
"""
import json
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from library_api.core.config import settings
from library_api.crud.book_crud import book_repository
from library_api.models.book_model import Book
from library_api.schemas.ai_schema import (
    MetadataSuggestion,
    SemanticSearchResponse,
    SemanticSearchResult,
    SuggestMetadataRequest,
)

logger = logging.getLogger(__name__)

# (title keywords, genre, tags, description template, confidence), first match wins
GENRE_RULES: List[Tuple[Tuple[str, ...], str, List[str], str, float]] = [
    (
        ("program", "code", "software", "algorithm"),
        "Technology / Software Engineering",
        ["programming", "software-engineering", "technology"],
        'A technical book covering software development concepts and practices. "{title}" explores key programming principles.',
        0.85,
    ),
    (
        ("design", "pattern", "architecture"),
        "Technology / Software Design",
        ["design-patterns", "architecture", "software-design"],
        'A book on software design principles and patterns. "{title}" provides guidance on creating well-structured systems.',
        0.8,
    ),
    (
        ("science", "physics", "math"),
        "Science",
        ["science", "academic", "non-fiction"],
        'An educational book about scientific concepts. "{title}" delves into fundamental scientific principles.',
        0.75,
    ),
    (
        ("history", "war", "civilization"),
        "History",
        ["history", "non-fiction", "educational"],
        'A historical narrative or analysis. "{title}" examines significant events and their impact.',
        0.7,
    ),
]

DEFAULT_GENRE = "General Fiction"
DEFAULT_TAGS = ["book"]
DEFAULT_DESCRIPTION = 'A book titled "{title}"'
DEFAULT_CONFIDENCE = 0.6

MIN_TERM_LENGTH = 3


def _round_score(score: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(score)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _searchable_text(book: Book) -> str:
    tags = json.dumps(book.tags, separators=(",", ":")) if book.tags else ""
    parts = [book.title, book.author, book.genre or "", book.description or "", tags]
    return " ".join(parts).lower()


class AIService:
    def __init__(self, provider: Optional[str] = None):
        self.book_repository = book_repository
        self.provider = provider or settings.AI_PROVIDER
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def suggest_metadata(self, request: SuggestMetadataRequest) -> MetadataSuggestion:
        title = request.title.lower()

        genre, tags = DEFAULT_GENRE, list(DEFAULT_TAGS)
        description = DEFAULT_DESCRIPTION.format(title=request.title)
        confidence = DEFAULT_CONFIDENCE

        for keywords, rule_genre, rule_tags, template, rule_confidence in GENRE_RULES:
            if any(keyword in title for keyword in keywords):
                genre, tags = rule_genre, list(rule_tags)
                description = template.format(title=request.title)
                confidence = rule_confidence
                break

        if request.author:
            description += f" By {request.author}."

        return MetadataSuggestion(
            genre=genre,
            tags=tags,
            description=description,
            confidence=confidence,
            provider=self.provider,
        )

    async def semantic_search(
        self, db: AsyncSession, *, query: str, limit: int = 5
    ) -> SemanticSearchResponse:
        """
        Score every book by the share of query terms found in its metadata.

        Terms of two characters or fewer never match but still count towards
        the total. Books scoring zero are dropped; ties keep catalog order.
        """
        terms = re.split(r"\s+", query.lower())
        books = await self.book_repository.get_all(db)

        scored = []
        for book in books:
            searchable = _searchable_text(book)
            matches = sum(
                1 for term in terms if len(term) >= MIN_TERM_LENGTH and term in searchable
            )
            score = matches / len(terms) if terms else 0
            if score > 0:
                scored.append((book, score, matches))

        scored.sort(key=lambda item: item[1], reverse=True)

        results = [
            SemanticSearchResult(
                id=book.id,
                title=book.title,
                author=book.author,
                score=_round_score(score),
                reason=f"Matched {matches} of {len(terms)} query terms in book metadata.",
            )
            for book, score, matches in scored[:limit]
        ]

        self._logger.info(
            "Semantic search completed",
            extra={"term_count": len(terms), "result_count": len(results)},
        )
        return SemanticSearchResponse(results=results, provider=self.provider)


ai_service = AIService()
