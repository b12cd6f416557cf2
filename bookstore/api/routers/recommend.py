"""
Recommendation Endpoints
GET /api/v1/books/{book_id}/similar and /recommendations.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from ...catalog.items import CatalogItem
from ...ml.recommendation import RecommendationEngine
from ...ml.retrieval import SimilaritySearchEngine
from ..dependencies import get_book, get_recommendation_engine, get_search_engine
from ..models.recommend import RecommendationResponse
from ..models.search import BookResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/books", tags=["recommend"])


@router.get("/{book_id}/similar", response_model=RecommendationResponse, status_code=status.HTTP_200_OK)
def similar_books(
    limit: int = Query(5, ge=1, le=50, description="Maximum number of results"),
    book: CatalogItem = Depends(get_book),
    engine: SimilaritySearchEngine = Depends(get_search_engine),
) -> RecommendationResponse:
    """Books nearest to this one by embedding."""
    items = engine.find_similar_books(book, limit)
    return RecommendationResponse(
        book_id=book.id,
        results=[BookResult.from_item(item) for item in items],
        total=len(items),
    )


@router.get(
    "/{book_id}/recommendations", response_model=RecommendationResponse, status_code=status.HTTP_200_OK
)
def recommendations(
    limit: int = Query(4, ge=1, le=20, description="Maximum number of recommendations"),
    explain: bool = Query(False, description="Add a short explanation per recommendation"),
    book: CatalogItem = Depends(get_book),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> RecommendationResponse:
    """
    Recommendations for readers of this book.

    Similar books re-ranked by the language model; same-genre in-stock books
    when that is unavailable.
    """
    items = engine.recommend(book, limit)
    logger.info(f"Recommendations for book {book.id}: {[item.id for item in items]}")

    results = [
        BookResult.from_item(item, engine.explain_recommendation(book, item) if explain else None)
        for item in items
    ]
    return RecommendationResponse(book_id=book.id, results=results, total=len(results))
