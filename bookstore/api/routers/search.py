"""
Search Endpoints
GET /api/v1/search* - Smart, semantic, hybrid and natural-language book search.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...catalog.items import CatalogItem
from ...ml.retrieval import SimilaritySearchEngine, extract_main_keyword
from ...ml.understanding import QueryUnderstanding
from ..dependencies import get_query_understanding, get_search_engine
from ..errors import InvalidRequestError
from ..models.search import BookResult, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/search", tags=["search"])


def _response(query: str, mode: str, items: List[CatalogItem], **extra) -> SearchResponse:
    return SearchResponse(
        query=query,
        mode=mode,
        results=[BookResult.from_item(item) for item in items],
        total=len(items),
        **extra,
    )


def _require_query(q: str) -> str:
    if not q.strip():
        raise InvalidRequestError("Query must not be blank", details={"q": q})
    return q.strip()


@router.get("", response_model=SearchResponse, status_code=status.HTTP_200_OK)
def search(
    q: str = Query("", max_length=500, description="Search query; blank lists the catalog"),
    engine: SimilaritySearchEngine = Depends(get_search_engine),
) -> SearchResponse:
    """
    Smart default search.

    Semantic results first, topped up with title matches when there are few.
    A blank query returns the whole catalog.
    """
    items = engine.search(q)
    logger.info(f"Smart search '{q}': {len(items)} results")
    return _response(q, "smart", items)


@router.get("/semantic", response_model=SearchResponse, status_code=status.HTTP_200_OK)
def semantic_search(
    q: str = Query(..., max_length=500, description="Search query"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of results"),
    genre: Optional[str] = Query(None, description="Restrict to this genre"),
    in_stock: bool = Query(False, description="Only books in stock"),
    engine: SimilaritySearchEngine = Depends(get_search_engine),
) -> SearchResponse:
    """Nearest books by embedding, optionally restricted by genre or stock."""
    query = _require_query(q)

    if genre:
        items = engine.semantic_search_by_genre(query, genre, limit)
    elif in_stock:
        items = engine.semantic_search_in_stock(query, limit)
    else:
        items = engine.semantic_search(query, limit)

    return _response(query, "semantic", items)


@router.get("/hybrid", response_model=SearchResponse, status_code=status.HTTP_200_OK)
def hybrid_search(
    q: str = Query(..., max_length=500, description="Search query"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of results"),
    engine: SimilaritySearchEngine = Depends(get_search_engine),
) -> SearchResponse:
    """Nearest books that also contain the query's main keyword."""
    query = _require_query(q)
    items = engine.hybrid_search(query, limit)
    return _response(query, "hybrid", items, keyword=extract_main_keyword(query))


@router.get("/natural", response_model=SearchResponse, status_code=status.HTTP_200_OK)
def natural_search(
    q: str = Query(..., max_length=500, description="Natural-language request"),
    explain: bool = Query(False, description="Add a short explanation per result"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of results"),
    understanding: QueryUnderstanding = Depends(get_query_understanding),
) -> SearchResponse:
    """
    Natural-language search.

    A language model extracts genre, author and keywords from the request;
    the catalog is filtered by them. Explanations cost one model call each.
    """
    query = _require_query(q)
    items = understanding.search(query)[:limit]

    results = [
        BookResult.from_item(item, understanding.explain_match(query, item) if explain else None)
        for item in items
    ]
    return SearchResponse(query=query, mode="natural", results=results, total=len(results))
