"""
Dependency Injection
FastAPI dependencies for the database session and the search services.
"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..catalog.items import CatalogItem
from ..catalog.repository import BookRepository
from ..db.session import get_db
from ..indexing.service import IndexingService
from ..ml.embeddings import EmbeddingGenerator, get_embedding_generator
from ..ml.errors import ErrorKind
from ..ml.llm import LanguageModel, get_language_model
from ..ml.recommendation import RecommendationEngine
from ..ml.retrieval import SimilaritySearchEngine, VectorStore
from ..ml.understanding import QueryUnderstanding
from .errors import InvalidRequestError, ResourceNotFoundError

logger = logging.getLogger(__name__)


def get_generator() -> EmbeddingGenerator:
    """Process-wide embedding generator."""
    return get_embedding_generator()


def get_llm() -> Optional[LanguageModel]:
    """Process-wide language model (None when not configured)."""
    return get_language_model()


def get_repository(db: Session = Depends(get_db)) -> BookRepository:
    return BookRepository(db)


def get_vector_store(
    db: Session = Depends(get_db),
    generator: EmbeddingGenerator = Depends(get_generator),
) -> VectorStore:
    return VectorStore(db, model_version=generator.name)


def get_search_engine(
    generator: EmbeddingGenerator = Depends(get_generator),
    vector_store: VectorStore = Depends(get_vector_store),
    repository: BookRepository = Depends(get_repository),
) -> SimilaritySearchEngine:
    """
    Get search engine instance.

    Use as FastAPI dependency:
        @router.get("/search")
        def search(engine: SimilaritySearchEngine = Depends(get_search_engine)):
            ...
    """
    return SimilaritySearchEngine(generator, vector_store, repository)


def get_query_understanding(
    llm: Optional[LanguageModel] = Depends(get_llm),
    repository: BookRepository = Depends(get_repository),
) -> QueryUnderstanding:
    return QueryUnderstanding(llm, repository)


def get_recommendation_engine(
    search_engine: SimilaritySearchEngine = Depends(get_search_engine),
    llm: Optional[LanguageModel] = Depends(get_llm),
    repository: BookRepository = Depends(get_repository),
) -> RecommendationEngine:
    return RecommendationEngine(search_engine, llm, repository)


def get_indexing_service(db: Session = Depends(get_db)) -> IndexingService:
    return IndexingService(db)


def get_book(book_id: int, repository: BookRepository = Depends(get_repository)) -> CatalogItem:
    """
    Resolve the ``book_id`` path parameter to a catalog item.

    Raises:
        ResourceNotFoundError: If the book does not exist
        InvalidRequestError: If the id is not a valid book id
    """
    result = repository.get(book_id)
    if result.ok:
        return result.value

    if result.error_kind == ErrorKind.NOT_FOUND:
        raise ResourceNotFoundError("Book", book_id)
    raise InvalidRequestError(result.message, details={"book_id": book_id})
