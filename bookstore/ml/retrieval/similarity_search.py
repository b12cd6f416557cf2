"""
Similarity Search Engine
Semantic, smart-default, hybrid and item-to-item search over the catalog.

Queries are embedded with the process-wide EmbeddingGenerator and answered
by the VectorStore; plain title matching comes from the BookRepository.
"""

import logging
import re
from typing import List, Optional

from ...catalog.items import CatalogItem
from ...catalog.repository import BookRepository
from ..config import MLConfig, get_ml_config
from ..embeddings.providers import EmbeddingGenerator
from ..vector_utils import is_zero_vector
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

_NON_LETTERS = re.compile(r"[^\w\s]|[\d_]")


def extract_main_keyword(query: Optional[str]) -> str:
    """
    Derive the single keyword used by hybrid search.

    The query is lower-cased, every character that is not a letter or
    whitespace is removed, and the longest remaining token is returned
    (the first one on ties). Returns "" when nothing is left.
    """
    if not query:
        return ""

    cleaned = _NON_LETTERS.sub("", query.lower())
    keyword = ""
    for token in cleaned.split():
        if len(token) > len(keyword):
            keyword = token
    return keyword


class SimilaritySearchEngine:
    """
    Catalog search built on vector similarity.

    Example:
        >>> engine = SimilaritySearchEngine(generator, VectorStore(db), BookRepository(db))
        >>> engine.search("dragons and wizards")
    """

    def __init__(
        self,
        embedding_generator: EmbeddingGenerator,
        vector_store: VectorStore,
        repository: BookRepository,
        config: Optional[MLConfig] = None,
    ):
        self.embedding_generator = embedding_generator
        self.vector_store = vector_store
        self.repository = repository
        self.config = config or get_ml_config()

    def semantic_search(self, query: str, limit: Optional[int] = None) -> List[CatalogItem]:
        """Embed the query text and return its nearest items."""
        if limit is None:
            limit = self.config.search.semantic_limit
        query_vector = self.embedding_generator.embed(query)
        return self.vector_store.find_similar(query_vector, limit)

    def search(self, query: Optional[str]) -> List[CatalogItem]:
        """
        Smart default search.

        A blank query returns the full catalog. Otherwise semantic results
        come first; when there are too few of them, title matches not already
        present are appended until the result cap is reached.
        """
        if query is None or not query.strip():
            return self.repository.find_all()

        search_config = self.config.search
        results = self.semantic_search(query, search_config.semantic_limit)

        if len(results) >= search_config.min_semantic_results:
            return results

        logger.debug(f"Only {len(results)} semantic results for '{query}', adding title matches")

        seen = {item.id for item in results}
        for item in self.repository.search_by_title(query):
            if len(results) >= search_config.max_results:
                break
            if item.id not in seen:
                results.append(item)
                seen.add(item.id)

        return results

    def hybrid_search(self, query: str, limit: Optional[int] = None) -> List[CatalogItem]:
        """Nearest items that also contain the query's main keyword."""
        if limit is None:
            limit = self.config.search.hybrid_limit
        keyword = extract_main_keyword(query)
        query_vector = self.embedding_generator.embed(query)
        return self.vector_store.hybrid_search(query_vector, keyword, limit)

    def semantic_search_by_genre(self, query: str, genre: str, limit: Optional[int] = None) -> List[CatalogItem]:
        if limit is None:
            limit = self.config.search.semantic_limit
        query_vector = self.embedding_generator.embed(query)
        return self.vector_store.find_similar_by_genre(query_vector, genre, limit)

    def semantic_search_in_stock(self, query: str, limit: Optional[int] = None) -> List[CatalogItem]:
        if limit is None:
            limit = self.config.search.semantic_limit
        query_vector = self.embedding_generator.embed(query)
        return self.vector_store.find_similar_in_stock(query_vector, limit)

    def find_similar_books(self, item: CatalogItem, limit: int) -> List[CatalogItem]:
        """
        Items nearest to ``item``, excluding itself.

        Uses the stored embedding; when the item has none it is computed from
        the item's text and persisted first. An item whose text yields no
        usable vector has no neighbours.

        Returns:
            Similar items, or an empty list on failure
        """
        try:
            vector = self.vector_store.load_embedding(item.id)

            if vector is None:
                logger.info(f"No stored embedding for item {item.id}, computing it")
                vector = self.embedding_generator.embed_for_item(item)
                if is_zero_vector(vector):
                    logger.warning(f"Could not compute an embedding for item {item.id}")
                    return []
                self.vector_store.save_embedding(item.id, vector)

            return self.vector_store.find_similar(vector, limit, exclude_id=item.id)

        except Exception as e:
            logger.error(f"Similar-item search failed for item {item.id}: {e}", exc_info=True)
            return []
