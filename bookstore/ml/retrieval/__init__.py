"""
Retrieval Module
pgvector nearest-neighbor storage and catalog search.
"""

from .vector_store import VectorStore
from .similarity_search import SimilaritySearchEngine, extract_main_keyword

__all__ = [
    "VectorStore",
    "SimilaritySearchEngine",
    "extract_main_keyword",
]
