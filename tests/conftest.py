"""
Pytest configuration and shared fixtures
"""

from datetime import datetime
from typing import Dict, List, Optional

import numpy as np
import pytest

from bookstore.catalog.items import CatalogItem
from bookstore.ml.config import MLConfig, reset_config
from bookstore.ml.embeddings import MockEmbeddingGenerator
from bookstore.ml.errors import ErrorKind, ProviderUnavailable, Result
from bookstore.ml.llm import LanguageModel
from bookstore.ml.retrieval.vector_store import utc_now
from bookstore.ml.vector_utils import cosine_distance

TEST_DIMENSION = 16


class FakeVectorStore:
    """In-memory stand-in for VectorStore: cosine distance order, id tie-break."""

    def __init__(self, items: List[CatalogItem]):
        self.items = {item.id: item for item in items}
        self.embeddings: Dict[int, np.ndarray] = {}
        self.saved: List[int] = []
        self.generated_at: Dict[int, datetime] = {}

    def _rank(self, query_vector, limit, predicate=lambda item: True) -> List[CatalogItem]:
        candidates = [
            self.items[item_id]
            for item_id in self.embeddings
            if item_id in self.items and predicate(self.items[item_id])
        ]
        candidates.sort(key=lambda item: (cosine_distance(query_vector, self.embeddings[item.id]), item.id))
        return candidates[:limit]

    def find_similar(self, query_vector, limit, exclude_id=None):
        return self._rank(query_vector, limit, lambda item: item.id != exclude_id)

    def find_similar_by_genre(self, query_vector, genre, limit):
        return self._rank(query_vector, limit, lambda item: (item.genre or "").lower() == genre.lower())

    def find_similar_in_stock(self, query_vector, limit):
        return self._rank(query_vector, limit, lambda item: item.stock > 0)

    def hybrid_search(self, query_vector, keyword, limit):
        def contains(item):
            return any(keyword in (value or "").lower() for value in (item.title, item.author, item.description))

        return self._rank(query_vector, limit, contains)

    def load_embedding(self, item_id):
        return self.embeddings.get(item_id)

    def save_embedding(self, item_id, vector):
        self.embeddings[item_id] = np.asarray(vector, dtype=np.float32)
        self.saved.append(item_id)
        self.generated_at[item_id] = utc_now()

    def count_total(self):
        return len(self.items)

    def count_indexed(self):
        return len(self.embeddings)

    def items_without_embedding(self):
        return [item for item_id, item in sorted(self.items.items()) if item_id not in self.embeddings]

    def items_not_embedded_since(self, since):
        return [
            item for item_id, item in sorted(self.items.items())
            if item_id not in self.embeddings or self.generated_at.get(item_id, datetime.min) < since
        ]

    def all_items(self):
        return [item for _, item in sorted(self.items.items())]


class FakeRepository:
    """In-memory stand-in for BookRepository."""

    def __init__(self, items: List[CatalogItem]):
        self.items = sorted(items, key=lambda item: item.id)

    def find_all(self):
        return list(self.items)

    def find_by_id(self, book_id):
        return next((item for item in self.items if item.id == book_id), None)

    def get(self, book_id):
        item = self.find_by_id(book_id)
        if item is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"Book not found: {book_id}")
        return Result.success(item)

    def search_by_title(self, query):
        return [item for item in self.items if query.lower() in item.title.lower()]


class ScriptedLanguageModel(LanguageModel):
    """Returns queued responses in order; an Exception in the queue is raised."""

    name = "scripted"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise ProviderUnavailable("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_item(
    item_id: int,
    title: str,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    description: Optional[str] = None,
    stock: int = 1,
) -> CatalogItem:
    return CatalogItem(
        id=item_id, title=title, author=author, genre=genre, description=description, stock=stock
    )


@pytest.fixture(autouse=True)
def _reset_ml_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def ml_config():
    """Small-dimension config with no indexing pause."""
    config = MLConfig()
    config.embedding.dimension = TEST_DIMENSION
    config.indexing.pause_seconds = 0.0
    return config


@pytest.fixture
def generator(ml_config):
    return MockEmbeddingGenerator(config=ml_config)


@pytest.fixture
def catalog():
    """A small catalog, in id order."""
    return [
        make_item(1, "The Dragon's Apprentice", "Mira Holt", "fantasy",
                  "A young apprentice learns dragon magic at a hidden school.", stock=3),
        make_item(2, "Murder at Marlow Hall", "Edwin Crane", "detective",
                  "An inspector untangles a country-house murder.", stock=0),
        make_item(3, "Stars Beyond Orion", "Lena Park", "scifi",
                  "A starship crew explores a dying galaxy.", stock=5),
        make_item(4, "The Dragon Queen", "Mira Holt", "fantasy",
                  "War and magic decide the fate of a dragon kingdom.", stock=2),
        make_item(5, "Gardens of Kyoto", "Aiko Sato", "non-fiction",
                  "A walk through the temple gardens of Kyoto.", stock=1),
    ]


@pytest.fixture
def repository(catalog):
    return FakeRepository(catalog)


@pytest.fixture
def vector_store(catalog):
    return FakeVectorStore(catalog)


@pytest.fixture
def indexed_store(vector_store, generator, catalog):
    """Fake vector store with every catalog item embedded."""
    for item in catalog:
        vector_store.embeddings[item.id] = generator.embed_for_item(item)
    return vector_store


@pytest.fixture
def scripted_llm():
    """Factory for ScriptedLanguageModel instances."""
    return ScriptedLanguageModel


@pytest.fixture
def item_factory():
    """Factory for CatalogItem test values."""
    return make_item


@pytest.fixture
def store_factory():
    """Factory for FakeVectorStore instances."""
    return FakeVectorStore


@pytest.fixture
def repository_factory():
    """Factory for FakeRepository instances."""
    return FakeRepository
