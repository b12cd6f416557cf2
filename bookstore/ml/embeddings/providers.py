"""
Embedding Generators
Turn text into fixed-dimension vectors.

Three interchangeable strategies share one interface:
- OpenAIEmbeddingGenerator: a real embedding backend
- ChatEmulationEmbeddingGenerator: deterministic vectors when only a
  language-model backend is available
- MockEmbeddingGenerator: deterministic vectors for development and tests

Provider failures never reach the caller; they degrade to a zero vector.
A worker soft time limit is the one exception that passes through.
"""

import logging
import time
from typing import Any, Callable, List, Optional, Sequence

import numpy as np
from celery.exceptions import SoftTimeLimitExceeded
from openai import APITimeoutError, OpenAI, OpenAIError

from ..batching import BatchReport, run_sequential
from ..config import MLConfig, get_ml_config
from ..errors import ProviderTimeout, ProviderUnavailable
from ..llm import LanguageModel
from ..vector_utils import (
    cosine_similarity,
    empty_vector,
    ensure_dimension,
    is_zero_vector,
    seeded_unit_vector,
)

logger = logging.getLogger(__name__)

# Labelled fields, in the order they are concatenated
EMBEDDING_TEXT_FIELDS = (
    ("title", "Title"),
    ("author", "Author"),
    ("genre", "Genre"),
    ("description", "Description"),
)


def build_embedding_text(item: Any) -> str:
    """
    Build the source text an item's embedding is computed from.

    Non-empty fields are concatenated in a fixed order, each with a label.
    """
    parts = []
    for attr, label in EMBEDDING_TEXT_FIELDS:
        value = getattr(item, attr, None)
        if value is not None and str(value).strip():
            parts.append(f"{label}: {str(value).strip()}")
    return "\n".join(parts)


class EmbeddingGenerator:
    """
    Base embedding generator.

    Subclasses implement ``_embed`` for non-blank text; dimension correction
    and error absorption happen here.
    """

    name: str = "base"

    def __init__(self, config: Optional[MLConfig] = None):
        self.config = config or get_ml_config()
        self.dimension = self.config.embedding.dimension

    def _embed(self, text: str) -> np.ndarray:
        raise NotImplementedError

    def embed(self, text: Optional[str]) -> np.ndarray:
        """
        Encode text to a vector of exactly ``dimension`` components.

        Blank text returns the zero vector without calling the provider.
        Any provider error is logged and returns the zero vector.
        """
        if text is None or not text.strip():
            return empty_vector(self.dimension)

        try:
            return ensure_dimension(self._embed(text), self.dimension)
        except SoftTimeLimitExceeded:
            raise
        except Exception as e:
            logger.error(f"Embedding failed ({self.name}), using zero vector: {e}")
            return empty_vector(self.dimension)

    def embed_many(self, texts: Sequence[Optional[str]]) -> List[np.ndarray]:
        """Encode several texts; the base implementation calls ``embed`` per text."""
        return [self.embed(text) for text in texts]

    def embed_for_item(self, item: Any) -> np.ndarray:
        """Encode an item's labelled title/author/genre/description text."""
        return self.embed(build_embedding_text(item))

    def embed_batch(
        self,
        items: Sequence[Any],
        pause_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BatchReport:
        """
        Compute embeddings for items one at a time.

        Each successfully embedded item gets its ``embedding`` attribute set.
        An item whose text yields only the zero vector counts as failed and
        keeps its previous embedding.

        Args:
            items: Items exposing title/author/genre/description
            pause_seconds: Pause between provider calls (defaults to config)
            sleep: Pause function (injectable for tests)

        Returns:
            BatchReport with processed/total counts
        """
        if pause_seconds is None:
            pause_seconds = self.config.indexing.pause_seconds

        def process(item: Any) -> bool:
            vector = self.embed_for_item(item)
            if is_zero_vector(vector):
                return False
            item.embedding = vector
            return True

        return run_sequential(
            items,
            process,
            pause_seconds=pause_seconds,
            progress_every=self.config.indexing.progress_every,
            label=f"embedding batch ({self.name})",
            sleep=sleep,
        )

    def cosine_similarity(self, a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
        return cosine_similarity(a, b)


class OpenAIEmbeddingGenerator(EmbeddingGenerator):
    """
    Embeddings from an OpenAI-compatible embeddings endpoint.

    Input longer than ``max_input_chars`` is truncated. Returned vectors of
    the wrong length are truncated or zero-padded.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 1,
        config: Optional[MLConfig] = None,
        client: Optional[OpenAI] = None,
    ):
        super().__init__(config)
        self.model = model
        self.name = f"openai:{model}"
        self.max_input_chars = self.config.embedding.max_input_chars
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        logger.info(f"Embedding generator initialized: {self.name}")

    def _truncate(self, text: str) -> str:
        if len(text) > self.max_input_chars:
            logger.debug(f"Embedding input truncated from {len(text)} to {self.max_input_chars} chars")
            return text[: self.max_input_chars]
        return text

    def _request(self, inputs: List[str]) -> List[np.ndarray]:
        try:
            response = self.client.embeddings.create(model=self.model, input=inputs)
        except APITimeoutError as e:
            raise ProviderTimeout(f"Embedding call timed out: {e}", details={"model": self.model})
        except OpenAIError as e:
            raise ProviderUnavailable(f"Embedding call failed: {e}", details={"model": self.model})

        data = sorted(response.data or [], key=lambda d: d.index)
        return [self._correct(np.asarray(d.embedding, dtype=np.float32)) for d in data]

    def _correct(self, vector: np.ndarray) -> np.ndarray:
        if vector.size == self.dimension:
            return vector
        logger.warning(f"Provider returned {vector.size} components, expected {self.dimension}")
        return ensure_dimension(vector, self.dimension)

    def _embed(self, text: str) -> np.ndarray:
        vectors = self._request([self._truncate(text)])
        if not vectors:
            logger.warning("Embedding provider returned no data")
            return empty_vector(self.dimension)
        return vectors[0]

    def embed_many(self, texts: Sequence[Optional[str]]) -> List[np.ndarray]:
        """
        Encode several texts with a single provider call.

        Blank texts map to zero vectors. If the batched call fails or returns
        a different number of vectors, falls back to one call per text.
        """
        results = [empty_vector(self.dimension) for _ in texts]
        positions = [i for i, text in enumerate(texts) if text is not None and text.strip()]
        if not positions:
            return results

        try:
            vectors = self._request([self._truncate(texts[i]) for i in positions])
            if len(vectors) != len(positions):
                raise ProviderUnavailable(
                    f"Batch returned {len(vectors)} vectors for {len(positions)} inputs"
                )
        except SoftTimeLimitExceeded:
            raise
        except Exception as e:
            logger.warning(f"Batch embedding unavailable, falling back to per-item calls: {e}")
            for i in positions:
                results[i] = self.embed(texts[i])
            return results

        for i, vector in zip(positions, vectors):
            results[i] = vector
        return results


class ChatEmulationEmbeddingGenerator(EmbeddingGenerator):
    """
    Deterministic pseudo-embeddings used when only a language model is available.

    Vectors come from a seeded generator keyed on a stable hash of the text,
    so identical text always maps to the bit-identical vector.
    """

    def __init__(self, language_model: LanguageModel, config: Optional[MLConfig] = None):
        super().__init__(config)
        self.language_model = language_model
        self.name = f"chat-emulation:{getattr(language_model, 'name', 'llm')}"

        logger.warning(
            "No embedding backend configured; emulating embeddings alongside the language model"
        )

    def _embed(self, text: str) -> np.ndarray:
        return seeded_unit_vector(text, self.dimension)


class MockEmbeddingGenerator(EmbeddingGenerator):
    """Deterministic pseudo-embeddings for development; no backend required."""

    name = "mock"

    def __init__(self, config: Optional[MLConfig] = None):
        super().__init__(config)
        logger.warning("Using mock embedding generator - for development only")

    def _embed(self, text: str) -> np.ndarray:
        return seeded_unit_vector(text, self.dimension)
