"""
Embedding Generator Selection
Resolves the single active embedding strategy once at process start.

Priority:
1. A configured embedding backend -> OpenAIEmbeddingGenerator
2. Otherwise a configured language model -> ChatEmulationEmbeddingGenerator
3. Otherwise -> MockEmbeddingGenerator
"""

import logging
from typing import Optional

from ...config import Settings, get_settings
from ..config import MLConfig
from ..llm import LanguageModel, create_language_model, get_language_model
from .providers import (
    ChatEmulationEmbeddingGenerator,
    EmbeddingGenerator,
    MockEmbeddingGenerator,
    OpenAIEmbeddingGenerator,
)

logger = logging.getLogger(__name__)


def create_embedding_generator(
    settings: Optional[Settings] = None,
    language_model: Optional[LanguageModel] = None,
    config: Optional[MLConfig] = None,
) -> EmbeddingGenerator:
    """
    Build the embedding generator for this process.

    Args:
        settings: Application settings
        language_model: Already-built language model, if any
        config: ML configuration

    Returns:
        The highest-priority available strategy
    """
    settings = settings or get_settings()

    if settings.embedding_backend_configured:
        logger.info(f"Using embedding backend: {settings.embedding_model}")
        return OpenAIEmbeddingGenerator(
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            base_url=settings.embedding_base_url,
            timeout=settings.provider_timeout_seconds,
            max_retries=settings.provider_max_retries,
            config=config,
        )

    if language_model is None and settings.llm_backend_configured:
        language_model = create_language_model(settings)

    if language_model is not None:
        logger.info("Embedding backend not configured, using chat emulation")
        return ChatEmulationEmbeddingGenerator(language_model, config=config)

    return MockEmbeddingGenerator(config=config)


# Process-wide instance, resolved once at startup
_embedding_generator: Optional[EmbeddingGenerator] = None


def get_embedding_generator() -> EmbeddingGenerator:
    """Get the process-wide embedding generator (created on first use)."""
    global _embedding_generator
    if _embedding_generator is None:
        _embedding_generator = create_embedding_generator(language_model=get_language_model())
    return _embedding_generator


def set_embedding_generator(generator: Optional[EmbeddingGenerator]) -> None:
    """Install the process-wide embedding generator (None resets it)."""
    global _embedding_generator
    _embedding_generator = generator
