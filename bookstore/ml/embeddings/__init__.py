"""
Embeddings Module
Text embedding strategies and startup selection.
"""

from .providers import (
    EmbeddingGenerator,
    OpenAIEmbeddingGenerator,
    ChatEmulationEmbeddingGenerator,
    MockEmbeddingGenerator,
    build_embedding_text,
)
from .factory import (
    create_embedding_generator,
    get_embedding_generator,
    set_embedding_generator,
)

__all__ = [
    "EmbeddingGenerator",
    "OpenAIEmbeddingGenerator",
    "ChatEmulationEmbeddingGenerator",
    "MockEmbeddingGenerator",
    "build_embedding_text",
    "create_embedding_generator",
    "get_embedding_generator",
    "set_embedding_generator",
]
