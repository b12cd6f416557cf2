"""
ML Configuration
Centralized constants for embedding generation, search, query understanding,
recommendation and indexing.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class EmbeddingConfig:
    """Embedding generation configuration."""

    # All vectors are normalized to this dimension before storage or search
    dimension: int = 1536

    # Real providers receive at most this many characters
    max_input_chars: int = 8000


@dataclass
class SearchConfig:
    """Semantic / hybrid search configuration."""

    semantic_limit: int = 10

    # Smart search tops up with title matches below this many semantic hits
    min_semantic_results: int = 5
    max_results: int = 10

    hybrid_limit: int = 10


@dataclass
class UnderstandingConfig:
    """Natural-language query understanding configuration."""

    # Share of criteria keywords that must appear in the item text
    keyword_match_ratio: float = 0.3

    # Share of considered dimensions (genre, author, keywords) that must match
    criteria_match_ratio: float = 0.5

    relax_confidence_factor: float = 0.7
    fallback_confidence: float = 0.3

    # Used when the language model omits a confidence value
    default_confidence: float = 0.5

    explain_description_chars: int = 200


@dataclass
class RecommendationConfig:
    """Recommendation re-ranking configuration."""

    # Vector candidates retrieved per requested recommendation
    candidate_multiplier: int = 2
    prompt_description_chars: int = 150


@dataclass
class IndexingConfig:
    """Batch indexing configuration."""

    # Blocking pause between provider calls (rate-limit courtesy)
    pause_seconds: float = 0.1
    progress_every: int = 10

    # Items per provider call; 1 keeps calls strictly per item
    batch_size: int = 1


@dataclass
class MLConfig:
    """Top-level ML configuration combining all sub-configs."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    understanding: UnderstandingConfig = field(default_factory=UnderstandingConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)

    @classmethod
    def from_env(cls) -> "MLConfig":
        """Load configuration from environment variables."""
        config = cls()

        # Override with environment variables if present
        if ratio := os.getenv("KEYWORD_MATCH_RATIO"):
            config.understanding.keyword_match_ratio = float(ratio)

        if ratio := os.getenv("CRITERIA_MATCH_RATIO"):
            config.understanding.criteria_match_ratio = float(ratio)

        if pause := os.getenv("INDEXING_PAUSE_SECONDS"):
            config.indexing.pause_seconds = float(pause)

        if batch_size := os.getenv("INDEXING_BATCH_SIZE"):
            config.indexing.batch_size = int(batch_size)

        if max_chars := os.getenv("EMBEDDING_MAX_INPUT_CHARS"):
            config.embedding.max_input_chars = int(max_chars)

        return config

    def validate(self) -> None:
        """Validate configuration consistency."""
        assert self.embedding.dimension > 0, "Embedding dimension must be positive"
        assert self.embedding.max_input_chars > 0, "Max input chars must be positive"

        understanding = self.understanding
        assert 0 < understanding.keyword_match_ratio <= 1, "Keyword ratio must be in (0, 1]"
        assert 0 < understanding.criteria_match_ratio <= 1, "Criteria ratio must be in (0, 1]"
        assert 0 <= understanding.fallback_confidence <= 1, "Confidence must be in [0, 1]"

        assert (
            self.search.max_results >= self.search.min_semantic_results
        ), "Max results must be >= minimum semantic results"

        assert self.recommendation.candidate_multiplier >= 1, "Candidate multiplier must be >= 1"
        assert self.indexing.pause_seconds >= 0, "Indexing pause cannot be negative"
        assert self.indexing.batch_size >= 1, "Indexing batch size must be >= 1"
        assert self.indexing.progress_every >= 1, "Progress interval must be >= 1"


# Global configuration instance
_global_config: Optional[MLConfig] = None


def get_ml_config() -> MLConfig:
    """Get global ML configuration (singleton pattern)."""
    global _global_config
    if _global_config is None:
        _global_config = MLConfig.from_env()
        _global_config.validate()
    return _global_config


def reset_config() -> None:
    """Reset global configuration (useful for testing)."""
    global _global_config
    _global_config = None
