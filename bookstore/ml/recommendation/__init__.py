"""
Recommendation Module
Vector candidates re-ranked by a language model.
"""

from .recommendation_engine import (
    GENERIC_RECOMMENDATION_EXPLANATION,
    RecommendationEngine,
    parse_ids,
)

__all__ = [
    "GENERIC_RECOMMENDATION_EXPLANATION",
    "RecommendationEngine",
    "parse_ids",
]
