"""
Query Understanding Module
Language-model extraction of structured search criteria.
"""

from .query_understanding import (
    GENERIC_MATCH_EXPLANATION,
    QueryUnderstanding,
    SearchCriteria,
    strip_code_fences,
)

__all__ = [
    "GENERIC_MATCH_EXPLANATION",
    "QueryUnderstanding",
    "SearchCriteria",
    "strip_code_fences",
]
