"""
API Models
Request and response schemas.
"""

from .indexing import IndexingStatsResponse, IndexingTaskResponse
from .recommend import RecommendationResponse
from .search import BookResult, SearchResponse

__all__ = [
    "BookResult",
    "SearchResponse",
    "RecommendationResponse",
    "IndexingTaskResponse",
    "IndexingStatsResponse",
]
