"""
Indexing Module
Batch embedding of the catalog with a single-active-run guard.
"""

from .pipeline import IndexingPipeline, IndexingStats, indexing_stats
from .run_guard import IndexingRunGuard
from .service import IndexingService

__all__ = [
    "IndexingPipeline",
    "IndexingStats",
    "indexing_stats",
    "IndexingRunGuard",
    "IndexingService",
]
