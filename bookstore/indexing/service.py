"""
Indexing Service
Control surface for indexing: fire-and-forget triggers and a status read.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..ml.retrieval.vector_store import VectorStore
from .pipeline import IndexingStats, indexing_stats
from .run_guard import IndexingRunGuard

logger = logging.getLogger(__name__)


class IndexingService:
    """
    Starts indexing passes on the worker and reports coverage.

    A trigger claims the run guard before dispatching, so a second trigger
    while a pass is active raises RunAlreadyInProgress to the caller.
    """

    def __init__(self, session: Session, guard: Optional[IndexingRunGuard] = None):
        self.session = session
        self.guard = guard or IndexingRunGuard.from_settings()

    def _dispatch(self, task: Any, mode: str) -> Dict[str, Any]:
        token = self.guard.acquire()
        try:
            result = task.delay(run_token=token)
        except Exception:
            # Nothing will run, so free the slot
            self.guard.release(token)
            raise

        logger.info(f"Queued indexing pass ({mode}): task {result.id}")
        return {"task_id": result.id, "status": "queued", "mode": mode}

    def start_indexing(self) -> Dict[str, Any]:
        """Queue a pass over items without an embedding."""
        from ..tasks.indexing import MODE_MISSING, index_missing_embeddings

        return self._dispatch(index_missing_embeddings, MODE_MISSING)

    def reindex_all(self) -> Dict[str, Any]:
        """Queue a pass that recomputes every embedding."""
        from ..tasks.indexing import MODE_REINDEX, reindex_all_embeddings

        return self._dispatch(reindex_all_embeddings, MODE_REINDEX)

    def get_stats(self) -> IndexingStats:
        return indexing_stats(VectorStore(self.session))

    def is_running(self) -> bool:
        return self.guard.is_active()
