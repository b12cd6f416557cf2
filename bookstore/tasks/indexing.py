"""
Indexing Tasks
Background tasks that run the catalog embedding pipeline.

A task started from the API receives the run-guard token the API acquired
and checks that the token still holds the slot before doing any work; a
task started by Celery Beat acquires the guard itself and is skipped when
another pass is active. The guard's expiry is refreshed while the pass
runs. When the soft time limit is reached, the task queues a continuation
that inherits the token; otherwise the guard is released when the task ends.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from celery.exceptions import SoftTimeLimitExceeded

from ..ml.errors import RunAlreadyInProgress
from .celery_app import app

logger = logging.getLogger(__name__)

MODE_MISSING = "missing"
MODE_REINDEX = "reindex"


def run_indexing_pass(
    mode: str,
    run_token: Optional[str] = None,
    started_at: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run one indexing pass while holding the run guard.

    Args:
        mode: MODE_MISSING or MODE_REINDEX
        run_token: Guard token already acquired by the trigger, if any
        started_at: ISO start time of the reindex pass this task continues

    Returns:
        Dictionary with the pass results
    """
    # Import here to avoid circular dependencies and early provider setup
    from ..db.session import get_session_factory
    from ..indexing.pipeline import IndexingPipeline
    from ..indexing.run_guard import IndexingRunGuard
    from ..ml.embeddings import get_embedding_generator
    from ..ml.retrieval.vector_store import VectorStore, utc_now

    guard = IndexingRunGuard.from_settings()

    if run_token is None:
        try:
            run_token = guard.acquire()
        except RunAlreadyInProgress as e:
            logger.info(f"Skipping scheduled indexing ({mode}): run {e.holder} is active")
            return {"status": "skipped", "mode": mode, "reason": e.message, "holder": e.holder}
    elif not guard.refresh(run_token):
        holder = guard.current_holder()
        logger.warning(f"Skipping indexing ({mode}): token {run_token} expired, slot held by {holder}")
        return {"status": "skipped", "mode": mode, "reason": "Run token expired", "holder": holder}

    def keep_alive() -> None:
        if not guard.refresh(run_token):
            raise RunAlreadyInProgress(guard.current_holder())

    pass_start = datetime.fromisoformat(started_at) if started_at else utc_now()
    release_slot = True
    db = get_session_factory()()

    try:
        generator = get_embedding_generator()
        pipeline = IndexingPipeline(
            VectorStore(db, model_version=generator.name), generator, heartbeat=keep_alive
        )

        if mode == MODE_REINDEX:
            report = pipeline.reindex_all(started_at=pass_start)
        else:
            report = pipeline.index_missing()

        return {"status": "success", "mode": mode, **report.to_dict()}

    except SoftTimeLimitExceeded:
        continuation = _queue_continuation(mode, run_token, pass_start)
        release_slot = False
        logger.warning(f"Indexing pass ({mode}) hit the time limit, continuing in task {continuation}")
        return {"status": "continued", "mode": mode, "task_id": continuation}

    except RunAlreadyInProgress as e:
        release_slot = False
        logger.error(f"Indexing pass ({mode}) lost its run slot to {e.holder}, stopping")
        return {"status": "aborted", "mode": mode, "reason": e.message, "holder": e.holder}

    except Exception as e:
        logger.error(f"Indexing pass ({mode}) failed: {e}", exc_info=True)
        raise

    finally:
        db.close()
        if release_slot:
            guard.release(run_token)


def _queue_continuation(mode: str, run_token: str, pass_start: datetime) -> str:
    if mode == MODE_REINDEX:
        result = reindex_all_embeddings.delay(run_token=run_token, started_at=pass_start.isoformat())
    else:
        result = index_missing_embeddings.delay(run_token=run_token)
    return result.id


@app.task(bind=True, name="tasks.index_missing_embeddings")
def index_missing_embeddings(self, run_token: Optional[str] = None) -> Dict[str, Any]:
    """Embed every book that has no embedding."""
    logger.info(f"Task {self.request.id}: indexing missing embeddings")
    return run_indexing_pass(MODE_MISSING, run_token)


@app.task(bind=True, name="tasks.reindex_all_embeddings")
def reindex_all_embeddings(
    self, run_token: Optional[str] = None, started_at: Optional[str] = None
) -> Dict[str, Any]:
    """Recompute the embedding of every book."""
    logger.info(f"Task {self.request.id}: reindexing all embeddings")
    return run_indexing_pass(MODE_REINDEX, run_token, started_at)
