"""
Admin Endpoints
POST /api/v1/admin/indexing/start - Embed books that have no embedding
POST /api/v1/admin/indexing/reindex - Recompute every embedding
GET /api/v1/admin/indexing/stats - Embedding coverage
GET /api/v1/admin/task-status/{task_id} - Check Celery task status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ...indexing.service import IndexingService
from ...ml.errors import RunAlreadyInProgress
from ..dependencies import get_indexing_service
from ..errors import IndexingConflictError
from ..models.indexing import IndexingStatsResponse, IndexingTaskResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


class TaskStatusResponse(BaseModel):
    task_id: str = Field(..., description="Celery task ID")
    status: str = Field(..., description="Task status (PENDING, STARTED, SUCCESS, FAILURE)")
    result: Optional[dict] = Field(None, description="Task result if completed")
    error: Optional[str] = Field(None, description="Error message if failed")


def _trigger(service: IndexingService, mode: str) -> IndexingTaskResponse:
    try:
        if mode == "reindex":
            queued = service.reindex_all()
        else:
            queued = service.start_indexing()
    except RunAlreadyInProgress as e:
        raise IndexingConflictError(e.holder)
    except Exception as e:
        logger.error(f"Failed to trigger indexing ({mode}): {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to trigger indexing: {str(e)}",
        )

    logger.info(f"Indexing triggered: task_id={queued['task_id']}, mode={mode}")
    return IndexingTaskResponse(**queued)


@router.post(
    "/indexing/start", response_model=IndexingTaskResponse, status_code=status.HTTP_202_ACCEPTED
)
def start_indexing(service: IndexingService = Depends(get_indexing_service)) -> IndexingTaskResponse:
    """
    Queue an indexing pass over books without an embedding.

    Returns immediately with the task ID; 409 if a pass is already active.
    """
    return _trigger(service, "missing")


@router.post(
    "/indexing/reindex", response_model=IndexingTaskResponse, status_code=status.HTTP_202_ACCEPTED
)
def reindex_all(service: IndexingService = Depends(get_indexing_service)) -> IndexingTaskResponse:
    """
    Queue a pass that recomputes and overwrites every embedding.

    Returns immediately with the task ID; 409 if a pass is already active.
    """
    return _trigger(service, "reindex")


@router.get("/indexing/stats", response_model=IndexingStatsResponse, status_code=status.HTTP_200_OK)
def indexing_stats(service: IndexingService = Depends(get_indexing_service)) -> IndexingStatsResponse:
    """Total books, books with an embedding, and the indexed percentage."""
    stats = service.get_stats()

    try:
        running = service.is_running()
    except Exception as e:
        logger.warning(f"Could not read indexing run state: {e}")
        running = False

    return IndexingStatsResponse(**stats.to_dict(), running=running)


@router.get("/task-status/{task_id}", response_model=TaskStatusResponse, status_code=status.HTTP_200_OK)
def get_task_status(task_id: str) -> TaskStatusResponse:
    """Check the status of an indexing task."""
    from celery.result import AsyncResult

    from ...tasks.celery_app import app as celery_app

    task_result = AsyncResult(task_id, app=celery_app)
    status_str = task_result.status  # PENDING, STARTED, SUCCESS, FAILURE, RETRY

    response = TaskStatusResponse(task_id=task_id, status=status_str, result=None, error=None)

    if status_str == "SUCCESS":
        response.result = task_result.result
    elif status_str == "FAILURE":
        response.error = str(task_result.info)

    return response
