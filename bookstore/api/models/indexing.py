"""
Indexing Models
Pydantic models for the indexing control endpoints.
"""

from pydantic import BaseModel, Field


class IndexingTaskResponse(BaseModel):
    """Accepted indexing trigger."""

    task_id: str = Field(..., description="Celery task ID")
    status: str = Field(..., description="Task status")
    mode: str = Field(..., description="Pass type (missing or reindex)")


class IndexingStatsResponse(BaseModel):
    """Catalog embedding coverage."""

    total: int = Field(..., description="Books in the catalog")
    indexed: int = Field(..., description="Books with an embedding")
    percentage: float = Field(..., description="Indexed share, 0-100")
    running: bool = Field(False, description="Whether an indexing pass is active")
