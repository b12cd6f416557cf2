"""
Health Check Endpoints
GET /health - liveness
GET /status - database, embedding coverage and active providers
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...db.session import get_db
from ...indexing.pipeline import indexing_stats
from ...ml.embeddings import EmbeddingGenerator
from ...ml.llm import LanguageModel
from ...ml.retrieval import VectorStore
from ..dependencies import get_generator, get_llm

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/status")
def status_check(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
    generator: EmbeddingGenerator = Depends(get_generator),
    llm: Optional[LanguageModel] = Depends(get_llm),
) -> Dict[str, Any]:
    """
    Component status.

    Reports ``degraded`` when the database cannot be reached. Missing
    providers are not an error: the mock generator and fallbacks keep
    search available.
    """
    report: Dict[str, Any] = {
        "status": "healthy",
        "version": settings.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "providers": {
            "embeddings": generator.name,
            "dimension": generator.dimension,
            "language_model": llm.name if llm is not None else None,
        },
    }

    try:
        db.execute(text("SELECT 1"))
        report["database"] = "healthy"
        report["index"] = indexing_stats(VectorStore(db)).to_dict()
    except Exception as e:
        logger.error(f"Database status check failed: {e}")
        report["database"] = "unhealthy"
        report["status"] = "degraded"

    return report
