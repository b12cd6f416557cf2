"""
Indexing Pipeline
Computes and persists catalog embeddings in the background.

Items are embedded one after another (or one provider batch after another)
with a blocking pause between provider calls. Each item is written in its
own transaction; a failing item is logged, counted and skipped.

A reindex pass given its start time only recomputes rows not written since
then, so a pass cut short by the worker time limit can be resumed.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import numpy as np
from celery.exceptions import SoftTimeLimitExceeded

from ..catalog.items import CatalogItem
from ..ml.batching import BatchReport, chunked, item_label, log_time_limit, run_sequential
from ..ml.config import MLConfig, get_ml_config
from ..ml.embeddings.providers import EmbeddingGenerator, build_embedding_text
from ..ml.retrieval.vector_store import VectorStore
from ..ml.vector_utils import is_zero_vector

logger = logging.getLogger(__name__)


@dataclass
class IndexingStats:
    """Catalog indexing coverage."""

    total: int
    indexed: int
    percentage: float

    def to_dict(self) -> dict:
        return {"total": self.total, "indexed": self.indexed, "percentage": self.percentage}


def indexing_stats(vector_store: VectorStore) -> IndexingStats:
    """Total items, items with an embedding, and the indexed percentage."""
    total = vector_store.count_total()
    indexed = vector_store.count_indexed()
    percentage = (indexed / total * 100) if total > 0 else 0.0
    return IndexingStats(total=total, indexed=indexed, percentage=percentage)


class IndexingPipeline:
    """
    Batch embedding pipeline over the catalog.

    Args:
        vector_store: Embedding reads/writes and catalog counts
        embedding_generator: Active embedding strategy
        config: ML configuration
        sleep: Pause function (injectable for tests)
        heartbeat: Called periodically during a pass, e.g. to keep the run
            guard alive
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_generator: EmbeddingGenerator,
        config: Optional[MLConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        heartbeat: Optional[Callable[[], None]] = None,
    ):
        self.vector_store = vector_store
        self.embedding_generator = embedding_generator
        self.config = config or get_ml_config()
        self.sleep = sleep
        self.heartbeat = heartbeat

    def index_missing(self) -> BatchReport:
        """Embed every item that has no embedding yet."""
        items = self.vector_store.items_without_embedding()
        if not items:
            logger.info("All items already have embeddings, nothing to index")
            return BatchReport()

        logger.info(f"Found {len(items)} items without embeddings")
        return self._index(items, "index missing embeddings")

    def reindex_all(self, started_at: Optional[datetime] = None) -> BatchReport:
        """
        Recompute and overwrite the embedding of every item.

        Args:
            started_at: Start of the pass (naive UTC). Items whose embedding
                was written at or after this time are skipped.
        """
        if started_at is None:
            items = self.vector_store.all_items()
        else:
            items = self.vector_store.items_not_embedded_since(started_at)
        logger.info(f"Reindexing {len(items)} items")
        return self._index(items, "reindex all embeddings")

    def stats(self) -> IndexingStats:
        return indexing_stats(self.vector_store)

    def _persist(self, item: CatalogItem, vector: np.ndarray) -> bool:
        # Zero vectors mean blank text or an absorbed provider failure
        if is_zero_vector(vector):
            logger.warning(f"No usable embedding for {item_label(item)}, leaving it unindexed")
            return False
        self.vector_store.save_embedding(item.id, vector)
        return True

    def _index(self, items: List[CatalogItem], label: str) -> BatchReport:
        indexing = self.config.indexing

        if indexing.batch_size <= 1:
            return run_sequential(
                items,
                lambda item: self._persist(item, self.embedding_generator.embed_for_item(item)),
                pause_seconds=indexing.pause_seconds,
                progress_every=indexing.progress_every,
                label=label,
                sleep=self.sleep,
                heartbeat=self.heartbeat,
            )

        return self._index_batched(items, label)

    def _index_batched(self, items: List[CatalogItem], label: str) -> BatchReport:
        """One provider call per chunk of ``batch_size`` items."""
        indexing = self.config.indexing
        report = BatchReport(total=len(items))

        logger.info(f"Starting {label} for {report.total} items in batches of {indexing.batch_size}")

        for chunk_number, chunk in enumerate(chunked(items, indexing.batch_size)):
            if chunk_number > 0:
                if indexing.pause_seconds > 0:
                    self.sleep(indexing.pause_seconds)
                if self.heartbeat is not None:
                    self.heartbeat()

            try:
                vectors = self.embedding_generator.embed_many([build_embedding_text(item) for item in chunk])
            except SoftTimeLimitExceeded:
                log_time_limit(label, report)
                raise

            for item, vector in zip(chunk, vectors):
                try:
                    if self._persist(item, vector):
                        report.processed += 1
                        if report.processed % indexing.progress_every == 0:
                            logger.info(f"{label}: processed {report.processed} of {report.total}")
                    else:
                        report.failed += 1
                        report.errors.append(f"{item_label(item)}: not processed")
                except SoftTimeLimitExceeded:
                    log_time_limit(label, report)
                    raise
                except Exception as e:
                    report.failed += 1
                    report.errors.append(f"{item_label(item)}: {e}")
                    logger.error(f"{label}: failed on {item_label(item)}: {e}", exc_info=True)

        logger.info("=" * 60)
        logger.info(f"{label} complete: {report.processed}/{report.total}")
        logger.info("=" * 60)

        return report
