"""
Sequential Batch Runner
Shared batch-with-progress loop for embedding and indexing passes.

Items are processed strictly one after another with a fixed blocking pause
between them. A failing item is logged and counted, never retried, and
never aborts the rest of the batch. A worker soft time limit is not an item
failure: it stops the batch and propagates.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from celery.exceptions import SoftTimeLimitExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchReport:
    """Tally of one sequential batch run."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return (self.processed / self.total * 100) if self.total > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "errors": self.errors[:10],  # Limit error details
        }


def item_label(item: Any) -> str:
    """Identify an item in log lines."""
    item_id = getattr(item, "id", None)
    return f"item {item_id}" if item_id is not None else repr(item)[:40]


def log_time_limit(label: str, report: BatchReport) -> None:
    logger.warning(
        f"{label} stopped by time limit after {report.processed + report.failed}/{report.total} items "
        f"({report.processed} processed, {report.failed} failed)"
    )


def run_sequential(
    items: Sequence[T],
    process: Callable[[T], bool],
    pause_seconds: float = 0.0,
    progress_every: int = 10,
    label: str = "batch",
    sleep: Callable[[float], None] = time.sleep,
    heartbeat: Optional[Callable[[], None]] = None,
) -> BatchReport:
    """
    Process items one at a time.

    Args:
        items: Items to process, in order
        process: Callable returning True on success; False or an exception
            counts as a failure for that item
        pause_seconds: Blocking pause inserted between consecutive items
        progress_every: Log progress after this many processed items
        label: Name used in log lines
        sleep: Pause function (injectable for tests)
        heartbeat: Called every ``progress_every`` items; exceptions it
            raises stop the batch

    Returns:
        BatchReport with processed/failed/total counts

    Raises:
        SoftTimeLimitExceeded: The worker's soft time limit was reached
    """
    report = BatchReport(total=len(items))

    logger.info(f"Starting {label} for {report.total} items")

    for position, item in enumerate(items):
        if position > 0 and pause_seconds > 0:
            sleep(pause_seconds)
        if heartbeat is not None and position > 0 and position % progress_every == 0:
            heartbeat()

        try:
            if process(item):
                report.processed += 1
                if report.processed % progress_every == 0:
                    logger.info(f"{label}: processed {report.processed} of {report.total}")
            else:
                report.failed += 1
                report.errors.append(f"{item_label(item)}: not processed")
                logger.warning(f"{label}: {item_label(item)} was not processed")

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


def chunked(items: Sequence[T], size: int) -> Iterable[List[T]]:
    """Split items into consecutive chunks of at most ``size``."""
    for i in range(0, len(items), size):
        yield list(items[i : i + size])
