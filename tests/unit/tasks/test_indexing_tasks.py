"""
Tests for the Celery indexing tasks (run guard handling).
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded

from bookstore.ml.batching import BatchReport
from bookstore.ml.errors import RunAlreadyInProgress
from bookstore.tasks.indexing import MODE_MISSING, MODE_REINDEX, run_indexing_pass


@pytest.fixture
def guard():
    guard = MagicMock()
    guard.acquire.return_value = "beat-token"
    return guard


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.index_missing.return_value = BatchReport(total=3, processed=3)
    pipeline.reindex_all.return_value = BatchReport(total=5, processed=4, failed=1)
    return pipeline


@pytest.fixture
def pipeline_class(pipeline):
    return MagicMock(return_value=pipeline)


@pytest.fixture
def patched(guard, pipeline_class):
    session = MagicMock()
    with patch("bookstore.indexing.run_guard.IndexingRunGuard.from_settings", return_value=guard), \
            patch("bookstore.db.session.get_session_factory", return_value=lambda: session), \
            patch("bookstore.ml.embeddings.get_embedding_generator", return_value=MagicMock(name="generator")), \
            patch("bookstore.indexing.pipeline.IndexingPipeline", pipeline_class):
        yield session


def test_triggered_run_uses_given_token(patched, guard, pipeline):
    result = run_indexing_pass(MODE_MISSING, run_token="api-token")

    assert result["status"] == "success"
    assert result["processed"] == 3
    guard.acquire.assert_not_called()
    guard.release.assert_called_once_with("api-token")
    patched.close.assert_called_once()


def test_scheduled_run_acquires_guard(patched, guard, pipeline):
    result = run_indexing_pass(MODE_REINDEX)

    assert result["mode"] == MODE_REINDEX
    assert result["failed"] == 1
    pipeline.reindex_all.assert_called_once()
    guard.release.assert_called_once_with("beat-token")


def test_scheduled_run_skips_when_active(patched, guard, pipeline):
    guard.acquire.side_effect = RunAlreadyInProgress("api-token")

    result = run_indexing_pass(MODE_MISSING)

    assert result["status"] == "skipped"
    assert result["holder"] == "api-token"
    pipeline.index_missing.assert_not_called()
    guard.release.assert_not_called()


def test_guard_released_when_pass_fails(patched, guard, pipeline):
    pipeline.index_missing.side_effect = RuntimeError("database gone")

    with pytest.raises(RuntimeError):
        run_indexing_pass(MODE_MISSING, run_token="api-token")

    guard.release.assert_called_once_with("api-token")


def test_expired_token_does_not_run(patched, guard, pipeline):
    guard.refresh.return_value = False
    guard.current_holder.return_value = "someone-else"

    result = run_indexing_pass(MODE_MISSING, run_token="expired-token")

    assert result["status"] == "skipped"
    assert result["holder"] == "someone-else"
    pipeline.index_missing.assert_not_called()
    guard.release.assert_not_called()


def test_pass_keeps_slot_alive(patched, guard, pipeline, pipeline_class):
    def run():
        pipeline_class.call_args.kwargs["heartbeat"]()
        return BatchReport(total=1, processed=1)

    pipeline.index_missing.side_effect = run

    result = run_indexing_pass(MODE_MISSING, run_token="api-token")

    assert result["status"] == "success"
    assert guard.refresh.call_count == 2
    guard.release.assert_called_once_with("api-token")


def test_pass_stops_when_slot_is_lost(patched, guard, pipeline, pipeline_class):
    guard.refresh.side_effect = [True, False]
    guard.current_holder.return_value = "someone-else"

    def run():
        pipeline_class.call_args.kwargs["heartbeat"]()
        return BatchReport()

    pipeline.index_missing.side_effect = run

    result = run_indexing_pass(MODE_MISSING, run_token="api-token")

    assert result["status"] == "aborted"
    assert result["holder"] == "someone-else"
    guard.release.assert_not_called()
    patched.close.assert_called_once()


def test_time_limit_hands_slot_to_reindex_continuation(patched, guard, pipeline):
    pipeline.reindex_all.side_effect = SoftTimeLimitExceeded()

    with patch("bookstore.tasks.indexing.reindex_all_embeddings") as task:
        task.delay.return_value = MagicMock(id="next-task")
        result = run_indexing_pass(MODE_REINDEX, run_token="api-token", started_at="2026-01-02T03:04:05")

    assert result == {"status": "continued", "mode": MODE_REINDEX, "task_id": "next-task"}
    pipeline.reindex_all.assert_called_once_with(started_at=datetime(2026, 1, 2, 3, 4, 5))
    task.delay.assert_called_once_with(run_token="api-token", started_at="2026-01-02T03:04:05")
    guard.release.assert_not_called()


def test_time_limit_continues_missing_pass_with_same_token(patched, guard, pipeline):
    pipeline.index_missing.side_effect = SoftTimeLimitExceeded()

    with patch("bookstore.tasks.indexing.index_missing_embeddings") as task:
        task.delay.return_value = MagicMock(id="next-task")
        result = run_indexing_pass(MODE_MISSING)

    assert result["status"] == "continued"
    task.delay.assert_called_once_with(run_token="beat-token")
    guard.release.assert_not_called()


def test_slot_released_when_continuation_cannot_be_queued(patched, guard, pipeline):
    pipeline.index_missing.side_effect = SoftTimeLimitExceeded()

    with patch("bookstore.tasks.indexing.index_missing_embeddings") as task:
        task.delay.side_effect = ConnectionError("broker down")
        with pytest.raises(ConnectionError):
            run_indexing_pass(MODE_MISSING, run_token="api-token")

    guard.release.assert_called_once_with("api-token")
