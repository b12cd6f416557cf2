"""
Tests for the indexing admin endpoints.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from bookstore.api.dependencies import get_indexing_service
from bookstore.api.main import app
from bookstore.indexing import IndexingStats
from bookstore.ml.errors import RunAlreadyInProgress


@pytest.fixture
def service():
    service = MagicMock()
    service.start_indexing.return_value = {"task_id": "t-1", "status": "queued", "mode": "missing"}
    service.reindex_all.return_value = {"task_id": "t-2", "status": "queued", "mode": "reindex"}
    service.get_stats.return_value = IndexingStats(total=10, indexed=4, percentage=40.0)
    service.is_running.return_value = True
    return service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_indexing_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_start_indexing_is_accepted(client):
    response = client.post("/api/v1/admin/indexing/start")

    assert response.status_code == 202
    assert response.json() == {"task_id": "t-1", "status": "queued", "mode": "missing"}


def test_reindex_is_accepted(client):
    response = client.post("/api/v1/admin/indexing/reindex")

    assert response.status_code == 202
    assert response.json()["mode"] == "reindex"


def test_trigger_while_running_is_409(client, service):
    service.start_indexing.side_effect = RunAlreadyInProgress("t-0")

    response = client.post("/api/v1/admin/indexing/start")

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["type"] == "IndexingConflictError"
    assert error["details"] == {"holder": "t-0"}


def test_stats(client):
    response = client.get("/api/v1/admin/indexing/stats")

    assert response.status_code == 200
    assert response.json() == {"total": 10, "indexed": 4, "percentage": 40.0, "running": True}
