"""
Tests for the pgvector-backed VectorStore (SQL shape and row mapping).
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from bookstore.ml.retrieval import VectorStore


def _row(**values):
    return SimpleNamespace(_mapping=values)


@pytest.fixture
def session():
    session = MagicMock()
    session.execute.return_value = [
        _row(id=3, title="Stars Beyond Orion", author="Lena Park", genre="scifi",
             description=None, isbn=None, price=None, stock=5, image_path=None),
    ]
    return session


def _executed_sql(session):
    statement, params = session.execute.call_args.args
    return str(statement), params


def test_find_similar_orders_by_cosine_distance_then_id(session):
    store = VectorStore(session)

    items = store.find_similar(np.array([0.5, 0.5], dtype=np.float32), 5, exclude_id=7)

    sql, params = _executed_sql(session)
    assert "embedding IS NOT NULL" in sql
    assert "id != :exclude_id" in sql
    assert "ORDER BY embedding <=> CAST(:query_vector AS vector), id" in sql
    assert params == {"query_vector": "[0.5,0.5]", "limit": 5, "exclude_id": 7}
    assert [item.id for item in items] == [3]
    assert items[0].embedding is None


def test_genre_and_stock_predicates(session):
    store = VectorStore(session)

    store.find_similar_by_genre([1.0], "Fantasy", 3)
    sql, params = _executed_sql(session)
    assert "LOWER(genre) = LOWER(:genre)" in sql
    assert params["genre"] == "Fantasy"

    store.find_similar_in_stock([1.0], 3)
    sql, _ = _executed_sql(session)
    assert "stock > 0" in sql


def test_hybrid_search_matches_title_author_or_description(session):
    store = VectorStore(session)

    store.hybrid_search([1.0], "Dragon", 10)

    sql, params = _executed_sql(session)
    assert "LOWER(title) LIKE :pattern" in sql
    assert "LOWER(author) LIKE :pattern" in sql
    assert "LOWER(description) LIKE :pattern" in sql
    assert params["pattern"] == "%dragon%"


def test_load_embedding_decodes_vector_record():
    session = MagicMock()
    session.execute.return_value.first.return_value = SimpleNamespace(embedding="[0.1,x,0.3]")

    vector = VectorStore(session).load_embedding(1)

    assert vector.size == 3
    assert vector[1] == 0.0


def test_load_embedding_absent():
    session = MagicMock()
    session.execute.return_value.first.return_value = SimpleNamespace(embedding=None)

    assert VectorStore(session).load_embedding(1) is None


def test_save_embedding_commits_encoded_vector():
    session = MagicMock()

    VectorStore(session, model_version="mock").save_embedding(4, np.array([0.25, -1.0], dtype=np.float32))

    sql, params = _executed_sql(session)
    assert "CAST(:embedding AS vector)" in sql
    assert params["embedding"] == "[0.25,-1]"
    assert params["model_version"] == "mock"
    session.commit.assert_called_once()


def test_save_embedding_rolls_back_on_error():
    session = MagicMock()
    session.execute.side_effect = RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        VectorStore(session).save_embedding(4, [1.0])

    session.rollback.assert_called_once()
    session.commit.assert_not_called()


def test_save_embedding_stamps_naive_utc_time():
    session = MagicMock()

    VectorStore(session).save_embedding(4, [1.0])

    _, params = _executed_sql(session)
    generated_at = params["generated_at"]
    assert generated_at.tzinfo is None
    assert abs(generated_at - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(minutes=1)


def test_items_not_embedded_since_filters_on_write_time(session):
    since = datetime(2026, 1, 1)

    items = VectorStore(session).items_not_embedded_since(since)

    sql, params = _executed_sql(session)
    assert "embedding IS NULL" in sql
    assert "embedding_generated_at < :since" in sql
    assert sql.rstrip().endswith("ORDER BY id")
    assert params == {"since": since}
    assert [item.id for item in items] == [3]
