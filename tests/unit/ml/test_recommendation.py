"""
Tests for the RecommendationEngine.
"""

from unittest.mock import MagicMock

import pytest

from bookstore.ml.recommendation import (
    GENERIC_RECOMMENDATION_EXPLANATION,
    RecommendationEngine,
    parse_ids,
)
from bookstore.ml.retrieval import SimilaritySearchEngine


@pytest.fixture
def search_engine(generator, indexed_store, repository, ml_config):
    return SimilaritySearchEngine(generator, indexed_store, repository, ml_config)


def test_parse_ids_strips_everything_but_digits_and_commas():
    assert parse_ids("Recommended: 4, 1,\n 3.") == [4, 1, 3]
    assert parse_ids("none") == []
    assert parse_ids(",,7,,") == [7]


def test_fallback_scenario_skips_out_of_stock_same_genre(item_factory, repository_factory, ml_config):
    a = item_factory(1, "A", genre="fantasy", stock=5)
    b = item_factory(2, "B", genre="fantasy", stock=0)
    c = item_factory(3, "C", genre="scifi", stock=3)
    no_candidates = MagicMock()
    no_candidates.find_similar_books.return_value = []

    engine = RecommendationEngine(no_candidates, None, repository_factory([a, b, c]), ml_config)

    assert [item.id for item in engine.recommend(a, limit=2)] == [3]


def test_fallback_prefers_same_genre(item_factory, repository_factory, ml_config):
    items = [
        item_factory(1, "Source", genre="Fantasy"),
        item_factory(2, "Other", genre="scifi"),
        item_factory(3, "Same", genre="fantasy"),
        item_factory(4, "Same again", genre="FANTASY"),
    ]
    engine = RecommendationEngine(MagicMock(), None, repository_factory(items), ml_config)

    assert [item.id for item in engine.fallback_recommendations(items[0], 3)] == [3, 4, 2]


def test_model_order_then_remaining_candidates(search_engine, repository, catalog, scripted_llm, ml_config):
    llm = scripted_llm("IDs: 5, 999, 3")
    engine = RecommendationEngine(search_engine, llm, repository, ml_config)
    candidates = search_engine.find_similar_books(catalog[0], 4)

    results = engine.recommend(catalog[0], limit=3)

    remaining = [item.id for item in candidates if item.id not in (5, 3)]
    assert [item.id for item in results] == [5, 3, remaining[0]]
    assert "ID: 1 | Title: The Dragon's Apprentice" in llm.prompts[0]


def test_candidates_are_twice_the_limit(search_engine, repository, catalog, scripted_llm, ml_config):
    spy = MagicMock(wraps=search_engine)
    engine = RecommendationEngine(spy, scripted_llm("3"), repository, ml_config)

    engine.recommend(catalog[0], limit=2)

    spy.find_similar_books.assert_called_once_with(catalog[0], 4)


def test_language_model_failure_uses_fallback(search_engine, repository, catalog, scripted_llm, ml_config):
    engine = RecommendationEngine(search_engine, scripted_llm(RuntimeError("down")), repository, ml_config)

    results = engine.recommend(catalog[0], limit=2)

    # Same genre in stock (4), then first other in-stock item (3)
    assert [item.id for item in results] == [4, 3]


def test_prompt_truncates_descriptions(item_factory, repository_factory, ml_config):
    engine = RecommendationEngine(MagicMock(), None, repository_factory([]), ml_config)
    line = engine.format_item(item_factory(7, "T", description="x" * 400))
    assert line.endswith("x" * 150 + "...")


def test_explanation_fallback(repository, catalog, scripted_llm, ml_config):
    engine = RecommendationEngine(MagicMock(), scripted_llm(RuntimeError("down")), repository, ml_config)
    assert engine.explain_recommendation(catalog[0], catalog[3]) == GENERIC_RECOMMENDATION_EXPLANATION

    engine = RecommendationEngine(MagicMock(), scripted_llm(" Same author. "), repository, ml_config)
    assert engine.explain_recommendation(catalog[0], catalog[3]) == "Same author."
