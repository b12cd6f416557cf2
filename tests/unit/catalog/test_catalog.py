"""
Tests for catalog items and repository lookups.
"""

from decimal import Decimal
from unittest.mock import MagicMock

from bookstore.catalog import BookRepository, CatalogItem
from bookstore.ml.errors import ErrorKind


def test_item_from_row():
    item = CatalogItem.from_row(
        {"id": 7, "title": "Dune", "author": "Frank Herbert", "genre": "scifi",
         "price": Decimal("9.99"), "stock": None}
    )

    assert item.price == 9.99
    assert item.stock == 0
    assert not item.in_stock
    assert item.embedding is None
    assert item.to_dict()["in_stock"] is False


def test_lookup_result_not_found():
    session = MagicMock()
    session.get.return_value = None

    result = BookRepository(session).get(42)

    assert not result.ok
    assert result.error_kind == ErrorKind.NOT_FOUND


def test_lookup_result_invalid_id():
    result = BookRepository(MagicMock()).get(0)
    assert result.error_kind == ErrorKind.VALIDATION_ERROR


def test_lookup_result_found():
    session = MagicMock()
    session.get.return_value = MagicMock(
        id=3, title="Stars", author=None, genre="scifi", description=None,
        isbn=None, price=None, stock=2, image_path=None,
    )

    result = BookRepository(session).get(3)

    assert result.ok
    assert result.value.title == "Stars"
    assert result.value.in_stock
