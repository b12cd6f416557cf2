"""
Catalog Items
In-memory form of a catalog row used by search and recommendation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

import numpy as np

from ..ml.vector_utils import as_vector

# Row columns selected whenever items are read for search results
ITEM_COLUMNS = ("id", "title", "author", "genre", "description", "isbn", "price", "stock", "image_path")


@dataclass
class CatalogItem:
    """
    A book in the catalog.

    ``embedding`` is only populated when it was explicitly loaded or computed;
    search results are read without it.
    """

    id: int
    title: str
    author: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    price: Optional[float] = None
    stock: int = 0
    image_path: Optional[str] = None
    embedding: Optional[np.ndarray] = None

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CatalogItem":
        """Build from a SQL result mapping (``row._mapping``)."""
        price = row.get("price")
        embedding = row.get("embedding")

        return cls(
            id=row["id"],
            title=row.get("title") or "",
            author=row.get("author"),
            genre=row.get("genre"),
            description=row.get("description"),
            isbn=row.get("isbn"),
            price=float(price) if isinstance(price, (Decimal, int, float)) else price,
            stock=row.get("stock") or 0,
            image_path=row.get("image_path"),
            embedding=as_vector(embedding) if embedding is not None else None,
        )

    @classmethod
    def from_model(cls, book: Any, include_embedding: bool = False) -> "CatalogItem":
        """Build from a ``Book`` ORM instance."""
        return cls(
            id=book.id,
            title=book.title or "",
            author=book.author,
            genre=book.genre,
            description=book.description,
            isbn=book.isbn,
            price=float(book.price) if book.price is not None else None,
            stock=book.stock or 0,
            image_path=book.image_path,
            embedding=as_vector(book.embedding) if include_embedding and book.embedding is not None else None,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "description": self.description,
            "isbn": self.isbn,
            "price": self.price,
            "stock": self.stock,
            "image_path": self.image_path,
            "in_stock": self.in_stock,
        }

    def __repr__(self):
        return f"<CatalogItem(id={self.id}, title={self.title[:30]!r})>"
