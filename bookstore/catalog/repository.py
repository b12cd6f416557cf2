"""
Book Repository
Plain catalog reads consumed by search and recommendation.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import Book
from ..ml.errors import ErrorKind, Result
from .items import CatalogItem

logger = logging.getLogger(__name__)


class BookRepository:
    """Read access to the catalog, returning CatalogItem values."""

    def __init__(self, session: Session):
        self.session = session

    def find_all(self) -> List[CatalogItem]:
        """Every book in catalog order (ascending id)."""
        books = self.session.execute(select(Book).order_by(Book.id)).scalars().all()
        return [CatalogItem.from_model(book) for book in books]

    def find_by_id(self, book_id: int) -> Optional[CatalogItem]:
        book = self.session.get(Book, book_id)
        return CatalogItem.from_model(book) if book is not None else None

    def get(self, book_id: int) -> Result[CatalogItem]:
        """
        Look up a book by id.

        Returns:
            Result holding the item, or a NOT_FOUND / VALIDATION_ERROR kind
        """
        if book_id is None or book_id <= 0:
            return Result.failure(ErrorKind.VALIDATION_ERROR, f"Invalid book id: {book_id}")

        item = self.find_by_id(book_id)
        if item is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"Book not found: {book_id}")

        return Result.success(item)

    def search_by_title(self, query: str) -> List[CatalogItem]:
        """Books whose title contains ``query`` (case-insensitive), in catalog order."""
        books = (
            self.session.execute(
                select(Book).where(Book.title.icontains(query, autoescape=True)).order_by(Book.id)
            )
            .scalars()
            .all()
        )
        return [CatalogItem.from_model(book) for book in books]
