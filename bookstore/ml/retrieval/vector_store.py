"""
Vector Store
Nearest-neighbor queries over the ``books.embedding`` pgvector column.

Vectors cross the storage boundary only as VectorRecord strings
(``[v0,v1,...]``) cast to ``vector`` in SQL. Results are ordered by cosine
distance (``<=>``) ascending, ties broken by ascending id.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...catalog.items import ITEM_COLUMNS, CatalogItem
from ..vector_utils import format_vector, parse_vector

logger = logging.getLogger(__name__)

_SELECT_ITEMS = f"SELECT {', '.join(ITEM_COLUMNS)} FROM books"

_ORDER_BY_DISTANCE = "ORDER BY embedding <=> CAST(:query_vector AS vector), id LIMIT :limit"


def utc_now() -> datetime:
    """Current UTC time, naive, matching the ``TIMESTAMP`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class VectorStore:
    """
    Persists per-item vectors and answers nearest-neighbor queries.

    All query methods accept a vector of the configured dimension and return
    CatalogItem rows without their embeddings.
    """

    def __init__(self, session: Session, model_version: Optional[str] = None):
        """
        Initialize vector store.

        Args:
            session: Database session
            model_version: Embedding model name stamped on saved rows
        """
        self.session = session
        self.model_version = model_version

    def _query_items(self, predicates: List[str], params: Dict[str, Any]) -> List[CatalogItem]:
        where = " AND ".join(["embedding IS NOT NULL"] + predicates)
        sql = text(f"{_SELECT_ITEMS} WHERE {where} {_ORDER_BY_DISTANCE}")

        result = self.session.execute(sql, params)
        return [CatalogItem.from_row(row._mapping) for row in result]

    def find_similar(
        self, query_vector: np.ndarray, limit: int, exclude_id: Optional[int] = None
    ) -> List[CatalogItem]:
        """
        Nearest items among all items with an embedding.

        Args:
            query_vector: Query embedding
            limit: Maximum number of items
            exclude_id: Optional item id to leave out (e.g. the source item)
        """
        predicates = []
        params: Dict[str, Any] = {"query_vector": format_vector(query_vector), "limit": limit}

        if exclude_id is not None:
            predicates.append("id != :exclude_id")
            params["exclude_id"] = exclude_id

        return self._query_items(predicates, params)

    def find_similar_by_genre(self, query_vector: np.ndarray, genre: str, limit: int) -> List[CatalogItem]:
        """Nearest items whose genre equals ``genre`` (case-insensitive)."""
        return self._query_items(
            ["LOWER(genre) = LOWER(:genre)"],
            {"query_vector": format_vector(query_vector), "genre": genre, "limit": limit},
        )

    def find_similar_in_stock(self, query_vector: np.ndarray, limit: int) -> List[CatalogItem]:
        """Nearest items with stock > 0."""
        return self._query_items(
            ["stock > 0"],
            {"query_vector": format_vector(query_vector), "limit": limit},
        )

    def hybrid_search(self, query_vector: np.ndarray, keyword: str, limit: int) -> List[CatalogItem]:
        """
        Nearest items whose title, author or description contains ``keyword``.

        The match is a case-insensitive substring test.
        """
        escaped = keyword.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return self._query_items(
            [
                "(LOWER(title) LIKE :pattern"
                " OR LOWER(author) LIKE :pattern"
                " OR LOWER(description) LIKE :pattern)"
            ],
            {"query_vector": format_vector(query_vector), "pattern": pattern, "limit": limit},
        )

    def load_embedding(self, item_id: int) -> Optional[np.ndarray]:
        """
        Read one item's embedding.

        Returns:
            The decoded vector, or None if the item has none (or does not exist)
        """
        row = self.session.execute(
            text("SELECT embedding::text AS embedding FROM books WHERE id = :id"),
            {"id": item_id},
        ).first()

        if row is None or not row.embedding:
            return None

        return parse_vector(row.embedding)

    def save_embedding(self, item_id: int, vector: np.ndarray) -> None:
        """
        Write one item's embedding (last writer wins).

        Commits immediately so a failure only affects this row.
        """
        try:
            self.session.execute(
                text(
                    "UPDATE books SET embedding = CAST(:embedding AS vector),"
                    " embedding_model_version = :model_version,"
                    " embedding_generated_at = :generated_at"
                    " WHERE id = :id"
                ),
                {
                    "embedding": format_vector(vector),
                    "model_version": self.model_version,
                    "generated_at": utc_now(),
                    "id": item_id,
                },
            )
            self.session.commit()
        except Exception:
            # Rollback this specific item's transaction
            self.session.rollback()
            raise

        logger.debug(f"Saved embedding for item {item_id}")

    def count_total(self) -> int:
        return int(self.session.execute(text("SELECT COUNT(*) FROM books")).scalar() or 0)

    def count_indexed(self) -> int:
        return int(
            self.session.execute(
                text("SELECT COUNT(*) FROM books WHERE embedding IS NOT NULL")
            ).scalar()
            or 0
        )

    def items_without_embedding(self) -> List[CatalogItem]:
        """All items whose embedding is absent, in id order."""
        result = self.session.execute(
            text(f"{_SELECT_ITEMS} WHERE embedding IS NULL ORDER BY id")
        )
        return [CatalogItem.from_row(row._mapping) for row in result]

    def items_not_embedded_since(self, since: datetime) -> List[CatalogItem]:
        """Items whose embedding is absent or was written before ``since``, in id order."""
        result = self.session.execute(
            text(
                f"{_SELECT_ITEMS} WHERE embedding IS NULL"
                " OR embedding_generated_at IS NULL"
                " OR embedding_generated_at < :since"
                " ORDER BY id"
            ),
            {"since": since},
        )
        return [CatalogItem.from_row(row._mapping) for row in result]

    def all_items(self) -> List[CatalogItem]:
        """Every item, in id order."""
        result = self.session.execute(text(f"{_SELECT_ITEMS} ORDER BY id"))
        return [CatalogItem.from_row(row._mapping) for row in result]
