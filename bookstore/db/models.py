"""
SQLAlchemy ORM Models
Database table definitions using SQLAlchemy ORM.
"""

from __future__ import annotations

from pgvector.sqlalchemy import Vector
from sqlalchemy import TIMESTAMP, Column, Integer, Numeric, String, Text, event, inspect, text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

EMBEDDING_DIMENSION = 1536

# Changing any of these invalidates the stored embedding
EMBEDDING_SOURCE_FIELDS = ("title", "author", "genre", "description")


class Book(Base):
    """
    Book model.

    Stores catalog information and the derived text embedding. The
    embedding is either NULL or a 1536-dim L2-normalized vector; it is
    never edited directly and is dropped together with the row.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Core book info
    title = Column(String(500), nullable=False)
    author = Column(String(255), nullable=True, index=True)
    genre = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    isbn = Column(String(32), nullable=True, unique=True)

    # Pricing and stock
    price = Column(Numeric(10, 2), nullable=True)
    stock = Column(Integer, nullable=False, server_default=text("0"))

    # Images
    image_path = Column(Text, nullable=True)

    # Embedding
    embedding = Column(Vector(EMBEDDING_DIMENSION), nullable=True,
                       comment="Text embedding of title/author/genre/description (1536-dim)")
    embedding_model_version = Column(String(100), nullable=True)
    embedding_generated_at = Column(TIMESTAMP, nullable=True)

    # Metadata
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Book(id={self.id}, title={(self.title or '')[:30]})>"


@event.listens_for(Book, "before_update")
def invalidate_stale_embedding(mapper, connection, target: Book) -> None:
    """Clear the embedding when a field it was computed from changes."""
    state = inspect(target)
    if any(state.attrs[name].history.has_changes() for name in EMBEDDING_SOURCE_FIELDS):
        if not state.attrs.embedding.history.has_changes():
            target.embedding = None
            target.embedding_generated_at = None
            target.embedding_model_version = None
