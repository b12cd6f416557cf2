"""
Database ORM Models
SQLAlchemy ORM models and session handling.
"""

from .models import Base, Book, EMBEDDING_DIMENSION

__all__ = [
    "Base",
    "Book",
    "EMBEDDING_DIMENSION",
]
