"""
Catalog Module
Catalog item values and read access.
"""

from .items import CatalogItem
from .repository import BookRepository

__all__ = ["CatalogItem", "BookRepository"]
