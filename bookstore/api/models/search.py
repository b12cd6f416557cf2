"""
Search Models
Pydantic models for search endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ...catalog.items import CatalogItem


class BookResult(BaseModel):
    """Single book in a search or recommendation result."""

    id: int = Field(..., description="Book ID")
    title: str = Field(..., description="Book title")
    author: Optional[str] = Field(None, description="Author")
    genre: Optional[str] = Field(None, description="Genre")
    description: Optional[str] = Field(None, description="Book description")
    isbn: Optional[str] = Field(None, description="ISBN")
    price: Optional[float] = Field(None, description="Price")
    stock: int = Field(default=0, description="Units in stock")
    in_stock: bool = Field(default=False, description="Stock availability")
    image_path: Optional[str] = Field(None, description="Cover image path")

    # Only set when explanations are requested
    explanation: Optional[str] = Field(None, description="Why this book was returned")

    @classmethod
    def from_item(cls, item: CatalogItem, explanation: Optional[str] = None) -> "BookResult":
        return cls(**item.to_dict(), explanation=explanation)


class SearchResponse(BaseModel):
    """Search response model."""

    query: str = Field(..., description="Original query")
    mode: str = Field(..., description="Search mode (smart, semantic, hybrid, natural)")
    results: List[BookResult] = Field(default_factory=list)
    total: int = Field(..., description="Number of results")
    keyword: Optional[str] = Field(None, description="Keyword used by hybrid search")

    class Config:
        json_schema_extra = {
            "example": {
                "query": "wizard school adventure",
                "mode": "semantic",
                "results": [
                    {
                        "id": 12,
                        "title": "The Hidden Academy",
                        "author": "J. Fairweather",
                        "genre": "fantasy",
                        "price": 14.99,
                        "stock": 4,
                        "in_stock": True,
                    }
                ],
                "total": 1,
            }
        }
