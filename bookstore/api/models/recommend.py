"""
Recommendation Models
Pydantic models for similar-book and recommendation endpoints.
"""

from typing import List

from pydantic import BaseModel, Field

from .search import BookResult


class RecommendationResponse(BaseModel):
    """Books related to a source book."""

    book_id: int = Field(..., description="Source book ID")
    results: List[BookResult] = Field(default_factory=list)
    total: int = Field(..., description="Number of results")
