"""
Bookstore catalog search backend.
Semantic search, natural-language query understanding and recommendations.
"""

__version__ = "0.1.0"
