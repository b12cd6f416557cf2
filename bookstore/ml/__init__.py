"""
ML Module
Embeddings, vector retrieval, query understanding and recommendation for
the bookstore catalog.
"""

from .config import MLConfig, get_ml_config, reset_config

__all__ = ["MLConfig", "get_ml_config", "reset_config"]
