"""
Bookstore Search API
FastAPI application for search, recommendations and indexing control.
"""
