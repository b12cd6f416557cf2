"""
Background Tasks
Celery app and indexing tasks.
"""

from .celery_app import app

__all__ = ["app"]
