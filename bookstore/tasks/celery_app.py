"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from ..config import get_settings

settings = get_settings()

# Create Celery app
app = Celery(
    "bookstore",
    broker=settings.broker_url,
    backend=settings.result_backend_url,
    include=[
        "bookstore.tasks.indexing",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes, same as the run guard TTL
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Configure periodic tasks with Celery Beat
app.conf.beat_schedule = {
    # Embed books added or edited since the last pass (daily at 2 AM)
    "index-missing-embeddings-daily": {
        "task": "tasks.index_missing_embeddings",
        "schedule": crontab(hour=2, minute=0),
    },
}

if __name__ == "__main__":
    app.start()
