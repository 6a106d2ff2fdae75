"""
Celery Configuration

Configures Celery with Flask integration, Redis broker, task routing and
the retention sweep schedule.
"""

import os

from celery import Celery
from kombu import Queue


class CeleryConfig:
    """Celery configuration settings."""

    # Broker settings
    broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    # Task settings
    task_serializer = "json"
    accept_content = ["json"]
    result_serializer = "json"
    timezone = "UTC"
    enable_utc = True

    # One job per worker process at a time; the pool size bounds concurrency
    worker_prefetch_multiplier = 1
    task_acks_late = True
    worker_max_tasks_per_child = 50
    worker_concurrency = int(os.getenv("MAX_CONCURRENT_JOBS", 2))

    # Redis emulates priorities with one list per level; 0 is highest
    broker_transport_options = {
        "priority_steps": list(range(10)),
        "sep": ":",
        "queue_order_strategy": "priority",
    }
    task_default_priority = 5

    task_routes = {
        "tasks.export_project": {"queue": "export_queue"},
        "tasks.cleanup_expired_jobs": {"queue": "cleanup_queue"},
    }

    task_default_queue = "default"
    task_queues = (
        Queue("default", routing_key="default"),
        Queue("export_queue", routing_key="export"),
        Queue("cleanup_queue", routing_key="cleanup"),
    )

    beat_schedule = {
        "cleanup-expired-jobs": {
            "task": "tasks.cleanup_expired_jobs",
            "schedule": float(os.getenv("CLEANUP_INTERVAL_SECONDS", 3600)),
        },
    }

    # Large projects take a while; limits are generous by default
    task_soft_time_limit = int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", 14400))
    task_time_limit = int(os.getenv("CELERY_TASK_TIME_LIMIT", 15000))

    result_expires = 3600


def make_celery(app):
    """
    Create Celery instance with Flask app context.

    Args:
        app: Flask application instance

    Returns:
        Configured Celery instance
    """
    celery = Celery(
        app.import_name,
        backend=CeleryConfig.result_backend,
        broker=CeleryConfig.broker_url,
    )
    celery.config_from_object(CeleryConfig)

    class ContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery
