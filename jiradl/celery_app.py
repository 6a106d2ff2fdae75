"""
Celery Application Instance

Creates the Celery app instance for use by workers and beat scheduler.
Uses the app factory so workers resolve the same services as the API.
SocketIO is bound to the Redis message queue, so events emitted in a
worker reach clients connected to the web process.

    celery -A jiradl.celery_app worker -Q export_queue,cleanup_queue
    celery -A jiradl.celery_app beat
"""

from jiradl.app_factory import create_app

flask_app = create_app()

celery_app = flask_app.celery
if celery_app is None:
    raise RuntimeError("Celery is not configured; set JOB_QUEUE_BACKEND=celery")

# Task modules are imported by name to avoid a circular import:
# tasks -> export_task -> celery_app -> tasks
celery_app.conf.imports = (
    "jiradl.tasks.export_task",
    "jiradl.tasks.cleanup_task",
)
