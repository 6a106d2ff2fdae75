"""
Celery Job Dispatcher

Sends export jobs to the Celery export queue by task name, so the web
process never imports task modules.
"""

import logging

from jiradl.application.job_dispatcher import JobDispatcher

logger = logging.getLogger(__name__)

EXPORT_TASK_NAME = "tasks.export_project"
EXPORT_QUEUE = "export_queue"


class CeleryJobDispatcher(JobDispatcher):
    """JobDispatcher backed by a Celery application."""

    def __init__(self, celery_app):
        self.celery = celery_app

    def dispatch(self, job_id: str, priority: int = 5) -> None:
        # task_id doubles as the job id so revoke can target it
        self.celery.send_task(
            EXPORT_TASK_NAME,
            args=[job_id],
            task_id=job_id,
            queue=EXPORT_QUEUE,
            priority=priority,
        )
        logger.info(f"Dispatched job {job_id} to {EXPORT_QUEUE} (priority {priority})")

    def revoke(self, job_id: str) -> None:
        try:
            self.celery.control.revoke(job_id)
        except Exception as e:
            # Broker unavailable; the worker skips non-pending jobs anyway
            logger.warning(f"Could not revoke task for job {job_id}: {e}")
