"""
Cleanup Task

Celery beat task for the retention sweep.
Thin wrapper that delegates to JobService.
"""

import logging

from jiradl.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tasks.cleanup_expired_jobs")
def cleanup_expired_jobs(self):
    """
    Periodic cleanup of terminal jobs past JOB_RETENTION_DAYS and of
    partial archives left behind by interrupted writes.

    Returns:
        dict: Cleanup statistics with counts and errors
    """
    from jiradl.application.job_service import JobService
    from jiradl.celery_app import flask_app

    logger.info("Starting cleanup task")

    try:
        job_service = flask_app.container.resolve(JobService)
        stats = job_service.cleanup_expired_jobs()
    except Exception as e:
        error_msg = f"Cleanup task failed: {e}"
        logger.error(error_msg, exc_info=True)
        return {"jobs_purged": 0, "partials_removed": 0, "errors": [error_msg]}

    logger.info(
        f"Cleanup completed - Jobs: {stats['jobs_purged']}, "
        f"Partials: {stats['partials_removed']}"
    )
    return {**stats, "errors": []}
