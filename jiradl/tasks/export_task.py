"""
Export Task

Celery task for background export jobs.
Thin wrapper that delegates to ExportService.
"""

import logging
import time
from typing import Any, Dict

from jiradl.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tasks.export_project")
def export_project(self, job_id: str) -> Dict[str, Any]:
    """
    Run one queued export job.

    Job failures are recorded on the job by ExportService and returned
    here; the task itself only raises on programming errors. After each
    job the worker pauses for INTER_JOB_DELAY_SECONDS to spread load on
    the Jira instance.

    Args:
        job_id: Unique job identifier

    Returns:
        dict: ExportResult serialized for the result backend
    """
    from jiradl.application.export_service import ExportService
    from jiradl.celery_app import flask_app
    from jiradl.config.export_config import ExportConfig

    task_start_time = time.time()
    logger.info(f"Task started for job {job_id}")

    container = flask_app.container
    export_service = container.resolve(ExportService)
    config = container.resolve(ExportConfig)

    try:
        result = export_service.execute_export(job_id)
    except Exception as e:
        duration_ms = (time.time() - task_start_time) * 1000
        logger.error(f"Task failed for job {job_id} after {duration_ms:.2f}ms: {e}")
        raise

    duration_ms = (time.time() - task_start_time) * 1000
    logger.info(f"Task finished for job {job_id} in {duration_ms:.2f}ms")

    if config.inter_job_delay_seconds > 0:
        time.sleep(config.inter_job_delay_seconds)

    return result.to_dict()
