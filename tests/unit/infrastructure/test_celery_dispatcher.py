"""
Unit tests for CeleryJobDispatcher.
"""

from unittest.mock import Mock

from jiradl.infrastructure.celery_dispatcher import (
    EXPORT_QUEUE,
    EXPORT_TASK_NAME,
    CeleryJobDispatcher,
)


def test_dispatch_sends_task_by_name_with_job_id():
    celery = Mock()

    CeleryJobDispatcher(celery).dispatch("job-1", priority=0)

    celery.send_task.assert_called_once_with(
        EXPORT_TASK_NAME, args=["job-1"], task_id="job-1", queue=EXPORT_QUEUE, priority=0
    )


def test_revoke_targets_task_id():
    celery = Mock()

    CeleryJobDispatcher(celery).revoke("job-1")

    celery.control.revoke.assert_called_once_with("job-1")


def test_revoke_tolerates_broker_errors():
    celery = Mock()
    celery.control.revoke.side_effect = ConnectionError("broker down")

    CeleryJobDispatcher(celery).revoke("job-1")
