"""
Job-scoped observability.

JobLogger tags every record with the job it belongs to; trace_stage wraps
pipeline stage methods to log their start, duration and failure.
"""

import functools
import logging
import time
from typing import Optional


class JobLogger(logging.LoggerAdapter):
    """
    Logger handle for a single job run.

    Created per job by the export service and passed explicitly to the
    pipeline and archive builder.
    """

    def __init__(self, logger: logging.Logger, job_id: str, project_key: Optional[str] = None):
        super().__init__(logger, {"job_id": job_id, "project_key": project_key})

    @property
    def job_id(self) -> str:
        return self.extra["job_id"]

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[Job {self.extra['job_id']}] {msg}", kwargs

    @classmethod
    def for_job(cls, job_id: str, project_key: Optional[str] = None) -> "JobLogger":
        return cls(logging.getLogger("jiradl.jobs"), job_id, project_key)


def trace_stage(stage: str):
    """
    Decorate a pipeline stage method with start/finish/failure logging.

    The decorated method's owner must expose a ``log`` attribute holding
    a logger or LoggerAdapter.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            log = self.log
            started = time.monotonic()
            log.info(f"Stage {stage} started")
            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                log.error(
                    f"Stage {stage} failed after {time.monotonic() - started:.2f}s: "
                    f"{type(e).__name__}: {e}"
                )
                raise
            log.info(f"Stage {stage} finished in {time.monotonic() - started:.2f}s")
            return result

        wrapper.stage = stage
        return wrapper

    return decorator
