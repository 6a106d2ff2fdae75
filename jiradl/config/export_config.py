"""
Export Configuration

Environment-driven settings for the export pipeline, the job queue and
file delivery.
"""

import os

MEGABYTE = 1024 * 1024


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class ExportConfig:
    """Export configuration settings."""

    def __init__(self):
        self.jira_base_url = os.getenv("JIRA_BASE_URL", "https://your-domain.atlassian.net").rstrip("/")
        self.download_path = os.path.expanduser(
            os.getenv("DOWNLOAD_PATH", os.path.join("~", "Downloads", "jira-downloads"))
        )

        # Segment size limit is deployment configuration, not a constant
        self.segment_size_limit_bytes = int(
            os.getenv("SEGMENT_SIZE_LIMIT_BYTES", 50 * MEGABYTE)
        )

        # Remote API
        self.api_timeout_seconds = float(os.getenv("API_TIMEOUT_SECONDS", 30))
        self.api_max_timeout_seconds = float(os.getenv("API_MAX_TIMEOUT_SECONDS", 300))
        self.api_max_retries = int(os.getenv("API_MAX_RETRIES", 3))
        self.api_retry_delay_seconds = float(os.getenv("API_RETRY_DELAY_SECONDS", 1))
        self.issue_page_size = int(os.getenv("ISSUE_PAGE_SIZE", 100))

        # Delivery
        self.delete_after_retrieve = _get_bool("DELETE_AFTER_RETRIEVE", True)
        self.keepalive_interval_seconds = float(os.getenv("KEEPALIVE_INTERVAL_SECONDS", 5))

        # Queue
        self.job_retention_days = int(os.getenv("JOB_RETENTION_DAYS", 7))
        self.cleanup_interval_seconds = float(os.getenv("CLEANUP_INTERVAL_SECONDS", 3600))
        self.max_concurrent_jobs = int(os.getenv("MAX_CONCURRENT_JOBS", 2))
        self.inter_job_delay_seconds = float(os.getenv("INTER_JOB_DELAY_SECONDS", 1))
        self.job_queue_backend = os.getenv("JOB_QUEUE_BACKEND", "celery").lower()

        if self.segment_size_limit_bytes <= 0:
            raise ValueError("SEGMENT_SIZE_LIMIT_BYTES must be positive")
        if self.job_queue_backend not in ("celery", "local"):
            raise ValueError(
                f"JOB_QUEUE_BACKEND must be 'celery' or 'local', got {self.job_queue_backend}"
            )
