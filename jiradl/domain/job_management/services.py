"""
Job Management Services

Domain services for export job lifecycle management.
"""

from datetime import timedelta
from typing import List, Optional, Tuple

from .entities import ExportJob, Segment
from .repositories import JobRepository
from .value_objects import DownloadType, FileFormat, JobProgress, JobStatus
from ..errors import DomainError, ErrorCategory


class JobNotFoundError(DomainError):
    """Raised when a job is not found."""

    category = ErrorCategory.JOB_NOT_FOUND


class JobStateError(DomainError):
    """Raised when an invalid state transition is attempted."""

    category = ErrorCategory.JOB_STATE_CONFLICT


class SegmentNotFoundError(DomainError):
    """Raised when a segment does not exist or is not visible yet."""

    category = ErrorCategory.FILE_NOT_FOUND


class JobManager:
    """
    Domain service for managing export job lifecycle.

    Coordinates job creation, status transitions and segment visibility.
    Every status change goes through the repository's compare-and-set so
    that a job is claimed, cancelled or finished exactly once.
    """

    def __init__(self, job_repository: JobRepository):
        """
        Initialize JobManager with repository.

        Args:
            job_repository: Repository for job persistence
        """
        self.job_repo = job_repository

    def create_job(
        self,
        credentials_ref: str,
        project_key: str,
        download_type: DownloadType,
        file_format: FileFormat,
        output_directory: str,
    ) -> ExportJob:
        """
        Create a new pending export job.

        Raises:
            Exception: If job creation fails
        """
        job = ExportJob.create(
            credentials_ref, project_key, download_type, file_format, output_directory
        )

        if not self.job_repo.save(job):
            raise Exception("Failed to save job to repository")

        return job

    def get_job(self, job_id: str) -> ExportJob:
        """
        Retrieve a job by ID.

        Segments are attached only once the job has completed.

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        job = self.job_repo.get(job_id)

        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")

        self._attach_segments(job)
        return job

    def list_jobs(self) -> List[ExportJob]:
        """List all jobs newest first, with segments for completed jobs."""
        jobs = self.job_repo.list_all()
        for job in jobs:
            self._attach_segments(job)
        return jobs

    def _attach_segments(self, job: ExportJob) -> None:
        if job.status == JobStatus.COMPLETED:
            job.segments = self.job_repo.get_segments(job.job_id)
        else:
            job.segments = []

    def claim_job(self, job_id: str) -> Optional[Tuple[ExportJob, object]]:
        """
        Claim a pending job for processing.

        Returns:
            (job, JobStartedEvent) when claimed, None if the job is no
            longer pending (cancelled or already taken by another worker)

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        job = self.get_job(job_id)
        if job.status != JobStatus.PENDING:
            return None

        event = job.start()
        claimed = self.job_repo.update_status(
            job_id, JobStatus.PROCESSING, expected_status=JobStatus.PENDING
        )
        if not claimed:
            return None

        self.job_repo.update_progress(job_id, job.progress)
        return job, event

    def update_job_progress(self, job_id: str, progress: JobProgress) -> bool:
        """
        Update job progress atomically.

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        if not self.job_repo.exists(job_id):
            raise JobNotFoundError(f"Job {job_id} not found")

        return self.job_repo.update_progress(job_id, progress)

    def complete_job(
        self,
        job_id: str,
        segments: List[Segment],
        ticket_file: Optional[str] = None,
    ):
        """
        Persist the job's segments in bulk and mark it completed.

        Returns:
            (job, JobCompletedEvent)

        Raises:
            JobNotFoundError: If job doesn't exist
            JobStateError: If job is not processing
        """
        job = self.get_job(job_id)
        job.segments = list(segments)

        try:
            event = job.complete(ticket_file)
        except ValueError as e:
            raise JobStateError(str(e))

        if segments and not self.job_repo.save_segments(job_id, segments):
            raise Exception("Failed to save segments")
        if not self.job_repo.save(job):
            raise Exception("Failed to save job")

        return job, event

    def fail_job(
        self,
        job_id: str,
        error: str,
        error_category: Optional[str] = None,
        ticket_file: Optional[str] = None,
    ):
        """
        Mark job as failed with a persisted error message.

        Returns:
            (job, JobFailedEvent)

        Raises:
            JobNotFoundError: If job doesn't exist
            JobStateError: If job is already terminal
        """
        job = self.get_job(job_id)

        try:
            event = job.fail(error, error_category)
        except ValueError as e:
            raise JobStateError(str(e))

        if ticket_file:
            job.ticket_file = ticket_file
        if not self.job_repo.save(job):
            raise Exception("Failed to save job")

        return job, event

    def cancel_job(self, job_id: str):
        """
        Cancel a pending job.

        The status check and update are a single compare-and-set, so a
        worker claiming the job at the same moment wins or loses cleanly.

        Returns:
            (job, JobCancelledEvent)

        Raises:
            JobNotFoundError: If job doesn't exist
            JobStateError: If job is not pending
        """
        job = self.get_job(job_id)

        try:
            event = job.cancel()
        except ValueError as e:
            raise JobStateError(str(e))

        if not self.job_repo.update_status(
            job_id,
            JobStatus.CANCELLED,
            completed_at=job.completed_at,
            expected_status=JobStatus.PENDING,
        ):
            current = self.get_job(job_id)
            raise JobStateError(
                f"Cannot cancel job with status: {current.status.value}"
            )

        return job, event

    def cleanup_expired_jobs(self, retention: timedelta = timedelta(days=7)) -> List[ExportJob]:
        """
        Delete terminal jobs older than the retention window.

        Args:
            retention: Retention window

        Returns:
            Jobs that were deleted
        """
        deleted = []
        for job_id in self.job_repo.get_expired_jobs(retention):
            job = self.job_repo.get(job_id)
            if job is None or not job.is_terminal():
                continue
            if self.job_repo.delete(job_id):
                deleted.append(job)
        return deleted
