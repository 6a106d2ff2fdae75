"""
Job Application Service

Coordinates job management use cases: submission, lookup, cancellation,
file retrieval and retention cleanup.
"""

import logging
import os
import re
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Tuple

from jiradl.application.event_publisher import EventPublisher
from jiradl.application.job_dispatcher import JobDispatcher
from jiradl.config.export_config import ExportConfig
from jiradl.domain.errors import ErrorCategory, ValidationError
from jiradl.domain.events import JobPurgedEvent, JobSubmittedEvent
from jiradl.domain.export.repositories import IssueTrackerClient
from jiradl.domain.file_storage import FileManager
from jiradl.domain.file_storage.storage_repository import IFileStorageRepository
from jiradl.domain.file_storage.value_objects import ArchiveName
from jiradl.domain.job_management import (
    Credentials,
    DownloadType,
    ExportJob,
    FileFormat,
    JobManager,
    JobStatus,
    Segment,
    SegmentNotFoundError,
    SegmentStatus,
)
from jiradl.domain.job_management.repositories import CredentialVault

logger = logging.getLogger(__name__)

PROJECT_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]+$")

# Partials older than this cannot belong to a running job
STALE_PARTIAL_AGE = timedelta(hours=1)


def job_view(job: ExportJob) -> Dict[str, Any]:
    """Public representation of a job; the credentials reference stays internal."""
    data = job.to_dict(include_segments=True)
    data.pop("credentials_ref", None)
    return data


def parse_credentials(username: Optional[str], api_token: Optional[str]) -> Credentials:
    """
    Raises:
        ValidationError: If either value is missing
    """
    if not username or not str(username).strip() or not api_token or not str(api_token).strip():
        raise ValidationError(
            "Username and API token are required", ErrorCategory.MISSING_CREDENTIALS
        )
    return Credentials(str(username).strip(), str(api_token).strip())


def validate_project_key(project_key: Optional[str]) -> str:
    key = (project_key or "").strip()
    if not PROJECT_KEY_PATTERN.match(key):
        raise ValidationError(
            f"Invalid project key: {project_key!r}", ErrorCategory.INVALID_PROJECT_KEY
        )
    return key


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} {value!r}; expected one of: {allowed}")


class JobService:
    """
    Application service for job management operations.

    Validation happens before any job exists: an invalid submission
    leaves no job record and no stored credentials behind.
    """

    def __init__(
        self,
        job_manager: JobManager,
        file_manager: FileManager,
        credential_vault: CredentialVault,
        storage_repository: IFileStorageRepository,
        dispatcher: JobDispatcher,
        event_publisher: EventPublisher,
        client_factory: Callable[[Credentials], IssueTrackerClient],
        config: Optional[ExportConfig] = None,
    ):
        self.job_manager = job_manager
        self.file_manager = file_manager
        self.credential_vault = credential_vault
        self.storage = storage_repository
        self.dispatcher = dispatcher
        self.event_publisher = event_publisher
        self.client_factory = client_factory
        self.config = config or ExportConfig()

    def validate_download_path(self, path: Optional[str]) -> Dict[str, Any]:
        """
        Ensure the directory exists and is writable.

        Raises:
            ValidationError: With category invalid_download_path
        """
        directory = os.path.expanduser((path or "").strip() or self.config.download_path)
        try:
            free_bytes = self.storage.prepare_directory(directory)
        except OSError as e:
            raise ValidationError(
                f"Download path is not usable: {e}",
                ErrorCategory.INVALID_DOWNLOAD_PATH,
            )
        return {"path": directory, "valid": True, "free_bytes": free_bytes}

    def submit_job(
        self,
        credentials: Credentials,
        project_key: str,
        download_type: str = DownloadType.ALL.value,
        file_format: str = FileFormat.JSON.value,
        output_directory: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate and queue a background export job.

        Returns:
            Dictionary with job information

        Raises:
            ValidationError: If any input is invalid
        """
        job = self._create_job(
            credentials, project_key, download_type, file_format, output_directory
        )
        self.dispatcher.dispatch(job.job_id, priority=job.download_type.priority)

        return {
            "job_id": job.job_id,
            "status": job.status.value,
            "message": "Export job queued",
        }

    def create_interactive_job(
        self,
        credentials: Credentials,
        project_key: str,
        download_type: str = DownloadType.ALL.value,
        file_format: str = FileFormat.JSON.value,
        output_directory: Optional[str] = None,
    ) -> str:
        """
        Validate and record a job that the calling connection runs inline.

        Returns:
            The job id, pending and not queued
        """
        job = self._create_job(
            credentials, project_key, download_type, file_format, output_directory
        )
        return job.job_id

    def _create_job(
        self,
        credentials: Optional[Credentials],
        project_key: str,
        download_type: str,
        file_format: str,
        output_directory: Optional[str],
    ) -> ExportJob:
        if credentials is None:
            raise ValidationError(
                "Username and API token are required", ErrorCategory.MISSING_CREDENTIALS
            )
        key = validate_project_key(project_key)
        dtype = _parse_enum(DownloadType, download_type, "download type")
        fmt = _parse_enum(FileFormat, file_format, "file format")
        directory = self.validate_download_path(output_directory)["path"]

        credentials_ref = self.credential_vault.store(credentials)
        try:
            job = self.job_manager.create_job(credentials_ref, key, dtype, fmt, directory)
        except Exception:
            self.credential_vault.discard(credentials_ref)
            raise

        logger.info(f"Created job {job.job_id} for {key} ({dtype.value}, {fmt.value})")
        self.event_publisher.publish(
            JobSubmittedEvent(
                aggregate_id=job.job_id,
                occurred_at=job.created_at,
                project_key=key,
                download_type=dtype.value,
            )
        )
        return job

    def get_job(self, job_id: str) -> Dict[str, Any]:
        """
        Raises:
            JobNotFoundError: If job doesn't exist
        """
        return job_view(self.job_manager.get_job(job_id))

    def list_jobs(self) -> List[Dict[str, Any]]:
        return [job_view(job) for job in self.job_manager.list_jobs()]

    def cancel_job(self, job_id: str) -> Dict[str, Any]:
        """
        Cancel a pending job.

        Raises:
            JobNotFoundError: If job doesn't exist
            JobStateError: If job is not pending
        """
        job, event = self.job_manager.cancel_job(job_id)
        self.dispatcher.revoke(job_id)
        self.credential_vault.discard(job.credentials_ref)
        self.event_publisher.publish(event)
        logger.info(f"Cancelled job {job_id}")
        return {"job_id": job_id, "status": JobStatus.CANCELLED.value}

    def retrieve_segment(self, job_id: str, segment_number: int) -> Tuple[Segment, BinaryIO]:
        """
        Open a completed job's segment archive for streaming.

        Raises:
            JobNotFoundError: If job doesn't exist
            SegmentNotFoundError: If the job has no such segment
            ExportFileNotFoundError: If the archive is no longer on disk
        """
        job = self.job_manager.get_job(job_id)
        segment = next(
            (s for s in job.segments if s.segment_number == segment_number), None
        )
        if segment is None:
            raise SegmentNotFoundError(
                f"Segment {segment_number} of job {job_id} is not available"
            )
        return segment, self.file_manager.open_file(segment.file_path)

    def retrieve_archive(self, job_id: str, filename: str) -> Tuple[Segment, BinaryIO]:
        """
        Open a segment archive by the file name announced in the job view.

        Raises:
            ValidationError: If filename is not a segment archive name
            JobNotFoundError: If job doesn't exist
            SegmentNotFoundError: If no segment of the job has that name
        """
        try:
            name = ArchiveName.parse(filename)
        except ValueError as e:
            raise ValidationError(str(e))

        job = self.job_manager.get_job(job_id)
        segment = next(
            (
                s for s in job.segments
                if s.segment_number == name.segment_number and s.filename == filename
            ),
            None,
        )
        if segment is None:
            raise SegmentNotFoundError(f"Job {job_id} has no archive named {filename}")
        return segment, self.file_manager.open_file(segment.file_path)

    def retrieve_ticket_file(self, job_id: str) -> Tuple[str, BinaryIO]:
        """
        Open the ticket export of a job.

        The file is also available on failed jobs whose processing stage
        finished before the failure.
        """
        job = self.job_manager.get_job(job_id)
        if not job.ticket_file:
            raise SegmentNotFoundError(f"Job {job_id} has no ticket export")
        return job.ticket_file, self.file_manager.open_file(job.ticket_file)

    def finish_retrieval(self, job_id: str, segment_number: Optional[int] = None) -> None:
        """
        Called after a file transfer completed.

        Deletes the delivered file when DELETE_AFTER_RETRIEVE is set and
        marks the segment retrieved. segment_number None means the
        ticket export.
        """
        if segment_number is None:
            if self.config.delete_after_retrieve:
                job = self.job_manager.get_job(job_id)
                if job.ticket_file:
                    self.file_manager.remove_file(job.ticket_file)
            return

        job = self.job_manager.get_job(job_id)
        segment = next(
            (s for s in job.segments if s.segment_number == segment_number), None
        )
        if segment is None:
            return
        if self.config.delete_after_retrieve:
            self.file_manager.remove_file(segment.file_path)
        self.job_manager.job_repo.update_segment_status(
            job_id, segment_number, SegmentStatus.RETRIEVED
        )

    def test_connection(self, credentials: Credentials) -> Dict[str, Any]:
        """
        Check the credentials against the tracker.

        Raises:
            RemoteError: If the tracker rejects or cannot be reached
        """
        user = self.client_factory(credentials).get_current_user()
        return {
            "connected": True,
            "user": {
                "display_name": user.get("displayName"),
                "email": user.get("emailAddress"),
                "account_id": user.get("accountId") or user.get("name"),
            },
        }

    def list_projects(self, credentials: Credentials) -> List[Dict[str, Any]]:
        projects = self.client_factory(credentials).list_projects()
        return [
            {"key": project.get("key"), "name": project.get("name"), "id": project.get("id")}
            for project in projects
        ]

    def cleanup_expired_jobs(self, retention: Optional[timedelta] = None) -> Dict[str, int]:
        """
        Delete terminal jobs past retention and stale partial archives.

        Running twice in a row deletes nothing the second time.

        Returns:
            Counts of purged jobs and removed partial files
        """
        retention = retention or timedelta(days=self.config.job_retention_days)
        purged = self.job_manager.cleanup_expired_jobs(retention)

        directories = {self.config.download_path}
        for job in purged:
            self.credential_vault.discard(job.credentials_ref)
            directories.add(job.output_directory)
            self.event_publisher.publish(
                JobPurgedEvent(
                    aggregate_id=job.job_id,
                    occurred_at=datetime.now(timezone.utc),
                    status=job.status.value,
                )
            )

        partials = 0
        for directory in sorted(directories):
            partials += self.file_manager.purge_stale_partials(directory, STALE_PARTIAL_AGE)

        if purged or partials:
            logger.info(
                f"Retention sweep removed {len(purged)} job(s) and {partials} partial file(s)"
            )
        return {"jobs_purged": len(purged), "partials_removed": partials}
