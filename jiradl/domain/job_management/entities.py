"""
Job Management Entities

Domain entities for export jobs and their archive segments.
"""

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from .value_objects import DownloadType, FileFormat, JobProgress, JobStatus, SegmentStatus

if TYPE_CHECKING:
    from ..events import (
        JobCancelledEvent,
        JobCompletedEvent,
        JobFailedEvent,
        JobStartedEvent,
    )
else:
    # Import at runtime to avoid circular import
    def _import_events():
        from .. import events
        return events


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Segment:
    """
    Entity representing one archive file produced by a job.

    Immutable after creation except for its status.
    """

    job_id: str
    segment_number: int
    total_segments: int
    status: SegmentStatus
    file_path: str
    file_count: int
    size_bytes: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        job_id: str,
        segment_number: int,
        total_segments: int,
        file_path: str,
        file_count: int,
        size_bytes: int,
    ) -> "Segment":
        if segment_number < 1 or segment_number > total_segments:
            raise ValueError(
                f"Segment number {segment_number} outside 1..{total_segments}"
            )
        now = utcnow()
        return cls(
            job_id=job_id,
            segment_number=segment_number,
            total_segments=total_segments,
            status=SegmentStatus.COMPLETED,
            file_path=file_path,
            file_count=file_count,
            size_bytes=size_bytes,
            created_at=now,
            updated_at=now,
        )

    @property
    def filename(self) -> str:
        return os.path.basename(self.file_path)

    def to_dict(self) -> dict:
        """Convert segment to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "segment_number": self.segment_number,
            "total_segments": self.total_segments,
            "status": self.status.value,
            "file_path": self.file_path,
            "filename": self.filename,
            "file_count": self.file_count,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        """Create Segment from dictionary."""
        return cls(
            job_id=data["job_id"],
            segment_number=int(data["segment_number"]),
            total_segments=int(data["total_segments"]),
            status=SegmentStatus(data["status"]),
            file_path=data["file_path"],
            file_count=int(data["file_count"]),
            size_bytes=int(data["size_bytes"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass
class ExportJob:
    """
    Entity representing a project export job.

    Manages job lifecycle with status transitions and progress tracking.
    Credentials are referenced by an opaque token and never stored here.
    """

    job_id: str
    credentials_ref: str
    project_key: str
    download_type: DownloadType
    file_format: FileFormat
    output_directory: str
    status: JobStatus
    progress: JobProgress
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_category: Optional[str] = None
    ticket_file: Optional[str] = None
    segments: List[Segment] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        credentials_ref: str,
        project_key: str,
        download_type: DownloadType,
        file_format: FileFormat,
        output_directory: str,
    ) -> "ExportJob":
        """
        Factory method to create a new pending export job.

        Args:
            credentials_ref: Vault reference for the tracker credentials
            project_key: Project to export
            download_type: What to export
            file_format: Ticket export format
            output_directory: Directory receiving the export files

        Returns:
            New ExportJob instance
        """
        now = utcnow()
        return cls(
            job_id=str(uuid.uuid4()),
            credentials_ref=credentials_ref,
            project_key=project_key,
            download_type=DownloadType(download_type),
            file_format=FileFormat(file_format),
            output_directory=output_directory,
            status=JobStatus.PENDING,
            progress=JobProgress.initial(),
            created_at=now,
            updated_at=now,
        )

    def start(self) -> 'JobStartedEvent':
        """
        Transition job to processing state.

        Returns:
            JobStartedEvent for the transition

        Raises:
            ValueError: If job is not pending
        """
        if self.status != JobStatus.PENDING:
            raise ValueError(f"Cannot start job in {self.status.value} state")

        self.status = JobStatus.PROCESSING
        self.progress = JobProgress.started()
        self.updated_at = utcnow()

        return _import_events().JobStartedEvent(
            aggregate_id=self.job_id,
            occurred_at=self.updated_at,
            project_key=self.project_key,
            download_type=self.download_type.value,
        )

    def update_progress(self, progress: JobProgress) -> None:
        """
        Update job progress.

        Raises:
            ValueError: If job is not in processing state
        """
        if self.status != JobStatus.PROCESSING:
            raise ValueError(
                f"Cannot update progress for job in {self.status.value} state"
            )

        self.progress = progress
        self.updated_at = utcnow()

    def complete(self, ticket_file: Optional[str] = None) -> 'JobCompletedEvent':
        """
        Mark job as completed.

        Args:
            ticket_file: Path of the ticket export, if one was written

        Returns:
            JobCompletedEvent indicating successful completion

        Raises:
            ValueError: If job is not in processing state
        """
        if self.status != JobStatus.PROCESSING:
            raise ValueError(f"Cannot complete job in {self.status.value} state")

        self.status = JobStatus.COMPLETED
        self.progress = JobProgress.completed()
        self.ticket_file = ticket_file or self.ticket_file
        self.updated_at = utcnow()
        self.completed_at = self.updated_at

        return _import_events().JobCompletedEvent(
            aggregate_id=self.job_id,
            occurred_at=self.updated_at,
            segment_count=len(self.segments),
            ticket_file=self.ticket_file,
        )

    def fail(self, error: str, error_category: Optional[str] = None) -> 'JobFailedEvent':
        """
        Mark job as failed.

        A pending job may fail directly when it could not be claimed.

        Raises:
            ValueError: If job is already terminal
        """
        if self.status.is_terminal():
            raise ValueError(f"Cannot fail job in {self.status.value} state")

        self.status = JobStatus.FAILED
        self.error = error
        self.error_category = error_category
        self.updated_at = utcnow()
        self.completed_at = self.updated_at

        return _import_events().JobFailedEvent(
            aggregate_id=self.job_id,
            occurred_at=self.updated_at,
            error_message=error,
            error_category=error_category or "system_error",
        )

    def cancel(self) -> 'JobCancelledEvent':
        """
        Cancel a job that has not been claimed yet.

        Raises:
            ValueError: If job is not pending
        """
        if self.status != JobStatus.PENDING:
            raise ValueError(f"Cannot cancel job with status: {self.status.value}")

        self.status = JobStatus.CANCELLED
        self.updated_at = utcnow()
        self.completed_at = self.updated_at

        return _import_events().JobCancelledEvent(
            aggregate_id=self.job_id,
            occurred_at=self.updated_at,
        )

    def is_terminal(self) -> bool:
        """Check if job is in a terminal state."""
        return self.status.is_terminal()

    def is_active(self) -> bool:
        """Check if job is waiting or processing."""
        return self.status.is_active()

    def to_dict(self, include_segments: bool = True) -> dict:
        """Convert job to dictionary for serialization."""
        data = {
            "job_id": self.job_id,
            "credentials_ref": self.credentials_ref,
            "project_key": self.project_key,
            "download_type": self.download_type.value,
            "file_format": self.file_format.value,
            "output_directory": self.output_directory,
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "error_category": self.error_category,
            "ticket_file": self.ticket_file,
        }
        if include_segments:
            data["segments"] = [segment.to_dict() for segment in self.segments]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ExportJob":
        """Create ExportJob from dictionary."""
        return cls(
            job_id=data["job_id"],
            credentials_ref=data["credentials_ref"],
            project_key=data["project_key"],
            download_type=DownloadType(data["download_type"]),
            file_format=FileFormat(data["file_format"]),
            output_directory=data["output_directory"],
            status=JobStatus(data["status"]),
            progress=JobProgress.from_dict(data.get("progress") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            completed_at=(
                datetime.fromisoformat(data["completed_at"])
                if data.get("completed_at")
                else None
            ),
            error=data.get("error"),
            error_category=data.get("error_category"),
            ticket_file=data.get("ticket_file"),
            segments=[Segment.from_dict(s) for s in data.get("segments", [])],
        )
