"""
Domain Events

Immutable records of significant state changes in the domain.
Events decouple side effects (WebSocket notifications, logging) from core business logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .job_management.value_objects import JobProgress


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Domain events are immutable records of something that happened in the domain.
    They enable decoupling of side effects from core business logic.

    Attributes:
        aggregate_id: ID of the aggregate that generated the event (the job_id)
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class JobSubmittedEvent(DomainEvent):
    """
    Event emitted when an export job is accepted and queued.

    Attributes:
        project_key: Project being exported
        download_type: Requested download type value
    """
    project_key: str
    download_type: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "project_key": self.project_key,
            "download_type": self.download_type,
        })
        return base_dict


@dataclass(frozen=True)
class JobStartedEvent(DomainEvent):
    """
    Event emitted when a worker claims an export job.

    Attributes:
        project_key: Project being exported
        download_type: Requested download type value
    """
    project_key: str
    download_type: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "project_key": self.project_key,
            "download_type": self.download_type,
        })
        return base_dict


@dataclass(frozen=True)
class JobProgressUpdatedEvent(DomainEvent):
    """
    Event emitted when an export job's progress is updated.

    Attributes:
        progress: Current progress information
    """
    progress: JobProgress

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "progress": self.progress.to_dict(),
        })
        return base_dict


@dataclass(frozen=True)
class SegmentBuiltEvent(DomainEvent):
    """
    Event emitted after one archive segment is written to disk.

    Attributes:
        segment_number: 1-based segment index
        total_segments: Number of segments planned for the job
        filename: Archive file name
        size_bytes: Archive size on disk
        file_count: Number of entries in the archive
    """
    segment_number: int
    total_segments: int
    filename: str
    size_bytes: int
    file_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "segment_number": self.segment_number,
            "total_segments": self.total_segments,
            "filename": self.filename,
            "size_bytes": self.size_bytes,
            "file_count": self.file_count,
        })
        return base_dict


@dataclass(frozen=True)
class JobCompletedEvent(DomainEvent):
    """
    Event emitted when an export job completes successfully.

    Attributes:
        segment_count: Number of archive segments produced
        ticket_file: Path of the ticket export, if one was written
    """
    segment_count: int
    ticket_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "segment_count": self.segment_count,
            "ticket_file": self.ticket_file,
        })
        return base_dict


@dataclass(frozen=True)
class JobFailedEvent(DomainEvent):
    """
    Event emitted when an export job fails.

    Attributes:
        error_message: Human-readable error message
        error_category: Error category for tracking
    """
    error_message: str
    error_category: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "error_message": self.error_message,
            "error_category": self.error_category,
        })
        return base_dict


@dataclass(frozen=True)
class JobCancelledEvent(DomainEvent):
    """Event emitted when a pending job is cancelled by the user."""

    def to_dict(self) -> Dict[str, Any]:
        return super().to_dict()


@dataclass(frozen=True)
class JobPurgedEvent(DomainEvent):
    """
    Event emitted when the retention sweep deletes a job.

    Attributes:
        status: Terminal status the job had when it was purged
    """
    status: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["status"] = self.status
        return base_dict
