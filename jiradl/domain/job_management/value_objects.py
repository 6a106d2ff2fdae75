"""
Job Management Value Objects

Immutable value objects for job status, export options and progress tracking.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class JobStatus(Enum):
    """Job status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Check if status is terminal (completed, failed or cancelled)."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)

    def is_active(self) -> bool:
        """Check if job is waiting or actively processing."""
        return self in (JobStatus.PENDING, JobStatus.PROCESSING)


class DownloadType(Enum):
    """What a job exports from the project."""
    ALL = "all"
    TICKETS = "tickets"
    ATTACHMENTS = "attachments"

    @property
    def includes_tickets(self) -> bool:
        return self in (DownloadType.ALL, DownloadType.TICKETS)

    @property
    def includes_attachments(self) -> bool:
        return self in (DownloadType.ALL, DownloadType.ATTACHMENTS)

    @property
    def priority(self) -> int:
        """Queue priority, lower runs first. Ticket-only jobs are cheap."""
        return 0 if self is DownloadType.TICKETS else 5


class FileFormat(Enum):
    """Ticket export file format."""
    JSON = "json"
    CSV = "csv"


class SegmentStatus(Enum):
    """Segment status enumeration."""
    COMPLETED = "completed"
    RETRIEVED = "retrieved"


# Logical stage order of a single export run
STAGES = (
    "init",
    "fetching",
    "processing",
    "analyzing",
    "segmenting",
    "downloading",
    "complete",
)


def stage_index(stage: str) -> int:
    """Return the position of a stage in the run order."""
    try:
        return STAGES.index(stage)
    except ValueError:
        raise ValueError(f"Unknown stage: {stage}")


@dataclass(frozen=True)
class Credentials:
    """
    Tracker credentials passed through to the remote API.

    Never serialised into job dictionaries; jobs only hold a reference.
    """
    username: str
    api_token: str

    def __post_init__(self):
        if not self.username or not self.api_token:
            raise ValueError("Username and API token are required")

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, api_token='***')"

    def to_dict(self) -> dict:
        return {"username": self.username, "api_token": self.api_token}

    @classmethod
    def from_dict(cls, data: dict) -> 'Credentials':
        return cls(username=data["username"], api_token=data["api_token"])


@dataclass(frozen=True)
class JobProgress:
    """
    Value object representing job progress information.

    Immutable to ensure thread-safety when passed between components.
    """
    percentage: int
    stage: str
    message: str = ""
    total_issues: int = 0
    current_issue: int = 0
    downloaded_size: int = 0
    time_elapsed: float = 0.0
    estimated_time_remaining: Optional[float] = None
    current_operation: Optional[str] = None
    operation_details: Optional[str] = None

    def __post_init__(self):
        """Validate progress values."""
        if not 0 <= self.percentage <= 100:
            raise ValueError(f"Percentage must be between 0 and 100, got {self.percentage}")
        if not self.stage:
            raise ValueError("Stage is required")

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return {
            "percentage": self.percentage,
            "stage": self.stage,
            "message": self.message,
            "total_issues": self.total_issues,
            "current_issue": self.current_issue,
            "downloaded_size": self.downloaded_size,
            "time_elapsed": self.time_elapsed,
            "estimated_time_remaining": self.estimated_time_remaining,
            "current_operation": self.current_operation,
            "operation_details": self.operation_details,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'JobProgress':
        """Create JobProgress from dictionary."""
        return cls(
            percentage=data.get("percentage", 0),
            stage=data.get("stage", "init"),
            message=data.get("message", ""),
            total_issues=data.get("total_issues", 0),
            current_issue=data.get("current_issue", 0),
            downloaded_size=data.get("downloaded_size", 0),
            time_elapsed=data.get("time_elapsed", 0.0),
            estimated_time_remaining=data.get("estimated_time_remaining"),
            current_operation=data.get("current_operation"),
            operation_details=data.get("operation_details"),
        )

    @classmethod
    def initial(cls) -> 'JobProgress':
        """Create initial progress state."""
        return cls(percentage=0, stage="init", message="Waiting in queue")

    @classmethod
    def started(cls) -> 'JobProgress':
        """Create progress for a freshly claimed job."""
        return cls(percentage=1, stage="init", message="Connecting to Jira")

    @classmethod
    def completed(cls, message: str = "Export complete") -> 'JobProgress':
        """Create progress for completed state."""
        return cls(percentage=100, stage="complete", message=message)
