"""
Export Result Value Objects

Encapsulate what an export run produced and how the job ended.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jiradl.domain.errors import ErrorCategory
from jiradl.domain.file_storage.entities import ArchiveFile
from jiradl.domain.job_management.entities import ExportJob


@dataclass
class ExportOutcome:
    """Artifacts and counters produced by one pipeline run."""

    project_key: str
    issue_count: int = 0
    comment_count: int = 0
    attachment_count: int = 0
    total_bytes: int = 0
    ticket_file: Optional[str] = None
    archives: List[ArchiveFile] = field(default_factory=list)

    @property
    def segment_count(self) -> int:
        return len(self.archives)

    def summary(self) -> str:
        if self.archives:
            return (
                f"Downloaded {self.attachment_count} attachments from {self.project_key} "
                f"in {self.segment_count} segments"
            )
        return f"Downloaded {self.issue_count} tickets from {self.project_key}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_key": self.project_key,
            "issue_count": self.issue_count,
            "comment_count": self.comment_count,
            "attachment_count": self.attachment_count,
            "total_bytes": self.total_bytes,
            "ticket_file": self.ticket_file,
            "segments": [archive.to_dict() for archive in self.archives],
            "message": self.summary(),
        }


@dataclass
class ExportResult:
    """
    Value object representing the result of an export job run.

    Encapsulates success/failure state, job information, and error details.
    """

    success: bool
    job: Optional[ExportJob]
    outcome: Optional[ExportOutcome] = None
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None
    skipped: bool = False

    @classmethod
    def create_success(cls, job: ExportJob, outcome: ExportOutcome) -> 'ExportResult':
        return cls(success=True, job=job, outcome=outcome)

    @classmethod
    def create_failure(
        cls,
        job: Optional[ExportJob],
        error_category: ErrorCategory,
        error_message: str,
    ) -> 'ExportResult':
        return cls(
            success=False,
            job=job,
            error_category=error_category,
            error_message=error_message,
        )

    @classmethod
    def create_skipped(cls, job: Optional[ExportJob]) -> 'ExportResult':
        """Job was not pending any more when a worker reached it."""
        return cls(success=False, job=job, skipped=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        if self.skipped:
            status = 'skipped'
        else:
            status = 'completed' if self.success else 'failed'
        return {
            'status': status,
            'job_id': self.job.job_id if self.job else None,
            'outcome': self.outcome.to_dict() if self.outcome else None,
            'error': self.error_message,
            'error_category': self.error_category.value if self.error_category else None,
        }
