"""
Job Management Repositories

Repository interfaces for job, segment and credential persistence.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from .entities import ExportJob, Segment
from .value_objects import Credentials, JobProgress, JobStatus, SegmentStatus


class JobRepository(ABC):
    """Abstract repository interface for job and segment persistence."""

    @abstractmethod
    def save(self, job: ExportJob) -> bool:
        """
        Save or update a job record. Segments are stored separately.

        Args:
            job: ExportJob to save

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def get(self, job_id: str) -> Optional[ExportJob]:
        """
        Retrieve a job by ID, without its segments.

        Args:
            job_id: Job identifier

        Returns:
            ExportJob if found, None otherwise
        """
        pass

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """
        Delete a job together with its segments in one operation.

        Args:
            job_id: Job identifier

        Returns:
            True if deleted, False otherwise
        """
        pass

    @abstractmethod
    def exists(self, job_id: str) -> bool:
        """
        Check if job exists.

        Args:
            job_id: Job identifier

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    def update_progress(self, job_id: str, progress: JobProgress) -> bool:
        """
        Atomically update job progress.

        Args:
            job_id: Job identifier
            progress: New progress information

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        completed_at: Optional[datetime] = None,
        expected_status: Optional[JobStatus] = None,
    ) -> bool:
        """
        Atomically update job status.

        When expected_status is given the update is a compare-and-set:
        it only applies if the stored status still equals expected_status.

        Args:
            job_id: Job identifier
            status: New status
            error: Optional error message for failed jobs
            completed_at: Optional completion timestamp
            expected_status: Status the job must currently have

        Returns:
            True if the update was applied, False otherwise
        """
        pass

    @abstractmethod
    def list_all(self) -> List[ExportJob]:
        """
        List every stored job, newest first.

        Returns:
            List of ExportJob ordered by created_at descending
        """
        pass

    @abstractmethod
    def get_expired_jobs(self, retention: timedelta) -> List[str]:
        """
        Get terminal jobs last updated before now - retention.

        Args:
            retention: Retention window

        Returns:
            List of expired job IDs
        """
        pass

    @abstractmethod
    def save_segments(self, job_id: str, segments: List[Segment]) -> bool:
        """
        Insert all segment rows of a job in one operation.

        Args:
            job_id: Job identifier
            segments: Segments to insert

        Returns:
            True if all rows were written, False otherwise
        """
        pass

    @abstractmethod
    def get_segments(self, job_id: str) -> List[Segment]:
        """
        Get a job's segments ordered by segment_number.

        Args:
            job_id: Job identifier

        Returns:
            List of Segment, empty when none exist
        """
        pass

    @abstractmethod
    def update_segment_status(
        self, job_id: str, segment_number: int, status: SegmentStatus
    ) -> bool:
        """
        Update the status of a single segment.

        Args:
            job_id: Job identifier
            segment_number: 1-based segment number
            status: New segment status

        Returns:
            True if the segment existed and was updated
        """
        pass


class CredentialVault(ABC):
    """Pass-through storage for tracker credentials keyed by an opaque reference."""

    @abstractmethod
    def store(self, credentials: Credentials) -> str:
        """
        Store credentials.

        Returns:
            Opaque reference to the stored credentials
        """
        pass

    @abstractmethod
    def get(self, credentials_ref: str) -> Optional[Credentials]:
        """Fetch credentials by reference, None if unknown."""
        pass

    @abstractmethod
    def discard(self, credentials_ref: str) -> bool:
        """Forget credentials. Returns True if they existed."""
        pass
