"""
Job Management Domain

Manages export jobs, their archive segments, status transitions and progress.
"""

from .entities import ExportJob, Segment
from .value_objects import (
    Credentials,
    DownloadType,
    FileFormat,
    JobProgress,
    JobStatus,
    SegmentStatus,
)
from .services import JobManager, JobNotFoundError, JobStateError, SegmentNotFoundError
from .repositories import CredentialVault, JobRepository

__all__ = [
    'ExportJob',
    'Segment',
    'Credentials',
    'DownloadType',
    'FileFormat',
    'JobStatus',
    'JobProgress',
    'SegmentStatus',
    'JobManager',
    'JobRepository',
    'CredentialVault',
    'JobNotFoundError',
    'JobStateError',
    'SegmentNotFoundError',
]
