"""
File Storage Services

Domain services for export file delivery and cleanup.
"""

import logging
from datetime import timedelta
from typing import BinaryIO

from .storage_repository import IFileStorageRepository
from ..errors import DomainError, ErrorCategory

logger = logging.getLogger(__name__)


class ExportFileNotFoundError(DomainError):
    """Raised when an export file is missing from disk."""

    category = ErrorCategory.FILE_NOT_FOUND


class FileManager:
    """
    Domain service for managing export files on durable storage.

    Coordinates opening files for delivery, removal after retrieval and
    cleanup of interrupted writes.
    """

    def __init__(self, storage_repository: IFileStorageRepository):
        """
        Initialize FileManager with a storage repository.

        Args:
            storage_repository: Repository for physical file operations
        """
        self.storage = storage_repository

    def open_file(self, file_path: str) -> BinaryIO:
        """
        Open an export file for streaming to a client.

        Raises:
            ExportFileNotFoundError: If the file is gone
        """
        stream = self.storage.get(file_path) if file_path else None
        if stream is None:
            raise ExportFileNotFoundError(f"File not found: {file_path}")
        return stream

    def remove_file(self, file_path: str) -> bool:
        """Delete an export file, logging instead of raising on failure."""
        try:
            removed = self.storage.delete(file_path)
        except OSError as e:
            logger.error(f"Failed to delete {file_path}: {e}")
            return False
        if removed:
            logger.info(f"Deleted export file {file_path}")
        return removed

    def purge_stale_partials(self, directory: str, older_than: timedelta) -> int:
        """
        Remove partial archives left behind by interrupted writes.

        Returns:
            Number of files removed
        """
        count = 0
        for path in self.storage.find_stale_partials(directory, older_than):
            if self.remove_file(path):
                count += 1
        return count
