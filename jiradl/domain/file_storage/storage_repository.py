"""
File Storage Repository Interface

Abstract interface for physical file storage operations.
Keeps the domain and application layers independent of the filesystem
so that export files can be written, streamed and removed through one
contract.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import timedelta
from typing import BinaryIO, List, Optional


class IFileStorageRepository(ABC):
    """
    Unified interface for file storage operations.

    Contract Guarantees:
    - delete() and exists() are idempotent and never fail for missing files
    - atomic_writer() never leaves a half-written file under the final name
    - get() returns None for missing files instead of raising
    """

    PARTIAL_SUFFIX = ".partial"

    @abstractmethod
    def atomic_writer(self, file_path: str) -> AbstractContextManager:
        """
        Open a binary, seekable handle that becomes file_path on success.

        Content is written to file_path + ".partial" and renamed when the
        context exits cleanly. On error the partial file is removed and
        the error propagates.

        Args:
            file_path: Final path of the file

        Returns:
            Context manager yielding a writable binary file object
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, file_path: str) -> Optional[BinaryIO]:
        """
        Open file content for reading.

        The caller is responsible for closing the stream.

        Returns:
            Binary stream if found, None if the file doesn't exist
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, file_path: str) -> bool:
        """
        Delete a file. Deleting a missing file returns True.

        Returns:
            True if the file was deleted or didn't exist, False on failure
        """
        pass  # pragma: no cover

    @abstractmethod
    def exists(self, file_path: str) -> bool:
        """Check if a regular file exists at the path."""
        pass  # pragma: no cover

    @abstractmethod
    def get_size(self, file_path: str) -> Optional[int]:
        """Size of a file in bytes, None for missing files or directories."""
        pass  # pragma: no cover

    @abstractmethod
    def prepare_directory(self, directory: str) -> int:
        """
        Create a directory if needed and check it is writable.

        Returns:
            Free space available in the directory, in bytes

        Raises:
            NotADirectoryError: If the path exists and is not a directory
            PermissionError: If the directory cannot be written
            OSError: If the directory cannot be created
        """
        pass  # pragma: no cover

    @abstractmethod
    def find_stale_partials(self, directory: str, older_than: timedelta) -> List[str]:
        """List leftover partial files in directory older than the given age."""
        pass  # pragma: no cover
