"""
Local File Storage Repository Implementation

Concrete implementation of IFileStorageRepository for the local filesystem.
Relative paths resolve against base_path; absolute paths (job output
directories chosen by the user) are used as given.
"""

import os
import shutil
import time
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

from jiradl.domain.file_storage.storage_repository import IFileStorageRepository


class LocalFileStorageRepository(IFileStorageRepository):
    """
    Local filesystem implementation of IFileStorageRepository.

    Thread Safety:
        Writes go to a per-file partial path and are published with
        os.replace, which is atomic on the same filesystem.

    Attributes:
        base_path: Directory that relative paths resolve against
    """

    def __init__(self, base_path: str):
        """
        Initialize the local file storage repository.

        Args:
            base_path: Base directory for relative paths
        """
        self.base_path = Path(base_path).expanduser()

    def _resolve(self, file_path: str) -> Path:
        if not file_path or not str(file_path).strip():
            raise ValueError("file_path cannot be empty")
        return self.base_path / Path(file_path).expanduser()

    @contextmanager
    def atomic_writer(self, file_path: str) -> Iterator[BinaryIO]:
        """
        Yield a writable handle on <file_path>.partial, renamed on success.

        Raises:
            ValueError: If file_path is empty
            OSError: If the file cannot be created or written
        """
        final_path = self._resolve(file_path)
        partial_path = final_path.with_name(final_path.name + self.PARTIAL_SUFFIX)
        final_path.parent.mkdir(parents=True, exist_ok=True)

        handle = open(partial_path, "w+b")
        try:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
            handle.close()
            os.replace(partial_path, final_path)
        except BaseException:
            handle.close()
            try:
                partial_path.unlink()
            except FileNotFoundError:
                pass
            raise

    def get(self, file_path: str) -> Optional[BinaryIO]:
        """Open the file for streaming; None if it doesn't exist."""
        try:
            full_path = self._resolve(file_path)
            if not full_path.is_file():
                return None
            return open(full_path, "rb")
        except (OSError, ValueError):
            return None

    def delete(self, file_path: str) -> bool:
        """
        Delete a file. Idempotent: missing files count as deleted.

        Raises:
            PermissionError: If there are insufficient permissions to delete
            IOError: If there are I/O errors during the operation
        """
        try:
            full_path = self._resolve(file_path)
        except ValueError:
            return True

        try:
            if full_path.is_file():
                full_path.unlink()
            return True
        except FileNotFoundError:
            return True
        except PermissionError:
            raise
        except OSError as e:
            raise IOError(f"Failed to delete file: {e}") from e

    def exists(self, file_path: str) -> bool:
        """Check if a regular file exists; never raises."""
        try:
            return self._resolve(file_path).is_file()
        except (OSError, ValueError):
            return False

    def get_size(self, file_path: str) -> Optional[int]:
        """Size in bytes of a regular file, None otherwise."""
        try:
            full_path = self._resolve(file_path)
            if full_path.is_file():
                return full_path.stat().st_size
            return None
        except (OSError, ValueError):
            return None

    def prepare_directory(self, directory: str) -> int:
        """
        Create the directory, check it is a writable directory and
        report free space in bytes.
        """
        path = self._resolve(directory)
        if path.exists() and not path.is_dir():
            raise NotADirectoryError(f"Path exists but is not a directory: {path}")
        path.mkdir(parents=True, exist_ok=True)

        marker = path / f".write-test-{os.getpid()}-{time.monotonic_ns()}"
        try:
            marker.write_bytes(b"")
        except OSError as e:
            raise PermissionError(f"Directory is not writable: {path}") from e
        finally:
            try:
                marker.unlink()
            except FileNotFoundError:
                pass

        return shutil.disk_usage(path).free

    def find_stale_partials(self, directory: str, older_than: timedelta) -> List[str]:
        """Partial files directly inside directory last modified before the cutoff."""
        try:
            path = self._resolve(directory)
        except ValueError:
            return []
        if not path.is_dir():
            return []

        cutoff = time.time() - older_than.total_seconds()
        stale = []
        for candidate in path.glob(f"*{self.PARTIAL_SUFFIX}"):
            try:
                if candidate.is_file() and candidate.stat().st_mtime < cutoff:
                    stale.append(str(candidate))
            except OSError:
                continue
        return stale
