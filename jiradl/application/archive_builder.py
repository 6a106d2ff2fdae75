"""
Archive Builder

Materializes one segment plan as a compressed archive on durable storage.
Parts are fetched sequentially with bounded retries; the archive only
appears under its final name once every part has been written.
"""

import logging
import os
import time
import zipfile
from typing import Any, Callable, Optional

from jiradl.application.cancellation import CancellationToken
from jiradl.domain.errors import ArchiveWriteError, RemoteError
from jiradl.domain.export.value_objects import SegmentPart, SegmentPlan
from jiradl.domain.file_storage.entities import ArchiveFile
from jiradl.domain.file_storage.storage_repository import IFileStorageRepository
from jiradl.domain.file_storage.value_objects import ArchiveName

logger = logging.getLogger(__name__)

TIMEOUT_SCALE_BYTES = 10 * 1024 * 1024

FetchRange = Callable[[str, int, int, float], bytes]


class RetryPolicy:
    """
    Bounded retry of transient remote failures.

    Attempt n (0-based) runs with timeout
    min(base_timeout * (1 + size / 10 MiB), max_timeout) * (n + 1)
    and is preceded by a sleep of retry_delay * n seconds.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_timeout: float = 30.0,
        max_timeout: float = 300.0,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.max_retries = max_retries
        self.base_timeout = base_timeout
        self.max_timeout = max_timeout
        self.retry_delay = retry_delay
        self._sleep = sleep

    def timeout_for(self, size: int, attempt: int) -> float:
        scaled = min(self.base_timeout * (1 + size / TIMEOUT_SCALE_BYTES), self.max_timeout)
        return scaled * (attempt + 1)

    def call(self, func: Callable[[float], Any], size: int, label: str, log=None) -> Any:
        """
        Run func(timeout) until it succeeds or retries are exhausted.

        Only transient remote errors are retried; the last one is re-raised
        once max_retries retries have failed.
        """
        log = log or logger
        attempt = 0
        while True:
            try:
                return func(self.timeout_for(size, attempt))
            except RemoteError as e:
                if not e.is_transient or attempt >= self.max_retries:
                    raise
                attempt += 1
                log.warning(
                    f"Retrying {label} ({attempt}/{self.max_retries}): {e}"
                )
                self._sleep(self.retry_delay * attempt)


class ArchiveBuilder:
    """
    Builds segment archives.

    Entries are named {PROJECT}/{TICKET}/{filename}, with a .part{n}
    suffix for slices of a split attachment.
    """

    def __init__(
        self,
        storage: IFileStorageRepository,
        retry_policy: Optional[RetryPolicy] = None,
        log=None,
    ):
        self.storage = storage
        self.retry_policy = retry_policy or RetryPolicy()
        self.log = log or logger

    @staticmethod
    def entry_name(project_key: str, part: SegmentPart) -> str:
        return f"{project_key}/{part.ticket_key}/{part.entry_filename}"

    def build(
        self,
        plan: SegmentPlan,
        project_key: str,
        fetch_range: FetchRange,
        output_directory: str,
        cancel_token: Optional[CancellationToken] = None,
        on_part: Optional[Callable[[SegmentPart, int], None]] = None,
    ) -> ArchiveFile:
        """
        Fetch every part of the plan and write the archive.

        Args:
            plan: Segment plan stamped with total_segments
            project_key: Project the attachments belong to
            fetch_range: Callable(locator, start, end, timeout) -> bytes
            output_directory: Directory receiving the archive
            cancel_token: Checked before each part
            on_part: Called with (part, bytes_fetched) after each part

        Returns:
            ArchiveFile describing the written archive

        Raises:
            RemoteError: When a part cannot be fetched within the allowed retries
            ArchiveWriteError: When the archive cannot be written
            ExportCancelledError: When cancellation was requested
        """
        total_segments = plan.total_segments or plan.number
        name = ArchiveName.for_segment(
            project_key, plan.number, total_segments, plan.total_size
        ).format()
        path = os.path.join(output_directory, name)

        self.log.info(
            f"Building segment {plan.number}/{total_segments} "
            f"({plan.file_count} files, {plan.size_mb:.1f}MB) -> {name}"
        )

        try:
            with self.storage.atomic_writer(path) as handle:
                with zipfile.ZipFile(handle, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                    for part in plan.parts:
                        if cancel_token is not None:
                            cancel_token.raise_if_cancelled()
                        data = self._fetch_part(part, fetch_range)
                        archive.writestr(self.entry_name(project_key, part), data)
                        if on_part is not None:
                            on_part(part, len(data))
        except OSError as e:
            raise ArchiveWriteError(f"Failed to write archive {path}: {e}", e)

        return ArchiveFile(
            file_path=path,
            file_count=plan.file_count,
            size_bytes=plan.total_size,
            segment_number=plan.number,
            total_segments=total_segments,
        )

    def _fetch_part(self, part: SegmentPart, fetch_range: FetchRange) -> bytes:
        label = f"download of {part.entry_filename}"

        def attempt(timeout: float) -> bytes:
            return fetch_range(part.content_locator, part.start_byte, part.end_byte, timeout)

        return self.retry_policy.call(attempt, part.size, label, self.log)
