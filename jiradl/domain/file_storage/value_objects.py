"""
File Storage Value Objects

Immutable value objects for export file naming. Archive names are the
identifiers clients use to retrieve segments, so they must round-trip
through format() and parse().
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

MEGABYTE = 1024 * 1024


def filesystem_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Render a UTC ISO-8601 timestamp with ':' and '.' replaced by '-'.

    Example: 2024-01-15T12-00-00-000Z
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


@dataclass(frozen=True)
class ArchiveName:
    """
    Name of one segment archive.

    Format: {PROJECT}_attachments_part{n}of{total}_{size:.1f}MB_{timestamp}.zip
    """

    project_key: str
    segment_number: int
    total_segments: int
    size_mb: float
    timestamp: str

    CONTENT_MARKER = "attachments"
    _PATTERN = re.compile(
        r"^(?P<project>.+)_attachments_part(?P<number>\d+)of(?P<total>\d+)"
        r"_(?P<size>\d+(?:\.\d+)?)MB_(?P<timestamp>[0-9TZ\-]+)\.zip$"
    )

    def __post_init__(self):
        if not self.project_key:
            raise ValueError("Project key is required")
        if not 1 <= self.segment_number <= self.total_segments:
            raise ValueError(
                f"Segment number {self.segment_number} outside 1..{self.total_segments}"
            )
        if self.size_mb < 0:
            raise ValueError("Size cannot be negative")

    @classmethod
    def for_segment(
        cls,
        project_key: str,
        segment_number: int,
        total_segments: int,
        size_bytes: int,
        moment: Optional[datetime] = None,
    ) -> 'ArchiveName':
        return cls(
            project_key=project_key,
            segment_number=segment_number,
            total_segments=total_segments,
            size_mb=round(size_bytes / MEGABYTE, 1),
            timestamp=filesystem_timestamp(moment),
        )

    def format(self) -> str:
        return (
            f"{self.project_key}_{self.CONTENT_MARKER}_part{self.segment_number}"
            f"of{self.total_segments}_{self.size_mb:.1f}MB_{self.timestamp}.zip"
        )

    @classmethod
    def parse(cls, filename: str) -> 'ArchiveName':
        """
        Parse an archive file name.

        Raises:
            ValueError: If the name does not follow the archive convention
        """
        match = cls._PATTERN.match(filename or "")
        if match is None:
            raise ValueError(f"Not a segment archive name: {filename}")
        return cls(
            project_key=match.group("project"),
            segment_number=int(match.group("number")),
            total_segments=int(match.group("total")),
            size_mb=float(match.group("size")),
            timestamp=match.group("timestamp"),
        )

    def __str__(self) -> str:
        return self.format()


def ticket_file_name(project_key: str, file_format: str, moment: Optional[datetime] = None) -> str:
    """Name of the whole-project ticket export file."""
    return f"{project_key}_tickets_{filesystem_timestamp(moment)}.{file_format}"
