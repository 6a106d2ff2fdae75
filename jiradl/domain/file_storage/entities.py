"""
File Storage Entities

Domain entities describing export files written to disk.
"""

import os
from dataclasses import dataclass


@dataclass
class ArchiveFile:
    """
    Result of building one segment archive.

    size_bytes is the planned payload size of the segment, the figure
    embedded in the archive name and persisted on the segment row.
    """
    file_path: str
    file_count: int
    size_bytes: int
    segment_number: int
    total_segments: int

    @property
    def filename(self) -> str:
        return os.path.basename(self.file_path)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "file_path": self.file_path,
            "filename": self.filename,
            "file_count": self.file_count,
            "size_bytes": self.size_bytes,
            "segment_number": self.segment_number,
            "total_segments": self.total_segments,
        }
