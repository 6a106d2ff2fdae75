"""
File Storage Domain

Handles export file naming, delivery and cleanup of interrupted writes.
"""

from .entities import ArchiveFile
from .services import ExportFileNotFoundError, FileManager
from .storage_repository import IFileStorageRepository
from .value_objects import ArchiveName, filesystem_timestamp, ticket_file_name

__all__ = [
    "ArchiveFile",
    "ArchiveName",
    "FileManager",
    "IFileStorageRepository",
    "ExportFileNotFoundError",
    "filesystem_timestamp",
    "ticket_file_name",
]
