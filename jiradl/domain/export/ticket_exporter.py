"""
Ticket Exporter

Renders ticket records to the whole-project JSON or CSV export file.
"""

import csv
import io
import json
import os
from typing import List, Sequence

from .value_objects import TicketRecord
from ..errors import ArchiveWriteError
from ..file_storage.storage_repository import IFileStorageRepository
from ..file_storage.value_objects import ticket_file_name
from ..job_management.value_objects import FileFormat

CSV_HEADER = [
    "Key",
    "Summary",
    "Description",
    "Created",
    "Updated",
    "Status",
    "Priority",
    "Assignee",
    "Reporter",
    "Comments",
]


def render_json(records: Sequence[TicketRecord]) -> bytes:
    payload = [record.to_dict() for record in records]
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def render_csv(records: Sequence[TicketRecord]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in records:
        writer.writerow([
            record.key,
            record.summary,
            record.description,
            record.created,
            record.updated,
            record.status,
            record.priority,
            record.assignee,
            record.reporter,
            " | ".join(f"{c.author}: {c.body}" for c in record.comments),
        ])
    return buffer.getvalue().encode("utf-8")


class TicketExporter:
    """Writes one ticket export file per job through the storage repository."""

    def __init__(self, storage: IFileStorageRepository):
        self.storage = storage

    def render(self, records: Sequence[TicketRecord], file_format: FileFormat) -> bytes:
        if FileFormat(file_format) is FileFormat.CSV:
            return render_csv(records)
        return render_json(records)

    def export(
        self,
        records: List[TicketRecord],
        file_format: FileFormat,
        project_key: str,
        output_directory: str,
    ) -> str:
        """
        Write the export file.

        Returns:
            Path of the written file

        Raises:
            ArchiveWriteError: If the file cannot be written
        """
        file_format = FileFormat(file_format)
        path = os.path.join(output_directory, ticket_file_name(project_key, file_format.value))
        content = self.render(records, file_format)
        try:
            with self.storage.atomic_writer(path) as handle:
                handle.write(content)
        except OSError as e:
            raise ArchiveWriteError(f"Failed to write ticket export {path}: {e}", e)
        return path
