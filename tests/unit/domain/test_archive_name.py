"""
Unit tests for export file naming.
"""

from datetime import datetime, timezone

import pytest

from jiradl.domain.file_storage import ArchiveName, filesystem_timestamp, ticket_file_name

MOMENT = datetime(2024, 1, 15, 12, 0, 0, 123000, tzinfo=timezone.utc)


class TestFilesystemTimestamp:
    def test_separators_replaced(self):
        assert filesystem_timestamp(MOMENT) == "2024-01-15T12-00-00-123Z"

    def test_naive_datetimes_are_rendered_as_is(self):
        assert filesystem_timestamp(datetime(2024, 1, 15, 12, 0, 0)) == "2024-01-15T12-00-00-000Z"


class TestArchiveName:
    def test_format(self):
        name = ArchiveName.for_segment("PROJ", 2, 5, 50 * 1024 * 1024, MOMENT)

        assert name.format() == "PROJ_attachments_part2of5_50.0MB_2024-01-15T12-00-00-123Z.zip"
        assert str(name) == name.format()

    def test_size_rounded_to_one_decimal(self):
        name = ArchiveName.for_segment("PROJ", 1, 1, 1_500_000, MOMENT)

        assert name.format().startswith("PROJ_attachments_part1of1_1.4MB_")

    def test_parse_round_trip(self):
        name = ArchiveName.for_segment("MY_PROJ", 3, 12, 7 * 1024 * 1024, MOMENT)

        parsed = ArchiveName.parse(name.format())

        assert parsed == name
        assert parsed.project_key == "MY_PROJ"
        assert parsed.segment_number == 3
        assert parsed.total_segments == 12

    @pytest.mark.parametrize(
        "filename",
        [
            "",
            "PROJ_tickets_2024-01-15T12-00-00-000Z.json",
            "PROJ_attachments_part1of2_1.0MB_2024-01-15T12-00-00-000Z.tar",
            "PROJ_attachments_partXof2_1.0MB_2024-01-15T12-00-00-000Z.zip",
            "PROJ_attachments_part3of2_1.0MB_2024-01-15T12-00-00-000Z.zip",
        ],
    )
    def test_parse_rejects_other_names(self, filename):
        with pytest.raises(ValueError):
            ArchiveName.parse(filename)

    def test_segment_number_must_be_within_total(self):
        with pytest.raises(ValueError):
            ArchiveName("PROJ", 0, 1, 1.0, "2024-01-15T12-00-00-000Z")


def test_ticket_file_name():
    assert ticket_file_name("PROJ", "csv", MOMENT) == "PROJ_tickets_2024-01-15T12-00-00-123Z.csv"
