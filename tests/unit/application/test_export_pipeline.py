"""
Unit tests for ExportPipeline stage sequencing.
"""

import logging
import os

import pytest
from unittest.mock import Mock

from jiradl.application.archive_builder import ArchiveBuilder, RetryPolicy
from jiradl.application.cancellation import CancellationToken
from jiradl.application.export_pipeline import ExportPipeline, fields_for, project_jql
from jiradl.application.progress import ProgressTracker
from jiradl.domain.errors import ExportCancelledError, NothingToDownloadError
from jiradl.domain.export import SegmentPlanner, TicketExporter
from jiradl.domain.job_management import DownloadType, FileFormat
from jiradl.domain.job_management.value_objects import STAGES

from tests.fixtures import FakeTrackerClient, RecordingSink, make_issue, make_job

logger = logging.getLogger(__name__)


def build_pipeline(client, storage, sink, planner=None, limit=100, page_size=2, token=None):
    return ExportPipeline(
        client=client,
        planner=planner or SegmentPlanner(),
        archive_builder=ArchiveBuilder(storage, RetryPolicy(sleep=lambda s: None)),
        ticket_exporter=TicketExporter(storage),
        storage=storage,
        tracker=ProgressTracker("job-1", [sink]),
        log=logger,
        segment_limit=limit,
        page_size=page_size,
        cancel_token=token,
    )


@pytest.fixture
def sink():
    return RecordingSink()


def test_fields_follow_download_type():
    assert fields_for(make_job(download_type=DownloadType.ATTACHMENTS)) == ["attachment"]
    tickets = fields_for(make_job(download_type=DownloadType.TICKETS))
    assert "attachment" not in tickets and "summary" in tickets
    everything = fields_for(make_job(download_type=DownloadType.ALL))
    assert "attachment" in everything and "comment" in everything


def test_project_jql_orders_by_creation():
    assert project_jql("PROJ") == 'project = "PROJ" ORDER BY created ASC'


class TestExportPipeline:
    def test_tickets_only_writes_one_file_without_planning(self, storage, tmp_path, sink):
        client = FakeTrackerClient([make_issue(f"PROJ-{i}", [("a.txt", 5)]) for i in range(5)])
        planner = Mock(wraps=SegmentPlanner())
        job = make_job(str(tmp_path), download_type=DownloadType.TICKETS, file_format=FileFormat.CSV)

        outcome = build_pipeline(client, storage, sink, planner=planner).run(job)

        planner.plan.assert_not_called()
        assert outcome.archives == []
        assert outcome.issue_count == 5
        assert os.listdir(tmp_path) == [os.path.basename(outcome.ticket_file)]
        assert client.fetch_calls == []
        assert sink.stages[-1] == "complete"
        assert sink.percentages[-1] == 100

    def test_fetches_every_page(self, storage, tmp_path, sink):
        client = FakeTrackerClient([make_issue(f"PROJ-{i}") for i in range(5)])
        job = make_job(str(tmp_path), download_type=DownloadType.TICKETS)

        build_pipeline(client, storage, sink, page_size=2).run(job)

        counting, *pages = client.search_calls
        assert counting["max_results"] == 0
        assert [call["start_at"] for call in pages] == [0, 2, 4]

    def test_all_downloads_tickets_and_segments(self, storage, tmp_path, sink):
        client = FakeTrackerClient([
            make_issue("PROJ-1", [("a.txt", 60), ("b.txt", 60)]),
            make_issue("PROJ-2", [("c.txt", 30)]),
        ])
        job = make_job(str(tmp_path), download_type=DownloadType.ALL)

        outcome = build_pipeline(client, storage, sink, limit=100).run(job)

        assert outcome.ticket_file is not None
        assert [a.segment_number for a in outcome.archives] == [1, 2]
        assert [a.size_bytes for a in outcome.archives] == [60, 90]
        assert all(a.total_segments == 2 for a in outcome.archives)
        assert outcome.attachment_count == 3

        indices = [STAGES.index(stage) for stage in sink.stages]
        assert indices == sorted(indices)
        assert sink.percentages == sorted(sink.percentages)
        assert {"init", "fetching", "processing", "analyzing", "segmenting", "downloading"} <= set(sink.stages)

    def test_no_attachments_with_all_fails(self, storage, tmp_path, sink):
        client = FakeTrackerClient([make_issue("PROJ-1", [("empty.txt", 0)])])
        pipeline = build_pipeline(client, storage, sink)

        with pytest.raises(NothingToDownloadError):
            pipeline.run(make_job(str(tmp_path), download_type=DownloadType.ALL))
        assert pipeline.ticket_file is not None

    def test_failed_run_removes_finished_archives(self, storage, tmp_path, sink):
        issue = make_issue("PROJ-1", [("a.txt", 60), ("b.txt", 60)])
        second = issue["fields"]["attachment"][1]["content"]
        client = FakeTrackerClient([issue], fail_locators={second: 10})
        job = make_job(str(tmp_path), download_type=DownloadType.ATTACHMENTS)

        with pytest.raises(Exception):
            build_pipeline(client, storage, sink, limit=100).run(job)

        assert not [name for name in os.listdir(tmp_path) if name.endswith(".zip")]

    def test_cancelled_before_start(self, storage, tmp_path, sink):
        token = CancellationToken()
        token.cancel("Export aborted: client disconnected")
        client = FakeTrackerClient([make_issue("PROJ-1")])

        with pytest.raises(ExportCancelledError):
            build_pipeline(client, storage, sink, token=token).run(make_job(str(tmp_path)))
        assert client.search_calls == []
