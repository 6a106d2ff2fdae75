"""
Unit tests for ExportService, the background job boundary.
"""

import os

import pytest

from jiradl.application.cancellation import CancellationToken
from jiradl.application.export_service import ExportService, categorize_error
from jiradl.domain.errors import (
    ErrorCategory,
    RemoteConnectionError,
    RemoteRequestError,
    RemoteTimeoutError,
    user_message_for,
)
from jiradl.domain.events import (
    JobCompletedEvent,
    JobFailedEvent,
    JobStartedEvent,
    SegmentBuiltEvent,
)
from jiradl.domain.job_management import DownloadType, FileFormat, JobStatus

from tests.fixtures import FakeTrackerClient, RecordingSink, make_issue


@pytest.fixture
def output_dir(tmp_path):
    directory = tmp_path / "out"
    directory.mkdir()
    return directory


@pytest.fixture
def make_service(job_manager, credential_vault, storage, event_publisher, export_config):
    def factory(client, limit=100):
        export_config.segment_size_limit_bytes = limit
        return ExportService(
            job_manager,
            credential_vault,
            lambda credentials: client,
            storage,
            event_publisher,
            config=export_config,
            sleep=lambda seconds: None,
        )

    return factory


@pytest.fixture
def submit(job_manager, credential_vault, credentials, output_dir):
    def factory(download_type=DownloadType.ALL, file_format=FileFormat.JSON):
        ref = credential_vault.store(credentials)
        return job_manager.create_job(ref, "PROJ", download_type, file_format, str(output_dir))

    return factory


class TestExportService:
    def test_successful_export_completes_job(self, make_service, submit, job_manager, published):
        client = FakeTrackerClient([
            make_issue("PROJ-1", [("a.txt", 60)]),
            make_issue("PROJ-2", [("b.txt", 60)]),
        ])
        job = submit()

        result = make_service(client).execute_export(job.job_id)

        assert result.success
        stored = job_manager.get_job(job.job_id)
        assert stored.status == JobStatus.COMPLETED
        assert [s.segment_number for s in stored.segments] == [1, 2]
        assert all(os.path.exists(s.file_path) for s in stored.segments)
        assert stored.ticket_file and os.path.exists(stored.ticket_file)
        assert stored.progress.percentage == 100

        kinds = [type(e) for e in published]
        assert kinds[0] is JobStartedEvent
        assert kinds.count(SegmentBuiltEvent) == 2
        assert kinds[-1] is JobCompletedEvent
        assert result.to_dict()["status"] == "completed"

    def test_repeated_timeouts_fail_job_without_segments(
        self, make_service, submit, job_manager, published, output_dir
    ):
        first = make_issue("PROJ-1", [("a.txt", 60)])
        second = make_issue("PROJ-2", [("b.txt", 60)])
        locator = second["fields"]["attachment"][0]["content"]
        client = FakeTrackerClient([first, second], fail_locators={locator: 4})
        job = submit()

        result = make_service(client).execute_export(job.job_id)

        assert not result.success
        assert result.error_category == ErrorCategory.REMOTE_TIMEOUT
        assert len([c for c in client.fetch_calls if c["locator"] == locator]) == 4

        stored = job_manager.get_job(job.job_id)
        assert stored.status == JobStatus.FAILED
        assert stored.error_category == "remote_timeout"
        assert stored.error == user_message_for(ErrorCategory.REMOTE_TIMEOUT)
        assert stored.error.startswith("Request timed out.")
        assert stored.segments == []
        assert not [n for n in os.listdir(output_dir) if n.endswith(".zip")]
        assert stored.ticket_file and os.path.exists(stored.ticket_file)
        assert isinstance(published[-1], JobFailedEvent)

    def test_three_timeouts_are_absorbed_by_retries(self, make_service, submit, job_manager):
        issue = make_issue("PROJ-1", [("a.txt", 60)])
        locator = issue["fields"]["attachment"][0]["content"]
        client = FakeTrackerClient([issue], fail_locators={locator: 3})
        job = submit(DownloadType.ATTACHMENTS)

        result = make_service(client).execute_export(job.job_id)

        assert result.success
        assert job_manager.get_job(job.job_id).status == JobStatus.COMPLETED

    def test_connection_reset_while_paging_is_retried(self, make_service, submit, job_manager):
        client = FakeTrackerClient(
            [make_issue("PROJ-1", [("a.txt", 60)])],
            search_failures=[None, RemoteConnectionError("connection reset")],
        )
        job = submit()

        result = make_service(client).execute_export(job.job_id)

        assert result.success
        assert job_manager.get_job(job.job_id).status == JobStatus.COMPLETED
        paged = [c for c in client.search_calls if c["max_results"] > 0]
        assert [c["start_at"] for c in paged] == [0, 0]

    def test_issue_search_gives_up_after_max_retries(self, make_service, submit, job_manager):
        failures = [RemoteTimeoutError("Request timed out.") for _ in range(4)]
        client = FakeTrackerClient([make_issue("PROJ-1")], search_failures=failures)
        job = submit()

        result = make_service(client).execute_export(job.job_id)

        assert not result.success
        stored = job_manager.get_job(job.job_id)
        assert stored.status == JobStatus.FAILED
        assert stored.error_category == ErrorCategory.REMOTE_TIMEOUT.value
        assert len(client.search_calls) == 4

    def test_rejected_credentials_are_not_retried(self, make_service, submit, job_manager):
        client = FakeTrackerClient(
            [make_issue("PROJ-1")],
            search_failures=[RemoteRequestError("Unauthorized", status_code=401)],
        )
        job = submit()

        make_service(client).execute_export(job.job_id)

        assert job_manager.get_job(job.job_id).status == JobStatus.FAILED
        assert len(client.search_calls) == 1

    def test_project_without_attachments_fails_for_all(self, make_service, submit, job_manager):
        job = submit(DownloadType.ALL)

        result = make_service(FakeTrackerClient([make_issue("PROJ-1")])).execute_export(job.job_id)

        assert result.error_category == ErrorCategory.NO_ATTACHMENTS
        assert job_manager.get_job(job.job_id).status == JobStatus.FAILED

    def test_tickets_only_never_fetches_attachments(self, make_service, submit, job_manager):
        client = FakeTrackerClient([make_issue("PROJ-1", [("a.txt", 60)])])
        job = submit(DownloadType.TICKETS, FileFormat.CSV)

        result = make_service(client).execute_export(job.job_id)

        assert result.success
        assert client.fetch_calls == []
        stored = job_manager.get_job(job.job_id)
        assert stored.segments == []
        assert stored.ticket_file.endswith(".csv")

    def test_cancelled_job_is_skipped(self, make_service, submit, job_manager):
        job = submit()
        job_manager.cancel_job(job.job_id)
        client = FakeTrackerClient([make_issue("PROJ-1", [("a.txt", 1)])])

        result = make_service(client).execute_export(job.job_id)

        assert result.skipped
        assert client.search_calls == []
        assert job_manager.get_job(job.job_id).status == JobStatus.CANCELLED

    def test_missing_job(self, make_service):
        result = make_service(FakeTrackerClient()).execute_export("missing")

        assert result.error_category == ErrorCategory.JOB_NOT_FOUND

    def test_missing_credentials_fail_job(self, make_service, submit, job_manager, credential_vault):
        job = submit()
        credential_vault.entries.clear()

        result = make_service(FakeTrackerClient()).execute_export(job.job_id)

        assert result.error_category == ErrorCategory.MISSING_CREDENTIALS
        assert job_manager.get_job(job.job_id).status == JobStatus.FAILED

    def test_cancel_token_aborts_run(self, make_service, submit, job_manager):
        job = submit()
        token = CancellationToken()
        token.cancel()

        result = make_service(FakeTrackerClient([make_issue("PROJ-1")])).execute_export(
            job.job_id, cancel_token=token
        )

        assert result.error_category == ErrorCategory.EXPORT_ABORTED
        assert job_manager.get_job(job.job_id).status == JobStatus.FAILED

    def test_extra_reporter_receives_progress(self, make_service, submit):
        sink = RecordingSink()
        job = submit(DownloadType.TICKETS)

        make_service(FakeTrackerClient([make_issue("PROJ-1")])).execute_export(
            job.job_id, reporter=[sink]
        )

        assert sink.stages[0] == "init"
        assert sink.stages[-1] == "complete"


@pytest.mark.parametrize(
    "exception, category",
    [
        (RemoteTimeoutError("slow"), ErrorCategory.REMOTE_TIMEOUT),
        (PermissionError("denied"), ErrorCategory.STORAGE_ERROR),
        (KeyError("oops"), ErrorCategory.SYSTEM_ERROR),
    ],
)
def test_categorize_error(exception, category):
    assert categorize_error(exception) == category
