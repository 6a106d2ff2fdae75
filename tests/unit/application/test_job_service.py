"""
Unit tests for JobService use cases.
"""

import os
import time
from datetime import timedelta

import pytest

from jiradl.application.job_service import JobService, parse_credentials, validate_project_key
from jiradl.domain.errors import ErrorCategory, ValidationError
from jiradl.domain.events import JobCancelledEvent, JobPurgedEvent, JobSubmittedEvent
from jiradl.domain.file_storage import ExportFileNotFoundError
from jiradl.domain.file_storage.value_objects import ArchiveName
from jiradl.domain.job_management import (
    DownloadType,
    JobNotFoundError,
    JobStateError,
    JobStatus,
    Segment,
    SegmentNotFoundError,
    SegmentStatus,
)

from tests.fixtures import FakeTrackerClient


@pytest.fixture
def tracker_client():
    return FakeTrackerClient(projects=[{"key": "PROJ", "name": "Project", "id": "10000"}])


@pytest.fixture
def service(
    job_manager, file_manager, credential_vault, storage, mock_dispatcher,
    event_publisher, tracker_client, export_config,
):
    return JobService(
        job_manager,
        file_manager,
        credential_vault,
        storage,
        mock_dispatcher,
        event_publisher,
        lambda credentials: tracker_client,
        config=export_config,
    )


def complete_with_files(job_manager, job_id, directory, count=2):
    """Claim and complete a job with real archive files on disk."""
    job_manager.claim_job(job_id)
    segments = []
    for number in range(1, count + 1):
        name = ArchiveName.for_segment("PROJ", number, count, 100).format()
        path = os.path.join(directory, name)
        with open(path, "wb") as handle:
            handle.write(b"x" * 100)
        segments.append(Segment.create(job_id, number, count, path, 1, 100))
    ticket_file = os.path.join(directory, "PROJ_tickets.json")
    with open(ticket_file, "wb") as handle:
        handle.write(b"[]")
    job_manager.complete_job(job_id, segments, ticket_file)
    return segments, ticket_file


class TestValidation:
    @pytest.mark.parametrize("username, token", [("", "t"), ("u", ""), (None, "t"), ("u", "   ")])
    def test_missing_credentials(self, username, token):
        with pytest.raises(ValidationError) as exc_info:
            parse_credentials(username, token)
        assert exc_info.value.category == ErrorCategory.MISSING_CREDENTIALS

    @pytest.mark.parametrize("key", ["PROJ", "AB", "MY_PROJ2"])
    def test_valid_project_keys(self, key):
        assert validate_project_key(f" {key} ") == key

    @pytest.mark.parametrize("key", ["", None, "proj", "P", "1PROJ", "PR-OJ"])
    def test_invalid_project_keys(self, key):
        with pytest.raises(ValidationError) as exc_info:
            validate_project_key(key)
        assert exc_info.value.category == ErrorCategory.INVALID_PROJECT_KEY


class TestSubmitJob:
    def test_submit_creates_pending_job_and_dispatches(
        self, service, credentials, mock_dispatcher, job_manager, published, export_env
    ):
        result = service.submit_job(credentials, "PROJ", "tickets", "csv")

        assert result["status"] == "pending"
        job = job_manager.get_job(result["job_id"])
        assert job.download_type == DownloadType.TICKETS
        assert job.output_directory == str(export_env)
        assert export_env.is_dir()
        mock_dispatcher.dispatch.assert_called_once_with(
            result["job_id"], priority=DownloadType.TICKETS.priority
        )
        assert isinstance(published[0], JobSubmittedEvent)

    def test_credentials_stored_in_vault_only(self, service, credentials, job_manager, credential_vault):
        result = service.submit_job(credentials, "PROJ")

        job = job_manager.get_job(result["job_id"])
        assert credential_vault.get(job.credentials_ref) == credentials
        assert "api_token" not in service.get_job(result["job_id"])
        assert "credentials_ref" not in service.get_job(result["job_id"])

    @pytest.mark.parametrize(
        "kwargs, category",
        [
            ({"project_key": "bad key"}, ErrorCategory.INVALID_PROJECT_KEY),
            ({"download_type": "everything"}, ErrorCategory.INVALID_REQUEST),
            ({"file_format": "xml"}, ErrorCategory.INVALID_REQUEST),
        ],
    )
    def test_invalid_submission_creates_nothing(
        self, service, credentials, job_repository, credential_vault, mock_dispatcher, kwargs, category
    ):
        arguments = {"project_key": "PROJ", **kwargs}

        with pytest.raises(ValidationError) as exc_info:
            service.submit_job(credentials, **arguments)

        assert exc_info.value.category == category
        assert job_repository.list_all() == []
        assert credential_vault.entries == {}
        mock_dispatcher.dispatch.assert_not_called()

    def test_missing_credentials_rejected(self, service, job_repository):
        with pytest.raises(ValidationError) as exc_info:
            service.submit_job(None, "PROJ")
        assert exc_info.value.category == ErrorCategory.MISSING_CREDENTIALS
        assert job_repository.list_all() == []

    def test_output_directory_that_is_a_file_is_rejected(
        self, service, credentials, tmp_path, job_repository
    ):
        target = tmp_path / "a-file"
        target.write_text("x")

        with pytest.raises(ValidationError) as exc_info:
            service.submit_job(credentials, "PROJ", output_directory=str(target))

        assert exc_info.value.category == ErrorCategory.INVALID_DOWNLOAD_PATH
        assert job_repository.list_all() == []

    def test_interactive_job_is_not_dispatched(self, service, credentials, mock_dispatcher, job_manager):
        job_id = service.create_interactive_job(credentials, "PROJ")

        assert job_manager.get_job(job_id).status == JobStatus.PENDING
        mock_dispatcher.dispatch.assert_not_called()


class TestCancelJob:
    def test_cancel_pending_job(self, service, credentials, mock_dispatcher, credential_vault, published):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]

        result = service.cancel_job(job_id)

        assert result == {"job_id": job_id, "status": "cancelled"}
        assert service.get_job(job_id)["status"] == "cancelled"
        mock_dispatcher.revoke.assert_called_once_with(job_id)
        assert credential_vault.entries == {}
        assert isinstance(published[-1], JobCancelledEvent)

    def test_cancel_processing_job_conflicts(self, service, credentials, job_manager):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        job_manager.claim_job(job_id)

        with pytest.raises(JobStateError):
            service.cancel_job(job_id)
        assert service.get_job(job_id)["status"] == "processing"

    def test_cancel_unknown_job(self, service):
        with pytest.raises(JobNotFoundError):
            service.cancel_job("missing")


class TestRetrieval:
    def test_segment_retrieval_deletes_after_transfer(
        self, service, credentials, job_manager, job_repository, export_env
    ):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        segments, _ = complete_with_files(job_manager, job_id, str(export_env))

        segment, stream = service.retrieve_segment(job_id, 2)
        with stream:
            assert stream.read() == b"x" * 100
        service.finish_retrieval(job_id, 2)

        assert segment.segment_number == 2
        assert not os.path.exists(segments[1].file_path)
        assert os.path.exists(segments[0].file_path)
        stored = {s.segment_number: s for s in job_repository.get_segments(job_id)}
        assert stored[2].status == SegmentStatus.RETRIEVED
        assert stored[1].status == SegmentStatus.COMPLETED

    def test_files_kept_when_delete_after_retrieve_disabled(
        self, service, credentials, job_manager, export_env
    ):
        service.config.delete_after_retrieve = False
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        segments, ticket_file = complete_with_files(job_manager, job_id, str(export_env))

        service.finish_retrieval(job_id, 1)
        service.finish_retrieval(job_id)

        assert os.path.exists(segments[0].file_path)
        assert os.path.exists(ticket_file)

    def test_second_retrieval_of_deleted_file_is_not_found(
        self, service, credentials, job_manager, export_env
    ):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        complete_with_files(job_manager, job_id, str(export_env))
        _, stream = service.retrieve_segment(job_id, 1)
        stream.close()
        service.finish_retrieval(job_id, 1)

        with pytest.raises(ExportFileNotFoundError):
            service.retrieve_segment(job_id, 1)

    def test_archive_retrieval_by_file_name(self, service, credentials, job_manager, export_env):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        segments, _ = complete_with_files(job_manager, job_id, str(export_env))

        segment, stream = service.retrieve_archive(job_id, segments[1].filename)
        stream.close()

        assert segment.segment_number == 2

    def test_archive_retrieval_rejects_foreign_names(
        self, service, credentials, job_manager, export_env
    ):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        segments, _ = complete_with_files(job_manager, job_id, str(export_env))
        other_project = segments[0].filename.replace("PROJ_", "OTHER_", 1)

        with pytest.raises(ValidationError):
            service.retrieve_archive(job_id, "../../etc/passwd")
        with pytest.raises(SegmentNotFoundError):
            service.retrieve_archive(job_id, other_project)

    def test_unknown_segment(self, service, credentials, job_manager, export_env):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        complete_with_files(job_manager, job_id, str(export_env), count=1)

        with pytest.raises(SegmentNotFoundError):
            service.retrieve_segment(job_id, 7)

    def test_segments_of_pending_job_are_not_visible(self, service, credentials):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]

        with pytest.raises(SegmentNotFoundError):
            service.retrieve_segment(job_id, 1)

    def test_ticket_file_retrieval(self, service, credentials, job_manager, export_env):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        _, ticket_file = complete_with_files(job_manager, job_id, str(export_env))

        path, stream = service.retrieve_ticket_file(job_id)
        with stream:
            assert stream.read() == b"[]"
        service.finish_retrieval(job_id)

        assert path == ticket_file
        assert not os.path.exists(ticket_file)


class TestTracker:
    def test_connection(self, service, credentials):
        result = service.test_connection(credentials)

        assert result == {
            "connected": True,
            "user": {"display_name": "Jane Doe", "email": "jane@example.com", "account_id": "abc123"},
        }

    def test_list_projects(self, service, credentials):
        assert service.list_projects(credentials) == [{"key": "PROJ", "name": "Project", "id": "10000"}]


class TestDownloadPath:
    def test_creates_missing_directory(self, service, tmp_path):
        target = tmp_path / "nested" / "dir"

        result = service.validate_download_path(str(target))

        assert result["valid"] is True
        assert result["path"] == str(target)
        assert target.is_dir()
        assert result["free_bytes"] > 0

    def test_defaults_to_configured_path(self, service, export_env):
        assert service.validate_download_path(None)["path"] == str(export_env)


class TestCleanup:
    def test_purges_old_jobs_credentials_and_stale_partials(
        self, service, credentials, job_manager, job_repository, credential_vault, published, export_env
    ):
        job_id = service.submit_job(credentials, "PROJ")["job_id"]
        service.cancel_job(job_id)
        job_repository.backdate(job_id, timedelta(days=8))
        fresh_id = service.submit_job(credentials, "PROJ")["job_id"]

        stale = export_env / "PROJ_attachments_part1of1_1.0MB_x.zip.partial"
        stale.write_bytes(b"half")
        old = time.time() - 2 * 3600
        os.utime(stale, (old, old))
        recent = export_env / "other.zip.partial"
        recent.write_bytes(b"in progress")

        stats = service.cleanup_expired_jobs()

        assert stats == {"jobs_purged": 1, "partials_removed": 1}
        assert not job_repository.exists(job_id)
        assert job_repository.exists(fresh_id)
        assert not stale.exists()
        assert recent.exists()
        assert isinstance(published[-1], JobPurgedEvent)

        assert service.cleanup_expired_jobs() == {"jobs_purged": 0, "partials_removed": 0}
