"""
Unit tests for domain errors and error categorisation.
"""

import pytest

from jiradl.domain.errors import (
    ApplicationError,
    ErrorCategory,
    ExportCancelledError,
    NothingToDownloadError,
    RemoteConnectionError,
    RemoteRequestError,
    RemoteTimeoutError,
    ValidationError,
    create_error_response,
    user_message_for,
)


class TestRemoteErrors:
    def test_transient_errors(self):
        assert RemoteTimeoutError("slow").is_transient
        assert RemoteConnectionError("reset").is_transient
        assert not RemoteRequestError("bad", status_code=500).is_transient

    @pytest.mark.parametrize(
        "status_code, category",
        [
            (401, ErrorCategory.AUTHENTICATION_FAILED),
            (403, ErrorCategory.AUTHENTICATION_FAILED),
            (404, ErrorCategory.PROJECT_NOT_FOUND),
            (500, ErrorCategory.REMOTE_ERROR),
            (None, ErrorCategory.REMOTE_ERROR),
        ],
    )
    def test_status_code_selects_category(self, status_code, category):
        assert RemoteRequestError("x", status_code=status_code).category == category


def test_categories_of_domain_errors():
    assert ValidationError("x").category == ErrorCategory.INVALID_REQUEST
    assert ValidationError("x", ErrorCategory.MISSING_CREDENTIALS).category == ErrorCategory.MISSING_CREDENTIALS
    assert NothingToDownloadError("x").category == ErrorCategory.NO_ATTACHMENTS
    assert ExportCancelledError("x").category == ErrorCategory.EXPORT_ABORTED


def test_timeout_user_message():
    assert user_message_for(ErrorCategory.REMOTE_TIMEOUT) == (
        "Request timed out. The server took too long to respond. "
        "Try again later or contact your administrator if the issue persists."
    )


def test_every_category_has_a_message():
    for category in ErrorCategory:
        assert ApplicationError(category).message


def test_create_error_response():
    body, status = create_error_response(
        ErrorCategory.JOB_NOT_FOUND, "Job abc not found", status_code=404
    )

    assert status == 404
    assert body["error"] == "job_not_found"
    assert body["detail"] == "Job abc not found"
    assert body["title"] == "Job Not Found"
