"""
Error Handling Module

Defines domain exceptions and error categories for the application.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry user-facing messages for API responses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    INVALID_REQUEST = "invalid_request"
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_PROJECT_KEY = "invalid_project_key"
    INVALID_DOWNLOAD_PATH = "invalid_download_path"
    AUTHENTICATION_FAILED = "authentication_failed"
    PROJECT_NOT_FOUND = "project_not_found"
    REMOTE_TIMEOUT = "remote_timeout"
    NETWORK_ERROR = "network_error"
    REMOTE_ERROR = "remote_error"
    NO_ATTACHMENTS = "no_attachments"
    STORAGE_ERROR = "storage_error"
    EXPORT_ABORTED = "export_aborted"
    JOB_NOT_FOUND = "job_not_found"
    JOB_STATE_CONFLICT = "job_state_conflict"
    FILE_NOT_FOUND = "file_not_found"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.MISSING_CREDENTIALS: {
        "title": "Missing Credentials",
        "message": "A Jira username and API token are required.",
        "action": "Enter your Jira email address and an API token.",
    },
    ErrorCategory.INVALID_PROJECT_KEY: {
        "title": "Invalid Project Key",
        "message": "The project key is not a valid Jira project key.",
        "action": "Use the short uppercase key shown in Jira, for example PROJ.",
    },
    ErrorCategory.INVALID_DOWNLOAD_PATH: {
        "title": "Invalid Download Path",
        "message": "The download directory cannot be created or is not writable.",
        "action": "Choose a different directory and try again.",
    },
    ErrorCategory.AUTHENTICATION_FAILED: {
        "title": "Authentication Failed",
        "message": "Jira rejected the supplied credentials.",
        "action": "Check your username and API token.",
    },
    ErrorCategory.PROJECT_NOT_FOUND: {
        "title": "Project Not Found",
        "message": "The project does not exist or you do not have access to it.",
        "action": "Check the project key and your Jira permissions.",
    },
    ErrorCategory.REMOTE_TIMEOUT: {
        "title": "Request Timed Out",
        "message": "Request timed out. The server took too long to respond.",
        "action": "Try again later or contact your administrator if the issue persists.",
    },
    ErrorCategory.NETWORK_ERROR: {
        "title": "Network Error",
        "message": "Unable to connect to Jira.",
        "action": "Check your internet connection and try again.",
    },
    ErrorCategory.REMOTE_ERROR: {
        "title": "Jira Error",
        "message": "Jira returned an unexpected error.",
        "action": "Please try again. If the problem persists, contact your Jira administrator.",
    },
    ErrorCategory.NO_ATTACHMENTS: {
        "title": "Nothing To Download",
        "message": "No attachments were found in this project.",
        "action": "Choose the tickets download type to export ticket data only.",
    },
    ErrorCategory.STORAGE_ERROR: {
        "title": "Storage Error",
        "message": "The export files could not be written to disk.",
        "action": "Check the free space and permissions of the download directory.",
    },
    ErrorCategory.EXPORT_ABORTED: {
        "title": "Export Aborted",
        "message": "The export was aborted before it finished.",
        "action": "Start a new export.",
    },
    ErrorCategory.JOB_NOT_FOUND: {
        "title": "Job Not Found",
        "message": "The requested download job could not be found or has expired.",
        "action": "Please start a new download.",
    },
    ErrorCategory.JOB_STATE_CONFLICT: {
        "title": "Invalid Job State",
        "message": "The job is not in a state that allows this operation.",
        "action": "Refresh the job list and try again.",
    },
    ErrorCategory.FILE_NOT_FOUND: {
        "title": "File Not Found",
        "message": "The requested file could not be found or has already been downloaded.",
        "action": "Run the export again to regenerate the file.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions can optionally wrap original errors for context.
    """

    category = ErrorCategory.SYSTEM_ERROR

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(DomainError):
    """
    Raised when a request is rejected before any job work begins.

    Validation errors are never retried.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INVALID_REQUEST,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error)
        self.category = category


class RemoteError(DomainError):
    """Base class for failures talking to the issue tracker."""

    category = ErrorCategory.REMOTE_ERROR

    @property
    def is_transient(self) -> bool:
        return False


class RemoteTimeoutError(RemoteError):
    """Raised when the issue tracker does not answer in time."""

    category = ErrorCategory.REMOTE_TIMEOUT

    @property
    def is_transient(self) -> bool:
        return True


class RemoteConnectionError(RemoteError):
    """Raised when the issue tracker cannot be reached."""

    category = ErrorCategory.NETWORK_ERROR

    @property
    def is_transient(self) -> bool:
        return True


class RemoteRequestError(RemoteError):
    """
    Raised when the issue tracker answers with a non-success status.

    The status code selects the error category.
    """

    def __init__(
        self, message: str, status_code: Optional[int] = None, original_error: Exception = None
    ):
        super().__init__(message, original_error)
        self.status_code = status_code
        if status_code in (401, 403):
            self.category = ErrorCategory.AUTHENTICATION_FAILED
        elif status_code == 404:
            self.category = ErrorCategory.PROJECT_NOT_FOUND


class NothingToDownloadError(DomainError):
    """Raised when attachments were requested but none have a usable size."""

    category = ErrorCategory.NO_ATTACHMENTS


class ArchiveWriteError(DomainError):
    """Raised when an archive or export file cannot be written."""

    category = ErrorCategory.STORAGE_ERROR


class ExportCancelledError(DomainError):
    """Raised at a pipeline boundary once cancellation has been requested."""

    category = ErrorCategory.EXPORT_ABORTED


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response."""
        result = {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }
        if self.technical_message:
            result["detail"] = self.technical_message
        return result


def user_message_for(category: ErrorCategory) -> str:
    """Return the one-line user message stored on failed jobs."""
    error_info = ERROR_MESSAGES.get(category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR])
    return f"{error_info['message']} {error_info['action']}"


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 400,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details
        context: Additional context information
        status_code: HTTP status code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code
