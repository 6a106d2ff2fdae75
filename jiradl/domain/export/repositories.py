"""
Export Repositories

Port for the remote issue tracker consumed by the export pipeline.
The concrete HTTP client lives in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class IssueTrackerClient(ABC):
    """
    Abstract remote issue tracker.

    Implementations translate transport failures into RemoteTimeoutError,
    RemoteConnectionError or RemoteRequestError.
    """

    @abstractmethod
    def get_project(self, project_key: str) -> Dict[str, Any]:
        """Fetch project information (key, name, ...)."""
        pass

    @abstractmethod
    def search_issues(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 100,
        fields: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Run one page of an issue search.

        Returns:
            {"issues": [...], "total": int, "startAt": int}
        """
        pass

    @abstractmethod
    def fetch_attachment_range(
        self,
        content_locator: str,
        start_byte: int,
        end_byte: int,
        timeout: Optional[float] = None,
    ) -> bytes:
        """
        Fetch bytes [start_byte, end_byte) of an attachment.

        Args:
            content_locator: Attachment content URL
            start_byte: First byte, inclusive
            end_byte: Last byte, exclusive
            timeout: Per-request timeout in seconds
        """
        pass

    @abstractmethod
    def get_current_user(self) -> Dict[str, Any]:
        """Return the authenticated user's profile."""
        pass

    @abstractmethod
    def list_projects(self) -> List[Dict[str, Any]]:
        """Return projects visible to the authenticated user."""
        pass
