"""
Jira REST Client

Concrete IssueTrackerClient over the Jira REST API v2 using requests.
Generic 5xx retries are delegated to a urllib3 Retry mounted on the
session; transport failures are translated into domain remote errors.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jiradl.domain.errors import (
    RemoteConnectionError,
    RemoteRequestError,
    RemoteTimeoutError,
)
from jiradl.domain.export.repositories import IssueTrackerClient
from jiradl.domain.job_management.value_objects import Credentials

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = (
    "Request timed out. The server took too long to respond. "
    "Try again later or contact your administrator if the issue persists."
)


def build_session(credentials: Credentials, max_retries: int = 3) -> requests.Session:
    """
    Create a requests session with basic auth and 5xx retry.

    POST is included in the retried methods because the search endpoint
    is a read-only query sent as POST. Connect and read failures are not
    retried here; they surface as transient domain errors and RetryPolicy
    retries them with its growing timeouts.
    """
    session = requests.Session()
    session.auth = (credentials.username, credentials.api_token)
    session.headers.update({
        "Accept": "application/json",
        "User-Agent": "jiradl/1.0",
    })
    retry = Retry(
        total=max_retries,
        connect=0,
        read=0,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "POST"}),
        backoff_factor=0.5,
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class JiraClient(IssueTrackerClient):
    """Client for the Jira REST API used by the export pipeline."""

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url: Jira instance base URL, e.g. https://acme.atlassian.net
            credentials: Username and API token
            timeout: Default request timeout in seconds
            session: Preconfigured session, built from credentials if omitted
        """
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/rest/api/2"
        self.timeout = timeout
        self.session = session or build_session(credentials)

    def _request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method, url, timeout=timeout or self.timeout, **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise RemoteTimeoutError(TIMEOUT_MESSAGE, e)
        except requests.exceptions.ConnectionError as e:
            raise RemoteConnectionError(f"Unable to connect to {url}: {e}", e)
        except requests.exceptions.RequestException as e:
            raise RemoteRequestError(f"Request to {url} failed: {e}", original_error=e)

        if not response.ok:
            detail = (response.text or "")[:200]
            raise RemoteRequestError(
                f"Jira returned HTTP {response.status_code} for {method} {url}: {detail}",
                status_code=response.status_code,
            )
        return response

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, f"{self.api_url}{path}", **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestError(
                f"Jira returned invalid JSON for {path}", response.status_code, e
            )

    def get_project(self, project_key: str) -> Dict[str, Any]:
        return self._json("GET", f"/project/{project_key}")

    def search_issues(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 100,
        fields: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        body = {
            "jql": jql,
            "startAt": start_at,
            "maxResults": max_results,
            "fields": list(fields or []),
        }
        logger.debug(f"Searching issues: {jql} startAt={start_at} maxResults={max_results}")
        return self._json("POST", "/search", json=body)

    def fetch_attachment_range(
        self,
        content_locator: str,
        start_byte: int,
        end_byte: int,
        timeout: Optional[float] = None,
    ) -> bytes:
        """
        Fetch [start_byte, end_byte) of an attachment with a Range request.

        Servers that ignore Range answer 200 with the whole body, which is
        sliced locally. A short body is treated as a dropped connection.
        """
        response = self._request(
            "GET",
            content_locator,
            timeout=timeout,
            headers={"Range": f"bytes={start_byte}-{end_byte - 1}"},
        )
        data = response.content
        if response.status_code != 206:
            data = data[start_byte:end_byte]

        expected = end_byte - start_byte
        if len(data) != expected:
            raise RemoteConnectionError(
                f"Incomplete attachment data from {content_locator}: "
                f"got {len(data)} of {expected} bytes"
            )
        return data

    def get_current_user(self) -> Dict[str, Any]:
        return self._json("GET", "/myself")

    def list_projects(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/project")


class JiraClientFactory:
    """Creates a JiraClient per job from the job's credentials."""

    def __init__(self, base_url: str, timeout: float = 30.0, max_retries: int = 3):
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries

    def __call__(self, credentials: Credentials) -> JiraClient:
        return JiraClient(
            self.base_url,
            credentials,
            timeout=self.timeout,
            session=build_session(credentials, self.max_retries),
        )
