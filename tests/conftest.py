"""
Shared pytest fixtures and configuration for the jiradl test suite.

This module provides:
- Hypothesis configuration for property-based testing
- In-memory repositories and a fake tracker client
- Environment isolation for tests that build the Flask app
"""

import pytest
from unittest.mock import Mock

# Hypothesis configuration
from hypothesis import settings, HealthCheck, Phase

from jiradl.application.event_publisher import EventPublisher
from jiradl.application.job_dispatcher import JobDispatcher
from jiradl.config.export_config import ExportConfig
from jiradl.domain.file_storage import FileManager
from jiradl.domain.job_management import JobManager
from jiradl.infrastructure.local_file_storage_repository import LocalFileStorageRepository

from tests.fixtures import (
    FakeTrackerClient,
    InMemoryCredentialVault,
    MockJobRepository,
    make_credentials,
)

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("default")


# =============================================================================
# Environment
# =============================================================================

@pytest.fixture
def export_env(monkeypatch, tmp_path):
    """
    Point downloads at a temp directory and keep the app off Celery and
    Socket.IO. Returns the download directory.
    """
    download_dir = tmp_path / "downloads"
    monkeypatch.setenv("DOWNLOAD_PATH", str(download_dir))
    monkeypatch.setenv("JOB_QUEUE_BACKEND", "local")
    monkeypatch.setenv("SOCKETIO_ENABLED", "false")
    monkeypatch.setenv("DELETE_AFTER_RETRIEVE", "true")
    monkeypatch.setenv("INTER_JOB_DELAY_SECONDS", "0")
    monkeypatch.setenv("KEEPALIVE_INTERVAL_SECONDS", "0.05")
    return download_dir


@pytest.fixture
def export_config(export_env) -> ExportConfig:
    config = ExportConfig()
    config.api_retry_delay_seconds = 0
    return config


# =============================================================================
# Repository Fixtures
# =============================================================================

@pytest.fixture
def job_repository() -> MockJobRepository:
    return MockJobRepository()


@pytest.fixture
def credential_vault() -> InMemoryCredentialVault:
    return InMemoryCredentialVault()


@pytest.fixture
def storage(tmp_path) -> LocalFileStorageRepository:
    return LocalFileStorageRepository(str(tmp_path))


@pytest.fixture
def job_manager(job_repository) -> JobManager:
    return JobManager(job_repository)


@pytest.fixture
def file_manager(storage) -> FileManager:
    return FileManager(storage)


@pytest.fixture
def event_publisher() -> EventPublisher:
    return EventPublisher()


@pytest.fixture
def published(event_publisher):
    """Every event published on event_publisher, in order."""
    from jiradl.domain.events import DomainEvent

    events = []
    event_publisher.subscribe(DomainEvent, events.append)
    return events


@pytest.fixture
def credentials():
    return make_credentials()


@pytest.fixture
def tracker_client() -> FakeTrackerClient:
    return FakeTrackerClient()


@pytest.fixture
def mock_dispatcher():
    """
    Provide a mock dispatcher for unit testing.

    Returns a Mock constrained to the JobDispatcher interface.
    """
    return Mock(spec=JobDispatcher)


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/property/" in test_path or "\\property\\" in test_path:
            item.add_marker(pytest.mark.property)
