"""
Test Fixtures Package

In-memory adapters and factories shared by the unit, property and
integration suites.
"""

from .fakes import FakeTrackerClient, InMemoryCredentialVault, RecordingSink
from .factories import make_attachment, make_issue, make_job, make_credentials
from .mock_repositories import MockJobRepository

__all__ = [
    "FakeTrackerClient",
    "InMemoryCredentialVault",
    "RecordingSink",
    "MockJobRepository",
    "make_attachment",
    "make_issue",
    "make_job",
    "make_credentials",
]
