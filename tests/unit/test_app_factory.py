"""
Unit tests for application wiring in create_app.
"""

import time
from datetime import timedelta
from unittest.mock import Mock

from jiradl.app_factory import create_app
from jiradl.application.job_dispatcher import JobDispatcher, ThreadPoolJobDispatcher
from jiradl.domain.job_management import JobStatus

from tests.fixtures import (
    FakeTrackerClient,
    InMemoryCredentialVault,
    MockJobRepository,
    make_credentials,
    make_job,
)


def wait_until(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        time.sleep(0.01)
    return condition()


def expired_job(repository, vault, output_directory):
    ref = vault.store(make_credentials())
    job = make_job(output_directory=output_directory, credentials_ref=ref)
    job.status = JobStatus.CANCELLED
    repository.save(job)
    repository.backdate(job.job_id, timedelta(days=30))
    return job


class TestRetentionSweepWiring:
    def test_local_workers_sweep_expired_jobs(self, export_env, monkeypatch):
        monkeypatch.setenv("CLEANUP_INTERVAL_SECONDS", "0.05")
        repository = MockJobRepository()
        vault = InMemoryCredentialVault()
        job = expired_job(repository, vault, str(export_env))

        app = create_app(
            job_repository=repository,
            credential_vault=vault,
            client_factory=lambda credentials: FakeTrackerClient(),
        )
        try:
            assert isinstance(app.dispatcher, ThreadPoolJobDispatcher)
            assert wait_until(lambda: not repository.exists(job.job_id))
            assert wait_until(lambda: job.credentials_ref not in vault.entries)
        finally:
            app.dispatcher.shutdown(wait=True, timeout=5)

    def test_external_dispatcher_gets_no_local_sweep(self, export_env, monkeypatch):
        monkeypatch.setenv("CLEANUP_INTERVAL_SECONDS", "0.05")
        repository = MockJobRepository()
        vault = InMemoryCredentialVault()
        job = expired_job(repository, vault, str(export_env))

        create_app(
            job_repository=repository,
            credential_vault=vault,
            client_factory=lambda credentials: FakeTrackerClient(),
            dispatcher=Mock(spec=JobDispatcher),
        )
        time.sleep(0.2)

        assert repository.exists(job.job_id)
