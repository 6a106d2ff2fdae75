"""
Unit tests for the in-process ThreadPoolJobDispatcher.
"""

import threading

import pytest

from jiradl.application.job_dispatcher import PeriodicTask, ThreadPoolJobDispatcher


class BlockingRunner:
    """Records job ids; the first job blocks until released."""

    def __init__(self):
        self.ran = []
        self.first_started = threading.Event()
        self.release = threading.Event()

    def __call__(self, job_id):
        self.ran.append(job_id)
        if len(self.ran) == 1:
            self.first_started.set()
            self.release.wait(5)


class TestThreadPoolJobDispatcher:
    def test_lower_priority_value_runs_first(self):
        runner = BlockingRunner()
        dispatcher = ThreadPoolJobDispatcher(runner, max_workers=1, inter_job_delay=0)

        dispatcher.dispatch("blocker", priority=5)
        assert runner.first_started.wait(5)
        dispatcher.dispatch("all-1", priority=5)
        dispatcher.dispatch("tickets-1", priority=0)
        dispatcher.dispatch("all-2", priority=5)
        runner.release.set()
        dispatcher.shutdown(wait=True, timeout=5)

        assert runner.ran == ["blocker", "tickets-1", "all-1", "all-2"]

    def test_revoked_jobs_are_skipped(self):
        runner = BlockingRunner()
        dispatcher = ThreadPoolJobDispatcher(runner, max_workers=1, inter_job_delay=0)

        dispatcher.dispatch("blocker")
        assert runner.first_started.wait(5)
        dispatcher.dispatch("cancelled")
        dispatcher.dispatch("kept")
        dispatcher.revoke("cancelled")
        runner.release.set()
        dispatcher.shutdown(wait=True, timeout=5)

        assert runner.ran == ["blocker", "kept"]

    def test_runner_errors_do_not_kill_worker(self):
        ran = []

        def runner(job_id):
            ran.append(job_id)
            if job_id == "bad":
                raise RuntimeError("boom")

        dispatcher = ThreadPoolJobDispatcher(runner, max_workers=1, inter_job_delay=0)
        dispatcher.dispatch("bad")
        dispatcher.dispatch("good")
        dispatcher.shutdown(wait=True, timeout=5)

        assert ran == ["bad", "good"]

    def test_delay_between_jobs(self):
        sleeps = []
        dispatcher = ThreadPoolJobDispatcher(
            lambda job_id: None, max_workers=1, inter_job_delay=1.5, sleep=sleeps.append
        )
        dispatcher.dispatch("a")
        dispatcher.dispatch("b")
        dispatcher.shutdown(wait=True, timeout=5)

        assert sleeps == [1.5, 1.5]

    def test_requires_a_worker(self):
        with pytest.raises(ValueError):
            ThreadPoolJobDispatcher(lambda job_id: None, max_workers=0)

    def test_revoking_a_job_that_was_never_queued_leaves_no_record(self):
        dispatcher = ThreadPoolJobDispatcher(lambda job_id: None, max_workers=1, inter_job_delay=0)

        dispatcher.revoke("interactive-job")
        dispatcher.dispatch("done")
        dispatcher.shutdown(wait=True, timeout=5)
        dispatcher.revoke("done")

        assert dispatcher._revoked == set()
        assert dispatcher._queued == set()

    def test_scheduled_task_runs_until_shutdown(self):
        calls = []
        ran_twice = threading.Event()

        def sweep():
            calls.append(1)
            if len(calls) >= 2:
                ran_twice.set()

        dispatcher = ThreadPoolJobDispatcher(lambda job_id: None, max_workers=1)
        dispatcher.schedule(sweep, interval=0.01, name="retention-sweep")

        assert ran_twice.wait(5)
        dispatcher.shutdown(wait=True, timeout=5)
        stopped_at = len(calls)
        threading.Event().wait(0.05)

        assert len(calls) == stopped_at


class TestPeriodicTask:
    def test_errors_do_not_stop_the_schedule(self):
        calls = []
        recovered = threading.Event()

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("redis down")
            recovered.set()

        task = PeriodicTask(flaky, interval=0.01, name="flaky")
        task.start()

        assert recovered.wait(5)
        task.stop(wait=True, timeout=5)

    def test_requires_positive_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask(lambda: None, interval=0)
