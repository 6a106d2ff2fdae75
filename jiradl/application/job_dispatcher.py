"""
Job Dispatcher

Port for handing queued export jobs to workers, plus an in-process
thread pool implementation used when JOB_QUEUE_BACKEND=local.
"""

import itertools
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class JobDispatcher(ABC):
    """Hands job ids to whatever executes them."""

    @abstractmethod
    def dispatch(self, job_id: str, priority: int = 5) -> None:
        """
        Queue a job for execution. Lower priority values run first.
        """
        pass

    @abstractmethod
    def revoke(self, job_id: str) -> None:
        """Drop a queued job if the backend supports it."""
        pass


class PeriodicTask:
    """
    Calls func on a daemon thread right away and then every interval
    seconds until stopped. Errors are logged and the schedule continues.
    """

    def __init__(self, func: Callable[[], object], interval: float, name: str = "periodic-task"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._func = func
        self._interval = interval
        self._name = name
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        self._stopped.set()
        if wait and self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        while not self._stopped.is_set():
            try:
                self._func()
            except Exception as e:
                logger.error(f"{self._name} failed: {e}", exc_info=True)
            if self._stopped.wait(self._interval):
                return


class ThreadPoolJobDispatcher(JobDispatcher):
    """
    Fixed pool of worker threads draining a priority queue.

    Jobs with equal priority run in submission order. Each worker waits
    inter_job_delay seconds between jobs.
    """

    _STOP = object()

    def __init__(
        self,
        runner: Callable[[str], object],
        max_workers: int = 2,
        inter_job_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._runner = runner
        self._inter_job_delay = inter_job_delay
        self._sleep = sleep
        self._queue: "queue.PriorityQueue" = queue.PriorityQueue()
        self._sequence = itertools.count()
        self._queued = set()
        self._revoked = set()
        self._lock = threading.Lock()
        self._workers: List[threading.Thread] = []
        self._periodic: List[PeriodicTask] = []
        self._max_workers = max_workers
        self._started = False

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            for index in range(self._max_workers):
                worker = threading.Thread(
                    target=self._work, name=f"export-worker-{index + 1}", daemon=True
                )
                worker.start()
                self._workers.append(worker)
            self._started = True
        logger.info(f"Started {self._max_workers} export worker thread(s)")

    def dispatch(self, job_id: str, priority: int = 5) -> None:
        self.start()
        with self._lock:
            self._queued.add(job_id)
        self._queue.put((priority, next(self._sequence), job_id))
        logger.debug(f"Queued job {job_id} with priority {priority}")

    def revoke(self, job_id: str) -> None:
        """Skip a job still waiting in the queue; unknown ids are ignored."""
        with self._lock:
            if job_id in self._queued:
                self._revoked.add(job_id)

    def schedule(self, func: Callable[[], object], interval: float, name: str) -> PeriodicTask:
        """Run func periodically until shutdown(), as beat does for Celery workers."""
        task = PeriodicTask(func, interval, name)
        with self._lock:
            self._periodic.append(task)
        task.start()
        logger.info(f"Scheduled {name} every {interval:g}s")
        return task

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop workers once the jobs already queued have been drained."""
        with self._lock:
            workers = list(self._workers)
            self._workers.clear()
            self._started = False
            periodic = list(self._periodic)
            self._periodic.clear()
        for task in periodic:
            task.stop(wait=wait, timeout=timeout)
        for _ in workers:
            # Sorts after every real job
            self._queue.put((float("inf"), next(self._sequence), self._STOP))
        if wait:
            for worker in workers:
                worker.join(timeout)

    def _work(self) -> None:
        while True:
            _, _, job_id = self._queue.get()
            try:
                if job_id is self._STOP:
                    return
                with self._lock:
                    self._queued.discard(job_id)
                    if job_id in self._revoked:
                        self._revoked.discard(job_id)
                        logger.info(f"Skipping revoked job {job_id}")
                        continue
                try:
                    self._runner(job_id)
                except Exception as e:
                    logger.error(f"Export worker crashed on job {job_id}: {e}", exc_info=True)
                if self._inter_job_delay > 0:
                    self._sleep(self._inter_job_delay)
            finally:
                self._queue.task_done()
