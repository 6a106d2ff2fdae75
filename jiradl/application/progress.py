"""
Progress Reporting

Progress events emitted during a job run, the tracker that enforces their
ordering, and the sinks that consume them: the job store in background
mode and a queue drained by the streaming response in interactive mode.
"""

import logging
import queue
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from jiradl.domain.events import JobProgressUpdatedEvent
from jiradl.domain.job_management.value_objects import JobProgress, stage_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """One incremental status update of a job run."""

    job_id: str
    stage: str
    message: str
    percentage: int
    total_issues: int = 0
    current_issue: int = 0
    downloaded_size: int = 0
    time_elapsed: float = 0.0
    estimated_time_remaining: Optional[float] = None
    current_operation: Optional[str] = None
    operation_details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used by the streaming endpoint and Socket.IO."""
        return {
            "jobId": self.job_id,
            "stage": self.stage,
            "message": self.message,
            "percentage": self.percentage,
            "totalIssues": self.total_issues,
            "currentIssue": self.current_issue,
            "downloadedSize": self.downloaded_size,
            "timeElapsed": round(self.time_elapsed, 1),
            "estimatedTimeRemaining": (
                round(self.estimated_time_remaining, 1)
                if self.estimated_time_remaining is not None
                else None
            ),
            "currentOperation": self.current_operation,
            "operationDetails": self.operation_details,
        }

    def to_job_progress(self) -> JobProgress:
        return JobProgress(
            percentage=self.percentage,
            stage=self.stage,
            message=self.message,
            total_issues=self.total_issues,
            current_issue=self.current_issue,
            downloaded_size=self.downloaded_size,
            time_elapsed=round(self.time_elapsed, 1),
            estimated_time_remaining=self.estimated_time_remaining,
            current_operation=self.current_operation,
            operation_details=self.operation_details,
        )


@dataclass(frozen=True)
class KeepAlive:
    """Heartbeat interleaved into a stream while a stage is long-running."""

    timestamp: datetime

    @classmethod
    def now(cls) -> "KeepAlive":
        return cls(timestamp=datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {"keepAlive": True, "timestamp": self.timestamp.isoformat()}


class ProgressSink(ABC):
    """Consumer of progress events."""

    @abstractmethod
    def send(self, event: ProgressEvent) -> None:
        pass


class ProgressTracker:
    """
    Builds progress events for one job run and fans them out to sinks.

    Stages must never go backwards; percentages never decrease. Issue
    counters and downloaded size carry over between events unless a new
    value is given.
    """

    def __init__(
        self,
        job_id: str,
        sinks: Optional[List[ProgressSink]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job_id = job_id
        self.sinks = list(sinks or [])
        self._clock = clock
        self._started = clock()
        self._stage_index = -1
        self._percentage = 0
        self._counters = {"total_issues": 0, "current_issue": 0, "downloaded_size": 0}
        self.last_event: Optional[ProgressEvent] = None

    @property
    def stage(self) -> Optional[str]:
        return self.last_event.stage if self.last_event else None

    @property
    def percentage(self) -> int:
        return self._percentage

    def emit(
        self,
        stage: str,
        message: str,
        percentage: float,
        total_issues: Optional[int] = None,
        current_issue: Optional[int] = None,
        downloaded_size: Optional[int] = None,
        current_operation: Optional[str] = None,
        operation_details: Optional[str] = None,
    ) -> ProgressEvent:
        """
        Emit a progress event.

        Raises:
            ValueError: If stage precedes the stage of the previous event
        """
        index = stage_index(stage)
        if index < self._stage_index:
            raise ValueError(
                f"Progress stage went backwards: {self.stage} -> {stage}"
            )
        self._stage_index = index

        clamped = int(max(0, min(100, percentage)))
        self._percentage = max(self._percentage, clamped)

        for name, value in (
            ("total_issues", total_issues),
            ("current_issue", current_issue),
            ("downloaded_size", downloaded_size),
        ):
            if value is not None:
                self._counters[name] = value

        elapsed = self._clock() - self._started
        remaining = None
        if 0 < self._percentage < 100:
            remaining = elapsed * (100 - self._percentage) / self._percentage
        elif self._percentage == 100:
            remaining = 0.0

        event = ProgressEvent(
            job_id=self.job_id,
            stage=stage,
            message=message,
            percentage=self._percentage,
            time_elapsed=elapsed,
            estimated_time_remaining=remaining,
            current_operation=current_operation,
            operation_details=operation_details,
            **self._counters,
        )
        self.last_event = event

        for sink in self.sinks:
            try:
                sink.send(event)
            except Exception as e:
                logger.error(f"Progress sink {type(sink).__name__} failed: {e}")
        return event


class JobProgressRecorder(ProgressSink):
    """Persists progress on the job row and publishes it as a domain event."""

    def __init__(self, job_manager, event_publisher=None):
        self.job_manager = job_manager
        self.event_publisher = event_publisher

    def send(self, event: ProgressEvent) -> None:
        progress = event.to_job_progress()
        self.job_manager.update_job_progress(event.job_id, progress)
        if self.event_publisher is not None:
            self.event_publisher.publish(
                JobProgressUpdatedEvent(
                    aggregate_id=event.job_id,
                    occurred_at=datetime.now(timezone.utc),
                    progress=progress,
                )
            )


class QueueProgressSink(ProgressSink):
    """Hands events to the thread serving an interactive stream."""

    def __init__(self, event_queue: Optional[queue.Queue] = None):
        self.queue = event_queue if event_queue is not None else queue.Queue()

    def send(self, event: ProgressEvent) -> None:
        self.queue.put(event)
