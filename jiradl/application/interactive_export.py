"""
Interactive Export Session

Runs one export inline for the connection that requested it and turns
its progress into a generator of dictionaries for a streaming response.
The job record is created but never queued: the request thread owns it.
"""

import logging
import queue
import threading
from typing import Any, Dict, Iterator, Optional

from jiradl.application.cancellation import CancellationToken
from jiradl.application.export_result import ExportResult
from jiradl.application.export_service import ExportService
from jiradl.application.progress import KeepAlive, ProgressEvent, QueueProgressSink
from jiradl.domain.errors import ErrorCategory, user_message_for

logger = logging.getLogger(__name__)

_DONE = object()


class InteractiveExportSession:
    """
    One inline export run.

    stream() yields progress events, keepAlive heartbeats while nothing
    else arrives, and a single final event. Closing the generator early
    (client disconnect) cancels the run at its next step boundary.
    """

    def __init__(
        self,
        export_service: ExportService,
        job_id: str,
        keepalive_interval: float = 5.0,
    ):
        self.export_service = export_service
        self.job_id = job_id
        self.keepalive_interval = keepalive_interval
        self.cancel_token = CancellationToken()
        self.result: Optional[ExportResult] = None
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        try:
            self.result = self.export_service.execute_export(
                self.job_id,
                reporter=[QueueProgressSink(self._queue)],
                cancel_token=self.cancel_token,
            )
        except Exception as e:
            logger.error(f"Interactive export {self.job_id} crashed: {e}", exc_info=True)
            self.result = ExportResult.create_failure(
                None, ErrorCategory.SYSTEM_ERROR, user_message_for(ErrorCategory.SYSTEM_ERROR)
            )
        finally:
            self._queue.put(_DONE)

    def start(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name=f"interactive-{self.job_id}", daemon=True
            )
            self._thread.start()

    def stream(self) -> Iterator[Dict[str, Any]]:
        self.start()
        finished = False
        try:
            while True:
                try:
                    item = self._queue.get(timeout=self.keepalive_interval)
                except queue.Empty:
                    yield KeepAlive.now().to_dict()
                    continue

                if item is _DONE:
                    break
                if isinstance(item, ProgressEvent):
                    yield item.to_dict()

            finished = True
            yield self.final_event()
        finally:
            if not finished:
                logger.info(f"Client disconnected from job {self.job_id}, cancelling")
                self.cancel_token.cancel("Export aborted: client disconnected")

    def final_event(self) -> Dict[str, Any]:
        result = self.result
        if result is not None and result.success:
            data = result.outcome.to_dict()
            data["job_id"] = self.job_id
            return {"jobId": self.job_id, "stage": "complete", "success": True, "data": data}

        if result is not None and result.skipped:
            category = ErrorCategory.JOB_STATE_CONFLICT
            message = user_message_for(category)
        else:
            category = result.error_category if result else ErrorCategory.SYSTEM_ERROR
            message = result.error_message if result else user_message_for(category)

        return {
            "jobId": self.job_id,
            "stage": "failed",
            "success": False,
            "error": message,
            "errorCategory": category.value,
        }
