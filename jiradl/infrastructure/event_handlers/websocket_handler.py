"""
WebSocket Event Handler

Forwards job lifecycle events to the Socket.IO room named after the job id.
Clients join the room with the subscribe_job event.
"""

import logging
from typing import Any, Callable, Dict, Optional

from jiradl.domain.events import (
    DomainEvent,
    JobCancelledEvent,
    JobCompletedEvent,
    JobFailedEvent,
    JobProgressUpdatedEvent,
    SegmentBuiltEvent,
)

logger = logging.getLogger(__name__)


class WebSocketEventHandler:
    """
    Emits job_progress, job_segment_ready, job_completed, job_failed and
    job_cancelled to subscribed clients.

    Args:
        socketio_getter: Returns the SocketIO instance or None when disabled
    """

    def __init__(self, socketio_getter: Callable[[], Any]):
        self._get_socketio = socketio_getter

    def handle(self, event: DomainEvent) -> None:
        socketio = self._get_socketio()
        if socketio is None:
            return

        message = self._to_message(event)
        if message is None:
            return

        name, payload = message
        try:
            socketio.emit(name, payload, room=event.aggregate_id)
            logger.debug(f"Emitted {name} for job {event.aggregate_id}")
        except Exception as e:
            logger.error(
                f"Failed to emit {name} for job {event.aggregate_id}: {e}",
                exc_info=True,
            )

    @staticmethod
    def _to_message(event: DomainEvent) -> Optional[tuple]:
        job_id = event.aggregate_id

        if isinstance(event, JobProgressUpdatedEvent):
            return "job_progress", {"job_id": job_id, "progress": event.progress.to_dict()}

        if isinstance(event, SegmentBuiltEvent):
            return "job_segment_ready", {
                "job_id": job_id,
                "segment_number": event.segment_number,
                "total_segments": event.total_segments,
                "filename": event.filename,
                "size_bytes": event.size_bytes,
                "file_count": event.file_count,
            }

        if isinstance(event, JobCompletedEvent):
            payload: Dict[str, Any] = {
                "job_id": job_id,
                "status": "completed",
                "segment_count": event.segment_count,
            }
            if event.ticket_file:
                payload["ticket_file"] = event.ticket_file
            return "job_completed", payload

        if isinstance(event, JobFailedEvent):
            return "job_failed", {
                "job_id": job_id,
                "status": "failed",
                "error": event.error_message,
                "error_category": event.error_category,
            }

        if isinstance(event, JobCancelledEvent):
            return "job_cancelled", {"job_id": job_id, "status": "cancelled"}

        return None
