"""
WebSocket Event Handlers

Handles WebSocket connections and job room subscriptions. Job events are
emitted to rooms by WebSocketEventHandler.
"""

import logging

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from jiradl.config.socketio_config import get_socketio
from jiradl.domain.errors import DomainError

logger = logging.getLogger(__name__)


def register_socketio_events(app):
    """
    Register WebSocket event handlers with the Flask-SocketIO instance.

    Args:
        app: Flask application instance
    """
    socketio = get_socketio()

    if socketio is None:
        logger.warning("SocketIO not initialized, skipping event registration")
        return

    @socketio.on("connect")
    def handle_connect():
        client_id = request.sid
        logger.info(f"Client connected: {client_id}")
        emit("connected", {"message": "Connected to server", "client_id": client_id})

    @socketio.on("disconnect")
    def handle_disconnect():
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on("subscribe_job")
    def handle_subscribe_job(data):
        """
        Subscribe to job progress updates.

        Args:
            data: dict with 'job_id' field
        """
        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        join_room(job_id)
        logger.info(f"Client {request.sid} subscribed to job {job_id}")
        emit("subscribed", {"job_id": job_id, "message": f"Subscribed to job {job_id}"})

    @socketio.on("unsubscribe_job")
    def handle_unsubscribe_job(data):
        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        leave_room(job_id)
        logger.info(f"Client {request.sid} unsubscribed from job {job_id}")
        emit(
            "unsubscribed",
            {"job_id": job_id, "message": f"Unsubscribed from job {job_id}"},
        )

    @socketio.on("cancel_job")
    def handle_cancel_job(data):
        """
        Cancel a pending job. Subscribers receive job_cancelled through
        the event handler; the caller gets an error if it was not pending.
        """
        from jiradl.application.job_service import JobService

        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        try:
            current_app.container.resolve(JobService).cancel_job(job_id)
            logger.info(f"Client {request.sid} cancelled job {job_id}")
        except DomainError as e:
            emit("error", {"job_id": job_id, "message": str(e), "category": e.category.value})
        except Exception as e:
            logger.error(f"Error cancelling job {job_id}: {e}", exc_info=True)
            emit("error", {"job_id": job_id, "message": f"Error cancelling job: {e}"})

    logger.info("SocketIO event handlers registered")
