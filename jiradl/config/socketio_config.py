"""
SocketIO Configuration

Configures Flask-SocketIO with a Redis message queue so Celery workers
can emit to rooms served by the web process.
"""

import logging
import os

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

socketio = None


def init_socketio(app, message_queue=None):
    """
    Initialize Flask-SocketIO.

    Args:
        app: Flask application instance
        message_queue: Redis URL, defaults to REDIS_URL

    Returns:
        SocketIO instance
    """
    global socketio

    redis_url = message_queue or os.getenv("REDIS_URL", "redis://localhost:6379/0")
    async_mode = os.getenv("SOCKETIO_ASYNC_MODE", "threading")

    try:
        socketio = SocketIO(
            app,
            cors_allowed_origins=os.getenv("CORS_ORIGINS", "*"),
            message_queue=redis_url,
            async_mode=async_mode,
            logger=False,
            engineio_logger=False,
            ping_timeout=60,
            ping_interval=25,
        )
        logger.info(f"SocketIO initialized ({async_mode}) with message queue: {redis_url}")
        return socketio

    except Exception as e:
        logger.error(f"Failed to initialize SocketIO: {e}")
        raise


def get_socketio():
    """SocketIO instance, or None when disabled or not initialized."""
    if not is_socketio_enabled():
        return None
    return socketio


def is_socketio_enabled():
    socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
    return socketio_enabled and socketio is not None
