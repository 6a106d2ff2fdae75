"""
Event Handlers

Infrastructure layer handlers for domain events.
These handlers implement side effects like WebSocket notifications and logging.
"""

from .logging_handler import LoggingEventHandler
from .websocket_handler import WebSocketEventHandler

__all__ = [
    "LoggingEventHandler",
    "WebSocketEventHandler",
]
