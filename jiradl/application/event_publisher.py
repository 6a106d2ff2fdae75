"""
Event Publisher

Application service for publishing domain events to registered handlers.
Enables decoupling of side effects from core business logic.
"""

import logging
from threading import Lock
from typing import Callable, Dict, List, Type

from jiradl.domain.events import DomainEvent

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Event publisher that dispatches domain events to registered handlers.

    Handlers subscribed to a base class receive every subclass event, so a
    handler registered for DomainEvent sees all events. Dispatch is
    synchronous; handler exceptions are caught and logged to prevent side
    effects from breaking core business logic.

    Thread-safe for concurrent event publishing.
    """

    def __init__(self):
        """Initialize EventPublisher with empty handler registry."""
        self._handlers: Dict[Type[DomainEvent], List[Callable[[DomainEvent], None]]] = {}
        self._lock = Lock()

    def subscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ) -> None:
        """
        Register a handler for an event type and its subclasses.

        Example:
            publisher = EventPublisher()
            publisher.subscribe(JobCompletedEvent, handle_job_completed)
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            logger.debug(
                f"Registered handler {getattr(handler, '__name__', handler)} "
                f"for {event_type.__name__}"
            )

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all handlers registered for its type or a base type.

        Args:
            event: The domain event to publish
        """
        event_type = type(event)

        with self._lock:
            handlers = []
            for klass in event_type.__mro__:
                handlers.extend(self._handlers.get(klass, []))

        if not handlers:
            logger.debug(f"No handlers registered for {event_type.__name__}")
            return

        logger.debug(
            f"Publishing {event_type.__name__} to {len(handlers)} handler(s)"
        )

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Side effects must not break core logic
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', handler)} "
                    f"for {event_type.__name__}: {e}",
                    exc_info=True
                )

    def publish_all(self, events) -> None:
        for event in events:
            if event is not None:
                self.publish(event)
