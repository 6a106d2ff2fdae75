"""
Dependency Injection Container

Manages service lifecycles and dependency resolution.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class DependencyNotFoundError(Exception):
    """Raised when attempting to resolve an unregistered dependency."""
    pass


class DependencyContainer:
    """
    Dependency injection container for managing service lifecycles.

    Supports singleton (single instance) and transient (factory-created)
    registration patterns. Thread-safe for concurrent access.
    """

    def __init__(self):
        """Initialize the dependency container."""
        self._singletons: Dict[Type, Any] = {}
        self._transients: Dict[Type, Callable[[], Any]] = {}
        self._overrides: Dict[Type, Any] = {}
        self._lock = threading.Lock()

        logger.debug("DependencyContainer initialized")

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """
        Register a singleton service (single instance shared across all resolutions).

        Example:
            container.register_singleton(JobManager, job_manager_instance)
        """
        with self._lock:
            self._singletons[interface] = implementation
            logger.debug(f"Registered singleton: {interface.__name__}")

    def register_transient(self, interface: Type[T], factory: Callable[[], T]) -> None:
        """
        Register a transient service (new instance created on each resolution).

        Example:
            container.register_transient(
                InteractiveExportSession,
                lambda: InteractiveExportSession(...)
            )
        """
        with self._lock:
            self._transients[interface] = factory
            logger.debug(f"Registered transient: {interface.__name__}")

    def resolve(self, interface: Type[T]) -> T:
        """
        Resolve a registered service.

        Raises:
            DependencyNotFoundError: If the interface is not registered
        """
        with self._lock:
            # Overrides first (for testing)
            if interface in self._overrides:
                return self._overrides[interface]

            if interface in self._singletons:
                return self._singletons[interface]

            if interface in self._transients:
                factory = self._transients[interface]
            else:
                raise DependencyNotFoundError(
                    f"No registration found for type: {interface.__name__}"
                )

        # Factory runs outside the lock to allow nested resolve calls
        return factory()

    def override(self, interface: Type[T], implementation: T) -> None:
        """
        Override a registered service (primarily for testing).

        Overrides take precedence over both singleton and transient registrations.
        """
        with self._lock:
            self._overrides[interface] = implementation
            logger.debug(f"Overridden: {interface.__name__}")

    def clear_overrides(self) -> None:
        """Clear all overrides."""
        with self._lock:
            self._overrides.clear()
            logger.debug("Cleared all overrides")

    def is_registered(self, interface: Type) -> bool:
        """Check if an interface is registered as singleton, transient or override."""
        with self._lock:
            return (
                interface in self._singletons or
                interface in self._transients or
                interface in self._overrides
            )

    def get_registration_type(self, interface: Type) -> str:
        """
        Get the registration type for an interface.

        Returns:
            'singleton', 'transient', 'override', or 'not_registered'
        """
        with self._lock:
            if interface in self._overrides:
                return 'override'
            if interface in self._singletons:
                return 'singleton'
            if interface in self._transients:
                return 'transient'
            return 'not_registered'

    def setup_event_handlers(self, event_publisher, handlers: List[Any] = None) -> None:
        """
        Subscribe infrastructure event handlers to every domain event.

        Args:
            event_publisher: EventPublisher instance to subscribe handlers to
            handlers: Handler instances exposing handle(event). Defaults to a
                      LoggingEventHandler on the "jiradl" logger.
        """
        from jiradl.domain.events import DomainEvent
        from jiradl.infrastructure.event_handlers.logging_handler import LoggingEventHandler

        if handlers is None:
            handlers = [LoggingEventHandler(logging.getLogger("jiradl"))]

        for handler in handlers:
            event_publisher.subscribe(DomainEvent, handler.handle)
            logger.debug(f"Registered event handler: {type(handler).__name__}")
