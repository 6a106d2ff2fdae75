"""
Cooperative cancellation for export runs.
"""

import threading

from jiradl.domain.errors import ExportCancelledError


class CancellationToken:
    """
    Flag checked by the pipeline between discrete steps.

    Setting it never interrupts a fetch or write in flight; the run stops
    at the next issue page, attachment part or segment boundary.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason = "Export aborted"

    def cancel(self, reason: str = "Export aborted") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelledError(self.reason)
