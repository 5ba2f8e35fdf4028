"""Cooperative cancellation shared by the runner and its plugins."""
from __future__ import annotations

import threading
from typing import Optional

from product_lookup.errors import OperationCancelledError


class CancellationToken:
    """A thread-safe flag a caller sets to ask a lookup to stop.

    Plugins call ``raise_if_cancelled`` between outbound requests; the runner
    checks the token before starting each plugin.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self.reason or "Lookup was cancelled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or *timeout* elapses; True if cancelled."""
        return self._event.wait(timeout)


def raise_if_cancelled(token: Optional[CancellationToken]) -> None:
    """Convenience for code paths where the token is optional."""
    if token is not None:
        token.raise_if_cancelled()
