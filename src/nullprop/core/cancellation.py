"""Cooperative cancellation for long-running analysis."""

from __future__ import annotations

import threading


class OperationCancelledError(Exception):
    """Raised inside the analyzer when its cancellation token fires."""


class CancellationToken:
    """Thread-safe, one-way cancellation flag.

    The same token may be shared by every worker of a scan; cancelling it
    stops all of them at their next check.  A token made with ``linked()``
    also fires when its parent does, so one worker can be stopped alone.
    """

    __slots__ = ("_event", "_parent")

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._event = threading.Event()
        self._parent = parent

    @classmethod
    def none(cls) -> CancellationToken:
        """A token nobody holds a reference to cancel."""
        return cls()

    def linked(self) -> CancellationToken:
        """A child token cancelled by either itself or this token."""
        return CancellationToken(self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.is_cancellation_requested

    def throw_if_cancellation_requested(self) -> None:
        if self.is_cancellation_requested:
            raise OperationCancelledError()
