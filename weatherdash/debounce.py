"""Keystroke debouncing for autocomplete requests.

Streamlit has no timers of its own, so the debouncer is polled: each
keystroke calls submit(), and a periodic fragment calls ready(). A value
is released only after the input has been idle for the full delay.
"""

from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Release the most recent value once input has been idle for ``delay`` seconds."""

    def __init__(self, delay: float, clock: Callable[[], float] = time.monotonic):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self._clock = clock
        self._pending: T | None = None
        self._has_pending = False
        self._last_submit = 0.0

    @property
    def pending(self) -> bool:
        return self._has_pending

    def submit(self, value: T) -> None:
        """Record a new value and restart the idle period."""
        self._pending = value
        self._has_pending = True
        self._last_submit = self._clock()

    def cancel(self) -> None:
        """Drop any pending value."""
        self._pending = None
        self._has_pending = False

    def ready(self) -> T | None:
        """Return the pending value if the idle period has elapsed, else None.

        A released value is cleared, so each idle period yields at most one.
        """
        if not self._has_pending:
            return None
        if self._clock() - self._last_submit < self.delay:
            return None
        value = self._pending
        self.cancel()
        return value
