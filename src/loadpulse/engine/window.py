"""The shared time window during which requests may start."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class LoadWindow:
    """Start and end of a load test, in monotonic clock seconds.

    Computed once by the orchestrator and read by every virtual user. No
    new request may start at or after ``end``.

    Attributes:
        start: Monotonic time the test started.
        end: Monotonic time after which no request may start.
    """

    start: float
    end: float

    @classmethod
    def starting_now(
        cls,
        duration_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> LoadWindow:
        """Create a window that opens now and lasts ``duration_seconds``.

        Args:
            duration_seconds: Window length in seconds.
            clock: Monotonic time source.

        Returns:
            The new LoadWindow.
        """
        start = clock()
        return cls(start=start, end=start + duration_seconds)

    @property
    def duration(self) -> float:
        """Return the configured window length in seconds."""
        return self.end - self.start

    def is_open(self, now: float) -> bool:
        """Return True if a request may still start at ``now``."""
        return now < self.end
