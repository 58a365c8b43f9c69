"""Quota guard for the primary search API.

A single epoch-millis slot records when the API last answered with a
quota/authorization failure. Availability is computed lazily on every
check; there is no background timer.
"""

import threading
import time
from typing import Callable

from loguru import logger

log = logger.bind(stage="quota")

Clock = Callable[[], int]

QUOTA_TIMEOUT_MS = 10 * 60 * 1000


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class QuotaGuard:
    """Tracks whether the primary search API is currently rate-limited.

    Shared by every request. The lock only covers the read-compare-write of
    the timestamp slot, so callers never wait on anything slower than that.
    """

    def __init__(
        self,
        window_ms: int = QUOTA_TIMEOUT_MS,
        clock: Clock = epoch_millis,
    ) -> None:
        self.window_ms = window_ms
        self._clock = clock
        self._exhausted_at: int | None = None
        self._lock = threading.Lock()

    @property
    def exhausted_at(self) -> int | None:
        return self._exhausted_at

    def mark_exhausted(self, now: int | None = None) -> None:
        """Record a quota signal observed at `now` (defaults to the clock)."""
        if now is None:
            now = self._clock()
        with self._lock:
            # Only ever move the marker forward
            if self._exhausted_at is None or now > self._exhausted_at:
                self._exhausted_at = now
        log.warning(f"Primary search quota exhausted at {now}, backing off for {self.window_ms}ms")

    def is_available(self, now: int | None = None) -> bool:
        """True unless a quota signal was seen less than one window ago.

        Clears the marker once the window has elapsed.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            exhausted_at = self._exhausted_at
            if exhausted_at is None:
                return True
            if now - exhausted_at < self.window_ms:
                return False
            self._exhausted_at = None
        log.info("Primary search quota window elapsed, re-enabling")
        return True
