from __future__ import annotations

import math
import time
from threading import Lock
from typing import Callable

from .constants import DEFAULT_RETRY_AFTER_SECONDS


def parse_retry_after(header: str | None, *, default: int = DEFAULT_RETRY_AFTER_SECONDS) -> int:
    if header is None:
        return default
    try:
        seconds = int(header.strip())
    except ValueError:
        return default
    if seconds < 0:
        return default
    return seconds


class RateLimitWindow:
    """Deadline before which no outbound call may be attempted.

    The deadline only ever moves forward: recording a shorter backoff while
    a longer one is active keeps the longer one.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._deadline = 0.0
        self._lock = Lock()

    @property
    def deadline(self) -> float:
        return self._deadline

    def remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())

    def remaining_seconds(self) -> int:
        return math.ceil(self.remaining())

    def can_make_request(self) -> bool:
        return self._clock() >= self._deadline

    def record(self, retry_after_seconds: int) -> float:
        with self._lock:
            candidate = self._clock() + max(0, retry_after_seconds)
            self._deadline = max(self._deadline, candidate)
            return self._deadline
