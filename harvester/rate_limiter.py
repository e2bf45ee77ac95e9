from __future__ import annotations

import random
import threading
import time
from typing import Callable, Optional, Tuple

OVERLOAD_STATUSES = frozenset({429, 503})


class RateLimiter:
    """Thread-safe adaptive pacer shared by every fetch of a run.

    Keeps a single delay ``d`` between dispatched requests. ``await_turn()``
    reserves the next dispatch slot under the lock and sleeps outside it.
    ``record_response()`` doubles ``d`` on overload statuses (up to
    ``max_delay``) and resets it to ``base_delay`` otherwise."""

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 16.0,
        jitter_range: Tuple[float, float] = (0.5, 2.0),
        clock: Callable[[], float] = time.monotonic,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        if base_delay < 0 or max_delay < base_delay:
            raise ValueError("require 0 <= base_delay <= max_delay")
        self._base = base_delay
        self._max = max_delay
        self._jitter_range = jitter_range
        self._clock = clock
        self._stop = stop_event
        self._lock = threading.Lock()
        self._delay = base_delay
        self._last_dispatch: Optional[float] = None

    @property
    def delay(self) -> float:
        with self._lock:
            return self._delay

    def await_turn(self) -> float:
        """Block until the caller may dispatch its request. Returns the time slept."""
        with self._lock:
            now = self._clock()
            if self._last_dispatch is None:
                sleep_for = 0.0
            else:
                sleep_for = self._delay - (now - self._last_dispatch) + self._jitter()
            sleep_for = max(sleep_for, 0.0)
            self._last_dispatch = now + sleep_for

        if sleep_for > 0:
            if self._stop is not None:
                self._stop.wait(sleep_for)
            else:
                time.sleep(sleep_for)
        return sleep_for

    def record_response(self, status_code: Optional[int]) -> float:
        """Adjust the shared delay from a completed round-trip and return it."""
        with self._lock:
            if status_code in OVERLOAD_STATUSES:
                self._delay = min(self._delay * 2, self._max)
            else:
                self._delay = self._base
            return self._delay

    def _jitter(self) -> float:
        low, high = self._jitter_range
        if high <= 0:
            return 0.0
        return random.uniform(low, high)
