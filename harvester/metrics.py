from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional


class ProgressCounter:
    """Monotonic count of records added during a run."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class RequestSnapshot:
    total_requests: int
    completed: int
    http_429_count: int
    errored_attempts: int
    permanent_failures: int
    status_counts: Dict[int, int]


class RequestMetrics:
    """Thread-safe counters for outbound request attempts."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._attempts = 0
        self._completed = 0
        self._errored = 0
        self._permanent = 0
        self._statuses: Counter[int] = Counter()

    def record_attempt(self, status_code: Optional[int] = None, error_type: Optional[str] = None) -> None:
        """Record one dispatched request: a status for round-trips, an error type otherwise."""
        with self._lock:
            self._attempts += 1
            if status_code is not None:
                self._completed += 1
                self._statuses[status_code] += 1
            elif error_type is not None:
                self._errored += 1

    def record_failure(self) -> None:
        """Record a URL given up on after its final attempt."""
        with self._lock:
            self._permanent += 1

    def snapshot(self) -> RequestSnapshot:
        with self._lock:
            return RequestSnapshot(
                total_requests=self._attempts,
                completed=self._completed,
                http_429_count=self._statuses.get(429, 0),
                errored_attempts=self._errored,
                permanent_failures=self._permanent,
                status_counts=dict(self._statuses),
            )
