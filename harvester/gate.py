from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class ConcurrencyGate:
    """Counting permit pool bounding simultaneous outbound requests.

    Sized independently of the worker pool; normally narrower or equal."""

    def __init__(self, permits: int) -> None:
        if permits < 1:
            raise ValueError("permits must be >= 1")
        self._permits = permits
        self._sem = threading.BoundedSemaphore(permits)
        self._lock = threading.Lock()
        self._in_use = 0

    @property
    def permits(self) -> int:
        return self._permits

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Take a permit, blocking while none is free. False on timeout."""
        if not self._sem.acquire(timeout=timeout):
            return False
        with self._lock:
            self._in_use += 1
        return True

    def release(self) -> None:
        with self._lock:
            if self._in_use == 0:
                raise ValueError("release() without a matching acquire()")
            self._in_use -= 1
        self._sem.release()

    @contextmanager
    def permit(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()
