from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from .models import OutcomeStatus, TaskOutcome


class WorkerPool:
    """Fixed-width thread pool running one PageTask per URL.

    ``wait_all`` polls instead of blocking forever so that a
    KeyboardInterrupt still reaches the main thread. ``cancel`` stops the
    pool from starting queued work without waiting for running tasks."""

    def __init__(self, max_workers: int, stop_event: Optional[threading.Event] = None) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="harvest")
        self._stop = stop_event if stop_event is not None else threading.Event()
        self._lock = threading.Lock()
        self._futures: List[tuple[str, Future]] = []
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    def submit(self, fn: Callable[[str], TaskOutcome], url: str) -> Future:
        with self._lock:
            future = self._executor.submit(fn, url)
            self._futures.append((url, future))
            return future

    def pending(self) -> int:
        with self._lock:
            return sum(1 for _, f in self._futures if not f.done())

    def wait_all(self, poll_secs: float = 0.5) -> List[TaskOutcome]:
        """Block until every submitted task finished; return their outcomes."""
        while True:
            with self._lock:
                not_done = [f for _, f in self._futures if not f.done()]
            if not not_done:
                break
            wait(not_done, timeout=poll_secs, return_when=FIRST_COMPLETED)
        return self.outcomes()

    def outcomes(self) -> List[TaskOutcome]:
        """Outcomes of finished tasks; cancelled ones are reported as CANCELLED."""
        with self._lock:
            futures = list(self._futures)
        results = []
        for url, future in futures:
            if future.cancelled():
                results.append(TaskOutcome(url=url, status=OutcomeStatus.CANCELLED))
            elif future.done():
                exc = future.exception()
                if exc is not None:
                    results.append(TaskOutcome(url=url, status=OutcomeStatus.FAILED, error_type=type(exc).__name__))
                else:
                    results.append(future.result())
        return results

    def cancel(self) -> None:
        """Stop claiming new work and drop queued tasks; running ones are abandoned."""
        self._stop.set()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
