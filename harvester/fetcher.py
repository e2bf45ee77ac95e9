from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .backoff import BackoffStrategy
from .errors import EmptyResponseError, FetchError, FetchKind, TransientNetworkError
from .gate import ConcurrencyGate
from .logging_utils import log_event
from .metrics import RequestMetrics
from .rate_limiter import RateLimiter
from .transports import Response, Transport

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class RetryingFetcher:
    """Paced, bounded, retrying GET.

    Every attempt holds one gate permit for the duration of the pacing wait
    and the request itself; the permit is returned before any backoff sleep.
    Transient failures are retried up to ``max_attempts`` in total, after
    which a permanent FetchError is raised. A 429 is a completed round-trip:
    it slows the shared limiter down but is returned to the caller as is."""

    def __init__(
        self,
        transport: Transport,
        rate_limiter: RateLimiter,
        gate: ConcurrencyGate,
        backoff: Optional[BackoffStrategy] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        metrics: Optional[RequestMetrics] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._transport = transport
        self._rate_limiter = rate_limiter
        self._gate = gate
        self._backoff = backoff or BackoffStrategy()
        self._max_attempts = max_attempts
        self._metrics = metrics
        self._stop = stop_event

    def fetch(self, url: str) -> str:
        """Return the body of ``url`` or raise FetchError."""
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._attempt(url)
            except TransientNetworkError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "fetch_error",
                    url=url,
                    attempt=attempt,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
                if attempt >= self._max_attempts or self._stopped():
                    if self._metrics:
                        self._metrics.record_failure()
                    raise FetchError(
                        url,
                        f"giving up after {attempt} attempts: {exc}",
                        kind=FetchKind.PERMANENT,
                        attempts=attempt,
                    ) from exc
                self._sleep(self._backoff.get_sleep(attempt))
                continue
            except FetchError:
                if self._metrics:
                    self._metrics.record_failure()
                raise
            return response.body

    def _attempt(self, url: str) -> Response:
        self._gate.acquire()
        try:
            self._rate_limiter.await_turn()
            if self._stopped():
                raise FetchError(url, "run is stopping", kind=FetchKind.PERMANENT)
            try:
                response = self._transport.get(url)
            except FetchError as exc:
                if self._metrics:
                    self._metrics.record_attempt(error_type=type(exc).__name__)
                raise
            if self._metrics:
                self._metrics.record_attempt(status_code=response.status_code)
            self._rate_limiter.record_response(response.status_code)
            if not response.body:
                raise EmptyResponseError(url, f"empty response body (HTTP {response.status_code})")
            return response
        finally:
            self._gate.release()

    def _stopped(self) -> bool:
        return self._stop is not None and self._stop.is_set()

    def _sleep(self, seconds: float) -> None:
        if self._stop is not None:
            self._stop.wait(seconds)
        else:
            time.sleep(seconds)
