"""Tests for the RetryingFetcher class."""

import threading
import unittest
from unittest import mock

from harvester.backoff import BackoffStrategy
from harvester.errors import FetchError, FetchKind, TransientNetworkError
from harvester.fetcher import RetryingFetcher
from harvester.gate import ConcurrencyGate
from harvester.metrics import RequestMetrics
from harvester.rate_limiter import RateLimiter
from harvester.transports import Response, Transport


class ScriptedTransport(Transport):
    """Replays a script of responses/exceptions, one per call."""

    def __init__(self, script):
        self._script = list(script)
        self._lock = threading.Lock()
        self.calls = 0

    def get(self, url):
        with self._lock:
            self.calls += 1
            step = self._script.pop(0) if self._script else Response(200, "<html>ok</html>")
        if isinstance(step, Exception):
            raise step
        return step


def _make_fetcher(transport, max_attempts=5, gate=None, limiter=None, metrics=None):
    return RetryingFetcher(
        transport=transport,
        rate_limiter=limiter or RateLimiter(base_delay=0.0, max_delay=1.0, jitter_range=(0.0, 0.0)),
        gate=gate or ConcurrencyGate(2),
        backoff=BackoffStrategy(base_seconds=0.5, max_seconds=2.0, jitter_ratio=0.0),
        max_attempts=max_attempts,
        metrics=metrics,
    )


def _transient(url="https://example.com/a"):
    return TransientNetworkError(url, "connection refused")


@mock.patch("harvester.fetcher.time.sleep")
class TestRetryingFetcher(unittest.TestCase):
    """Verify retry, pacing and permit handling."""

    def test_success_returns_body(self, sleep):
        """A successful response returns its body without retrying."""
        transport = ScriptedTransport([Response(200, "body")])
        self.assertEqual(_make_fetcher(transport).fetch("https://example.com/a"), "body")
        self.assertEqual(transport.calls, 1)
        sleep.assert_not_called()

    def test_retries_transient_failures_then_succeeds(self, sleep):
        """N transient failures (N < ceiling) followed by success returns the body."""
        transport = ScriptedTransport([_transient(), _transient(), _transient(), Response(200, "body")])
        self.assertEqual(_make_fetcher(transport).fetch("https://example.com/a"), "body")
        self.assertEqual(transport.calls, 4)
        delays = [c.args[0] for c in sleep.call_args_list]
        self.assertEqual(delays, [0.5, 1.0, 2.0])
        self.assertEqual(delays, sorted(delays))
        self.assertLessEqual(max(delays), 2.0)

    def test_gives_up_after_max_attempts(self, sleep):
        """Exhausting the attempt ceiling raises a permanent FetchError."""
        transport = ScriptedTransport([_transient() for _ in range(10)])
        with self.assertRaises(FetchError) as ctx:
            _make_fetcher(transport, max_attempts=5).fetch("https://example.com/a")
        self.assertEqual(ctx.exception.kind, FetchKind.PERMANENT)
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertIsInstance(ctx.exception.__cause__, TransientNetworkError)
        self.assertEqual(transport.calls, 5)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.5, 1.0, 2.0, 2.0])

    def test_empty_body_is_retried(self, sleep):
        """An empty body counts as a transient failure."""
        transport = ScriptedTransport([Response(200, ""), Response(200, "body")])
        self.assertEqual(_make_fetcher(transport).fetch("https://example.com/a"), "body")
        self.assertEqual(transport.calls, 2)

    def test_permanent_error_is_not_retried(self, sleep):
        """Non-transient failures propagate on the first attempt."""
        error = FetchError("bad", "malformed url", kind=FetchKind.PERMANENT)
        transport = ScriptedTransport([error])
        metrics = RequestMetrics()
        with self.assertRaises(FetchError) as ctx:
            _make_fetcher(transport, metrics=metrics).fetch("bad")
        self.assertIs(ctx.exception, error)
        self.assertEqual(transport.calls, 1)
        self.assertEqual(metrics.snapshot().permanent_failures, 1)

    def test_429_is_returned_and_slows_limiter(self, sleep):
        """A 429 completes the round-trip and doubles the shared delay."""
        limiter = RateLimiter(base_delay=1.0, max_delay=4.0, jitter_range=(0.0, 0.0))
        transport = ScriptedTransport([Response(429, "too many")])
        fetcher = _make_fetcher(transport, limiter=limiter)
        self.assertEqual(fetcher.fetch("https://example.com/a"), "too many")
        self.assertEqual(transport.calls, 1)
        self.assertEqual(limiter.delay, 2.0)

    def test_permit_released_on_every_path(self, sleep):
        """The gate ends up with no permit held after success and failure."""
        gate = ConcurrencyGate(1)
        ok = _make_fetcher(ScriptedTransport([Response(200, "x")]), gate=gate)
        ok.fetch("https://example.com/a")
        self.assertEqual(gate.in_use, 0)

        failing = _make_fetcher(ScriptedTransport([_transient() for _ in range(3)]), gate=gate, max_attempts=3)
        with self.assertRaises(FetchError):
            failing.fetch("https://example.com/a")
        self.assertEqual(gate.in_use, 0)

        class Exploding(Transport):
            def get(self, url):
                raise RuntimeError("unexpected")

        with self.assertRaises(RuntimeError):
            _make_fetcher(Exploding(), gate=gate).fetch("https://example.com/a")
        self.assertEqual(gate.in_use, 0)

    def test_metrics_count_attempts(self, sleep):
        """Each dispatched attempt is recorded."""
        metrics = RequestMetrics()
        transport = ScriptedTransport([_transient(), Response(429, "slow")])
        _make_fetcher(transport, metrics=metrics).fetch("https://example.com/a")
        snap = metrics.snapshot()
        self.assertEqual(snap.total_requests, 2)
        self.assertEqual(snap.errored_attempts, 1)
        self.assertEqual(snap.http_429_count, 1)

    def test_stop_event_prevents_dispatch(self, sleep):
        """Once the run is stopping, no further request is sent."""
        stop = threading.Event()
        stop.set()
        transport = ScriptedTransport([Response(200, "body")])
        fetcher = RetryingFetcher(
            transport=transport,
            rate_limiter=RateLimiter(base_delay=0.0, max_delay=0.0, jitter_range=(0.0, 0.0)),
            gate=ConcurrencyGate(1),
            max_attempts=5,
            stop_event=stop,
        )
        with self.assertRaises(FetchError):
            fetcher.fetch("https://example.com/a")
        self.assertEqual(transport.calls, 0)


if __name__ == "__main__":
    unittest.main()
