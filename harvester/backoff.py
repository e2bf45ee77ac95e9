from __future__ import annotations

import random


class BackoffStrategy:
    """Exponential backoff with jitter for retry delays.

    Computes sleep duration as base * 2^(attempt-1), stretched by up to
    ``jitter_ratio`` and capped at ``max_seconds`` (jitter included), so
    successive attempts never sleep less than the previous one."""

    def __init__(self, base_seconds: float = 1.0, max_seconds: float = 16.0, jitter_ratio: float = 0.1) -> None:
        if not 0 <= jitter_ratio <= 1:
            raise ValueError("jitter_ratio must be within [0, 1]")
        self._base = base_seconds
        self._max = max_seconds
        self._jitter = jitter_ratio

    @property
    def max_seconds(self) -> float:
        return self._max

    def get_sleep(self, attempt: int) -> float:
        """Calculate the backoff sleep duration in seconds for a given retry attempt."""
        exp = self._base * (2 ** max(attempt - 1, 0))
        jitter = random.uniform(0, self._jitter) if self._jitter else 0.0
        return min(self._max, exp * (1 + jitter))
