from __future__ import annotations

import threading
from typing import Iterable, Set


class DedupIndex:
    """Thread-safe set of known record keys (URLs).

    Keys are either committed (a record with that URL is in the RecordSet)
    or claimed (a worker is scraping it right now). ``try_claim`` refuses
    both, so two workers never scrape the same URL; ``contains`` reports
    committed keys only."""

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._committed: Set[str] = set(keys)
        self._claimed: Set[str] = set()

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._committed

    __contains__ = contains

    def try_claim(self, key: str) -> bool:
        """Atomically mark ``key`` as in progress. False if already known.

        A claim dropped through ``release`` can be granted again, so a URL
        whose page failed may be attempted once more if it reappears in the
        same run. At most one record per URL is ever committed."""
        with self._lock:
            if key in self._committed or key in self._claimed:
                return False
            self._claimed.add(key)
            return True

    def commit(self, key: str) -> bool:
        """Turn a claim (or an unclaimed key) into a committed one.

        Returns False if the key was already committed."""
        with self._lock:
            self._claimed.discard(key)
            if key in self._committed:
                return False
            self._committed.add(key)
            return True

    def release(self, key: str) -> None:
        """Drop an unsuccessful claim so the key may be tried again."""
        with self._lock:
            self._claimed.discard(key)

    def seed(self, keys: Iterable[str]) -> int:
        with self._lock:
            before = len(self._committed)
            self._committed.update(keys)
            return len(self._committed) - before

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._committed)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._claimed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._committed)
