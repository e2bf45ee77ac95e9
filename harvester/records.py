from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from .dedup import DedupIndex
from .models import Record


class RecordSet:
    """Append-only, thread-safe collection of records, kept in lock-step with a DedupIndex.

    Appending a record commits its URL to the index inside the same critical
    section, so the index's committed keys always equal the URLs held here."""

    def __init__(self, index: Optional[DedupIndex] = None) -> None:
        self._lock = threading.Lock()
        self._records: List[Record] = []
        self._index = index if index is not None else DedupIndex()

    @property
    def index(self) -> DedupIndex:
        return self._index

    def append(self, record: Record) -> None:
        with self._lock:
            if not self._index.commit(record.url):
                raise ValueError(f"duplicate record for {record.url}")
            self._records.append(record)

    def seed(self, records: Iterable[Record]) -> int:
        """Add previously persisted records, silently skipping repeated URLs."""
        added = 0
        with self._lock:
            for record in records:
                if self._index.commit(record.url):
                    self._records.append(record)
                    added += 1
        return added

    def snapshot(self) -> List[Record]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
