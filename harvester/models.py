from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

URL_KEY = "URL"


@dataclass(frozen=True)
class Record:
    """One scraped page: an ordered, immutable attribute mapping keyed by ``URL``."""

    fields: Tuple[Tuple[str, str], ...]

    def __post_init__(self) -> None:
        if not dict(self.fields).get(URL_KEY):
            raise ValueError(f"record requires a non-empty {URL_KEY} attribute")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Record":
        return cls(fields=tuple((str(k), "" if v is None else str(v)) for k, v in mapping.items()))

    @property
    def url(self) -> str:
        return self.get(URL_KEY)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key, value in self.fields:
            if key == name:
                return value
        return default

    def keys(self) -> list[str]:
        return [k for k, _ in self.fields]

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self.fields)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return any(k == name for k, _ in self.fields)


class OutcomeStatus(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    SPARSE = "sparse"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TaskOutcome:
    url: str
    status: OutcomeStatus
    attribute_count: int = 0
    latency_ms: int = 0
    error_type: Optional[str] = None


class Phase(str, Enum):
    SEEDING = "seeding"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class RunSummary:
    records_loaded: int
    records_added: int
    duplicates: int
    sparse: int
    failed: int
    cancelled: int
    total_requests: int
    rate_limited: int
    elapsed_secs: float
    interrupted: bool
    report_written: bool
