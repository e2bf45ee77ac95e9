from __future__ import annotations

from enum import Enum
from typing import Optional


class HarvestError(Exception):
    """Base class for all harvester errors."""


class FetchKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class FetchError(HarvestError):
    """A page could not be retrieved.

    ``kind`` tells the retry loop whether another attempt may help."""

    kind = FetchKind.PERMANENT

    def __init__(
        self,
        url: str,
        message: str = "",
        kind: Optional[FetchKind] = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message or f"failed to fetch {url}")
        self.url = url
        if kind is not None:
            self.kind = kind
        self.attempts = attempts


class TransientNetworkError(FetchError):
    """Connection refused/reset, timeout or TLS handshake failure."""

    kind = FetchKind.TRANSIENT


class EmptyResponseError(TransientNetworkError):
    """The server answered with an empty body."""


class PersistenceError(HarvestError):
    """The report could not be written."""

    def __init__(self, path: str, message: str = "") -> None:
        super().__init__(message or f"could not write report to {path}")
        self.path = path


class ReportLoadError(HarvestError):
    """The persisted report exists but could not be read."""

    def __init__(self, path: str, message: str = "") -> None:
        super().__init__(message or f"could not read report {path}")
        self.path = path


class SitemapError(HarvestError):
    """The sitemap document could not be parsed."""
