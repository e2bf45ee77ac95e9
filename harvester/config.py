from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .backoff import BackoffStrategy
from .fetcher import DEFAULT_MAX_ATTEMPTS
from .sitemap import DEFAULT_MIN_SLASHES
from .storage import NO_DATA, SCHEMA_RICHEST
from .task import DEFAULT_MIN_ATTRIBUTES
from .transports import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

DEFAULT_SITEMAP_URL = "https://www.autocentrum.pl/sitemap/daneTechniczne.xml"
DEFAULT_REPORT_PATH = "./reports/report.csv"
DEFAULT_LOG_DIR = "./logs"


@dataclass
class HarvestConfig:
    """Every tunable of a harvesting run, with the defaults used by ``main.py``."""

    sitemap_url: str = DEFAULT_SITEMAP_URL
    report_path: str = DEFAULT_REPORT_PATH
    log_dir: Optional[str] = DEFAULT_LOG_DIR
    log_level: Optional[str] = None

    workers: int = 300
    max_in_flight: int = 300

    base_delay: float = 1.0
    max_delay: float = 16.0
    jitter_range: Tuple[float, float] = (0.5, 2.0)

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base: float = 1.0
    retry_max: float = 16.0

    transport: str = "requests"
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT

    min_slashes: int = DEFAULT_MIN_SLASHES
    min_attributes: int = DEFAULT_MIN_ATTRIBUTES
    sentinel: str = NO_DATA
    schema_strategy: str = SCHEMA_RICHEST

    poll_secs: float = field(default=0.5, repr=False)

    def validate(self) -> None:
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.max_in_flight < 1:
            raise ValueError("max_in_flight must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("require 0 <= base_delay <= max_delay")

    def backoff(self) -> BackoffStrategy:
        return BackoffStrategy(base_seconds=self.retry_base, max_seconds=self.retry_max)
