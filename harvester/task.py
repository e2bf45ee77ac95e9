from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .extractor import BaseExtractor
from .fetcher import RetryingFetcher
from .logging_utils import log_event
from .metrics import ProgressCounter
from .models import OutcomeStatus, TaskOutcome
from .records import RecordSet

logger = logging.getLogger(__name__)

# A record needs URL plus at least five scraped attributes; boilerplate
# and error pages yield fewer.
DEFAULT_MIN_ATTRIBUTES = 6


class PageTask:
    """The per-URL pipeline: claim, fetch, extract, validate, append.

    ``run`` never raises. Whatever happens to one URL is reported as a
    TaskOutcome so sibling tasks are unaffected. A claim that does not end
    in an appended record is released again."""

    def __init__(
        self,
        fetcher: RetryingFetcher,
        extractor: BaseExtractor,
        records: RecordSet,
        progress: Optional[ProgressCounter] = None,
        min_attributes: int = DEFAULT_MIN_ATTRIBUTES,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._records = records
        self._index = records.index
        self._progress = progress or ProgressCounter()
        self._min_attributes = min_attributes
        self._stop = stop_event

    def run(self, url: str) -> TaskOutcome:
        start_ms = self._now_ms()

        if self._stop is not None and self._stop.is_set():
            return TaskOutcome(url=url, status=OutcomeStatus.CANCELLED)

        if not self._index.try_claim(url):
            logger.debug("Already known, skipping %s", url)
            return TaskOutcome(url=url, status=OutcomeStatus.DUPLICATE)

        try:
            body = self._fetcher.fetch(url)
            record = self._extractor.extract(url, body)
        except Exception as exc:  # noqa: BLE001
            self._index.release(url)
            log_event(
                logger,
                logging.ERROR,
                "record_failed",
                url=url,
                error_type=type(exc).__name__,
                message=str(exc),
            )
            return TaskOutcome(
                url=url,
                status=OutcomeStatus.FAILED,
                latency_ms=self._now_ms() - start_ms,
                error_type=type(exc).__name__,
            )

        count = len(record) if record is not None else 0
        if record is None or count < self._min_attributes:
            self._index.release(url)
            logger.info("Not enough data on %s (%d attributes), skipping", url, count)
            return TaskOutcome(
                url=url,
                status=OutcomeStatus.SPARSE,
                attribute_count=count,
                latency_ms=self._now_ms() - start_ms,
            )

        try:
            self._records.append(record)
        except ValueError:
            self._index.release(url)
            return TaskOutcome(url=url, status=OutcomeStatus.DUPLICATE, attribute_count=count)

        added = self._progress.increment()
        log_event(logger, logging.INFO, "record_added", n=added, url=url, attributes=count)
        return TaskOutcome(
            url=url,
            status=OutcomeStatus.ADDED,
            attribute_count=count,
            latency_ms=self._now_ms() - start_ms,
        )

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
