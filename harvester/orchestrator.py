from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import asdict
from typing import Iterable, List, Optional

from .config import HarvestConfig
from .controller import WorkerPool
from .errors import HarvestError, PersistenceError
from .extractor import BaseExtractor, SpecTableExtractor
from .factory import create_transport
from .fetcher import RetryingFetcher
from .gate import ConcurrencyGate
from .logging_utils import log_event
from .metrics import ProgressCounter, RequestMetrics
from .models import OutcomeStatus, Phase, Record, RunSummary, TaskOutcome
from .rate_limiter import RateLimiter
from .records import RecordSet
from .sitemap import DEFAULT_MIN_SLASHES, fetch_item_links
from .storage import ReportStore
from .task import DEFAULT_MIN_ATTRIBUTES, PageTask
from .transports import Transport

logger = logging.getLogger(__name__)


class Harvester:
    """Drives one harvesting run: Seeding -> Dispatching -> Draining -> Finalizing.

    Finalizing always runs. On KeyboardInterrupt the pool is cancelled
    without waiting for in-flight pages and whatever has been collected so
    far is written; the returned summary has ``interrupted`` set. Unexpected
    errors are re-raised after the report has been written."""

    def __init__(
        self,
        fetcher: RetryingFetcher,
        extractor: BaseExtractor,
        store: ReportStore,
        workers: int = 300,
        min_attributes: int = DEFAULT_MIN_ATTRIBUTES,
        min_slashes: int = DEFAULT_MIN_SLASHES,
        metrics: Optional[RequestMetrics] = None,
        stop_event: Optional[threading.Event] = None,
        poll_secs: float = 0.5,
    ) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._store = store
        self._workers = workers
        self._min_attributes = min_attributes
        self._min_slashes = min_slashes
        self._metrics = metrics or RequestMetrics()
        self._stop = stop_event if stop_event is not None else threading.Event()
        self._poll_secs = poll_secs

        self._records = RecordSet()
        self._progress = ProgressCounter()
        self._seeded: Optional[List[Record]] = None
        self._phase = Phase.SEEDING
        self._summary: Optional[RunSummary] = None

    @classmethod
    def from_config(
        cls,
        config: HarvestConfig,
        transport: Optional[Transport] = None,
        extractor: Optional[BaseExtractor] = None,
    ) -> "Harvester":
        config.validate()
        stop_event = threading.Event()
        metrics = RequestMetrics()
        if transport is None:
            transport = create_transport(config.transport, timeout=config.timeout, user_agent=config.user_agent)
        fetcher = RetryingFetcher(
            transport=transport,
            rate_limiter=RateLimiter(
                base_delay=config.base_delay,
                max_delay=config.max_delay,
                jitter_range=config.jitter_range,
                stop_event=stop_event,
            ),
            gate=ConcurrencyGate(config.max_in_flight),
            backoff=config.backoff(),
            max_attempts=config.max_attempts,
            metrics=metrics,
            stop_event=stop_event,
        )
        return cls(
            fetcher=fetcher,
            extractor=extractor or SpecTableExtractor(),
            store=ReportStore(config.report_path, sentinel=config.sentinel, schema_strategy=config.schema_strategy),
            workers=config.workers,
            min_attributes=config.min_attributes,
            min_slashes=config.min_slashes,
            metrics=metrics,
            stop_event=stop_event,
            poll_secs=config.poll_secs,
        )

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def records(self) -> RecordSet:
        return self._records

    @property
    def progress(self) -> ProgressCounter:
        return self._progress

    @property
    def summary(self) -> Optional[RunSummary]:
        return self._summary

    def seed(self) -> List[Record]:
        """Load the persisted report into the record set and key index (once)."""
        if self._seeded is None:
            self._phase = Phase.SEEDING
            loaded = self._store.load()
            self._records.seed(loaded)
            self._seeded = self._records.snapshot()
        return self._seeded

    def run_from_sitemap(self, sitemap_url: str) -> RunSummary:
        """Seed, read the sitemap, then harvest its item pages.

        A sitemap that cannot be fetched or parsed still produces a summary
        before the error is re-raised; an interrupt while it is being read
        returns an interrupted summary."""
        start = time.monotonic()
        seeded = self.seed()
        try:
            links = fetch_item_links(self._fetcher, sitemap_url, self._min_slashes)
        except KeyboardInterrupt:
            self._stop.set()
            logger.warning("Operation was interrupted while reading the sitemap.")
            return self._finalize(seeded, [], [], start, interrupted=True)
        except HarvestError:
            logger.exception("Sitemap %s could not be read", sitemap_url)
            self._finalize(seeded, [], [], start, interrupted=False)
            raise
        return self.run(links)

    def run(self, candidate_urls: Iterable[str]) -> RunSummary:
        start = time.monotonic()
        seeded = self.seed()
        candidates = list(candidate_urls)

        task = PageTask(
            fetcher=self._fetcher,
            extractor=self._extractor,
            records=self._records,
            progress=self._progress,
            min_attributes=self._min_attributes,
            stop_event=self._stop,
        )
        pool = WorkerPool(self._workers, stop_event=self._stop)
        logger.info("Scraping started: %d candidate pages, %d workers", len(candidates), self._workers)

        interrupted = False
        try:
            self._phase = Phase.DISPATCHING
            for url in candidates:
                if self._stop.is_set():
                    break
                pool.submit(task.run, url)
            self._phase = Phase.DRAINING
            pool.wait_all(self._poll_secs)
            pool.shutdown(wait=True)
        except KeyboardInterrupt:
            interrupted = True
            logger.warning("Operation was interrupted. Scraped %d records so far.", self._progress.value)
            pool.cancel()
        except Exception:
            logger.exception("Error during scraping")
            pool.cancel()
            self._finalize(seeded, candidates, pool.outcomes(), start, interrupted)
            raise

        return self._finalize(seeded, candidates, pool.outcomes(), start, interrupted)

    def _finalize(
        self,
        seeded: List[Record],
        candidates: List[str],
        outcomes: List[TaskOutcome],
        start: float,
        interrupted: bool,
    ) -> RunSummary:
        self._phase = Phase.FINALIZING
        collected = self._records.snapshot()
        written = False
        try:
            written = self._store.merge_and_write(seeded, collected)
        except PersistenceError:
            logger.exception("Report could not be written")
            raise
        finally:
            self._summary = self._summarize(seeded, collected, candidates, outcomes, start, interrupted, written)
            log_event(logger, logging.INFO, "run_summary", **asdict(self._summary))
            self._phase = Phase.DONE
        return self._summary

    def _summarize(
        self,
        seeded: List[Record],
        collected: List[Record],
        candidates: List[str],
        outcomes: List[TaskOutcome],
        start: float,
        interrupted: bool,
        written: bool,
    ) -> RunSummary:
        counts = Counter(o.status for o in outcomes)
        unfinished = len(candidates) - len(outcomes)
        snap = self._metrics.snapshot()
        return RunSummary(
            records_loaded=len(seeded),
            records_added=len(collected) - len(seeded),
            duplicates=counts[OutcomeStatus.DUPLICATE],
            sparse=counts[OutcomeStatus.SPARSE],
            failed=counts[OutcomeStatus.FAILED],
            cancelled=counts[OutcomeStatus.CANCELLED] + max(unfinished, 0),
            total_requests=snap.total_requests,
            rate_limited=snap.http_429_count,
            elapsed_secs=round(time.monotonic() - start, 3),
            interrupted=interrupted,
            report_written=written,
        )
