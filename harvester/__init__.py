"""Sitemap harvester package.

Collects item pages listed in a sitemap into a CSV report, skipping pages
already present in the report from earlier runs.

Key modules:
    models          -- Record, TaskOutcome, RunSummary dataclasses
    errors          -- FetchError, TransientNetworkError, PersistenceError
    backoff         -- BackoffStrategy for exponential retry delays
    rate_limiter    -- RateLimiter for adaptive request pacing
    gate            -- ConcurrencyGate bounding in-flight requests
    transports      -- RequestsTransport, CurlTransport raw HTTP GET
    factory         -- create_transport() by name
    fetcher         -- RetryingFetcher combining the above
    dedup           -- DedupIndex of claimed/known URLs
    records         -- RecordSet append-only record collection
    metrics         -- ProgressCounter, RequestMetrics
    extractor       -- BaseExtractor, SpecTableExtractor
    sitemap         -- sitemap parsing and item link filtering
    task            -- PageTask per-URL pipeline
    controller      -- WorkerPool thread pool
    storage         -- ReportStore CSV load/merge/write
    orchestrator    -- Harvester run driver
    config          -- HarvestConfig defaults
    logging_utils   -- setup_logging(), log_event()
"""
