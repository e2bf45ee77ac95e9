from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from harvester.config import HarvestConfig
from harvester.errors import HarvestError
from harvester.factory import transport_names
from harvester.logging_utils import setup_logging
from harvester.models import RunSummary
from harvester.orchestrator import Harvester
from harvester.storage import SCHEMA_STRATEGIES

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

logger = logging.getLogger("harvester.main")


def build_parser() -> argparse.ArgumentParser:
    defaults = HarvestConfig()
    parser = argparse.ArgumentParser(description="Harvest item pages listed in a sitemap into a CSV report")

    parser.add_argument("--sitemap", default=defaults.sitemap_url, help="Sitemap URL listing item pages")
    parser.add_argument("--report", default=defaults.report_path, help="CSV report to load and update")
    parser.add_argument("--log-dir", default=defaults.log_dir, help="Directory for rotated log files ('' disables)")
    parser.add_argument("--log-level", default=defaults.log_level, help="Log level (default: $HARVEST_LOG_LEVEL or INFO)")

    parser.add_argument("--workers", type=int, default=defaults.workers, help="Worker threads")
    parser.add_argument("--max-in-flight", type=int, default=defaults.max_in_flight, help="Max simultaneous requests")
    parser.add_argument("--delay", type=float, default=defaults.base_delay, help="Minimum seconds between requests")
    parser.add_argument("--max-delay", type=float, default=defaults.max_delay, help="Ceiling for the overload delay")
    parser.add_argument("--attempts", type=int, default=defaults.max_attempts, help="Attempts per page on network errors")
    parser.add_argument("--timeout", type=float, default=defaults.timeout, help="Per-request timeout in seconds")
    parser.add_argument("--transport", choices=transport_names(), default=defaults.transport, help="HTTP client")

    parser.add_argument("--min-attributes", type=int, default=defaults.min_attributes, help="Attributes a record needs (URL included)")
    parser.add_argument("--min-slashes", type=int, default=defaults.min_slashes, help="Slashes an item URL needs")
    parser.add_argument("--schema", choices=SCHEMA_STRATEGIES, default=defaults.schema_strategy, help="Report column strategy")
    return parser


def config_from_args(args: argparse.Namespace) -> HarvestConfig:
    return HarvestConfig(
        sitemap_url=args.sitemap,
        report_path=args.report,
        log_dir=args.log_dir or None,
        log_level=args.log_level,
        workers=args.workers,
        max_in_flight=args.max_in_flight,
        base_delay=args.delay,
        max_delay=args.max_delay,
        max_attempts=args.attempts,
        timeout=args.timeout,
        transport=args.transport,
        min_attributes=args.min_attributes,
        min_slashes=args.min_slashes,
        schema_strategy=args.schema,
    )


def format_summary(summary: RunSummary) -> str:
    state = "INTERRUPTED" if summary.interrupted else "DONE"
    return (
        f"{state}: added={summary.records_added} loaded={summary.records_loaded} "
        f"duplicates={summary.duplicates} sparse={summary.sparse} failed={summary.failed} "
        f"cancelled={summary.cancelled} requests={summary.total_requests} "
        f"rate_limited={summary.rate_limited} elapsed={summary.elapsed_secs:.1f}s "
        f"report_written={summary.report_written}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    setup_logging(config.log_dir, config.log_level)

    try:
        harvester = Harvester.from_config(config)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_ERROR

    try:
        summary = harvester.run_from_sitemap(config.sitemap_url)
    except HarvestError as exc:
        logger.error("Harvest aborted: %s", exc)
        if harvester.summary is not None:
            print(format_summary(harvester.summary))
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted while loading the report")
        return EXIT_INTERRUPTED

    print(format_summary(summary))
    return EXIT_INTERRUPTED if summary.interrupted else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
