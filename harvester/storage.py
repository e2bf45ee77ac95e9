from __future__ import annotations

import csv
import io
import logging
import os
import shutil
import tempfile
from typing import Iterable, List, Sequence

from .errors import PersistenceError, ReportLoadError
from .logging_utils import log_event
from .models import URL_KEY, Record

logger = logging.getLogger(__name__)

NO_DATA = "no data"
SCHEMA_RICHEST = "richest"
SCHEMA_UNION = "union"
SCHEMA_STRATEGIES = (SCHEMA_RICHEST, SCHEMA_UNION)


def richest_record(records: Sequence[Record]) -> Record | None:
    """The first record carrying the most attributes."""
    if not records:
        return None
    return max(records, key=len)


def select_schema(records: Sequence[Record], strategy: str = SCHEMA_RICHEST) -> List[str]:
    """Column order for a report.

    ``richest`` takes the attribute names of the record with the most
    attributes, so attributes only present on poorer records are dropped.
    ``union`` keeps every attribute ever seen, ordered by first appearance
    with URL leading."""
    if strategy == SCHEMA_RICHEST:
        richest = richest_record(records)
        return richest.keys() if richest is not None else []
    if strategy == SCHEMA_UNION:
        seen = {URL_KEY: None} if records else {}
        for record in records:
            for key in record.keys():
                seen.setdefault(key, None)
        return list(seen)
    raise ValueError(f"Unknown schema strategy: {strategy}")


def merge_records(existing: Iterable[Record], new: Iterable[Record]) -> List[Record]:
    """Existing records first, then new ones whose URL is not known yet."""
    merged: List[Record] = []
    seen = set()
    for record in list(existing) + list(new):
        if record.url in seen:
            continue
        seen.add(record.url)
        merged.append(record)
    return merged


def _apply_report_mode(tmp_path: str, target: str) -> None:
    """Give the temp file the permissions a plain rewrite of ``target`` would leave."""
    if os.path.exists(target):
        shutil.copymode(target, tmp_path)
        return
    umask = os.umask(0)
    os.umask(umask)
    os.chmod(tmp_path, 0o666 & ~umask)


class ReportStore:
    """Reads and writes the CSV report that persists harvested records between runs."""

    def __init__(self, path: str, sentinel: str = NO_DATA, schema_strategy: str = SCHEMA_RICHEST) -> None:
        if schema_strategy not in SCHEMA_STRATEGIES:
            raise ValueError(f"Unknown schema strategy: {schema_strategy}")
        self._path = path
        self._sentinel = sentinel
        self._strategy = schema_strategy

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def load(self) -> List[Record]:
        """Parse the persisted report. A missing file yields no records."""
        if not self.exists():
            logger.info("Report file %s not found. Starting from scratch.", self._path)
            return []

        records: List[Record] = []
        try:
            with open(self._path, "r", encoding="utf-8-sig", newline="") as f:
                for line_no, row in enumerate(csv.DictReader(f), start=2):
                    fields = {k: v for k, v in row.items() if k is not None}
                    try:
                        records.append(Record.from_mapping(fields))
                    except ValueError:
                        logger.warning("Skipping row %d of %s: no %s", line_no, self._path, URL_KEY)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise ReportLoadError(self._path, f"could not read report {self._path}: {exc}") from exc

        richest = richest_record(records)
        log_event(
            logger,
            logging.INFO,
            "report_loaded",
            path=self._path,
            records=len(records),
            richest_url=richest.url if richest else None,
        )
        return records

    def render(self, records: Sequence[Record]) -> str:
        """Full CSV text: header from the schema, rows sorted by URL (case-insensitive)."""
        schema = select_schema(records, self._strategy)
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(schema)
        for record in sorted(records, key=lambda r: r.url.lower()):
            values = record.as_dict()
            writer.writerow([values.get(column, self._sentinel) for column in schema])
        return buf.getvalue()

    def merge_and_write(self, existing: Iterable[Record], new: Iterable[Record]) -> bool:
        """Merge both sets and replace the report file. False if there was nothing to write.

        The whole report is rendered before the file system is touched and
        lands through a rename, so a failed write leaves the old report intact."""
        records = merge_records(existing, new)
        if not records:
            logger.info("No records to write, report left untouched.")
            return False

        content = self.render(records)
        directory = os.path.dirname(os.path.abspath(self._path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", newline="", dir=directory, suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(content)
            _apply_report_mode(tmp_path, self._path)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(self._path, f"could not write report to {self._path}: {exc}") from exc

        richest = richest_record(records)
        log_event(
            logger,
            logging.INFO,
            "report_written",
            path=self._path,
            records=len(records),
            richest_url=richest.url if richest else None,
        )
        return True
