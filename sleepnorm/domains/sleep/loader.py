"""Load sleep exports (raw progress notes or preprocessed intervals) into records.

The input is buffered once, the header row picks the schema variant, and rows
are then streamed through the matching builder. Rows that cannot produce a
record are dropped and counted; only a header that matches neither layout
aborts the load.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Protocol

from ..common.io import Source, buffer_source, get_field, iter_rows, read_header, sniff_delimiter
from ..common.progress import progress_bar
from ..config import LoaderCfg
from .dates import correct_future_dates
from .notes import parse_note
from .records import NormalizedRecord, RowSkipped, build_preprocessed_record, build_raw_record, clean_name
from .schema import RawSchema, Schema, resolve_schema

logger = logging.getLogger("etl.sleep")


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


class LoadCancelled(RuntimeError):
    """Raised when the cancel token is set while rows are being streamed."""


@dataclass
class LoadReport:
    schema: Optional[str] = None
    delimiter: Optional[str] = None
    rows_read: int = 0
    kept: int = 0
    skipped: Counter = field(default_factory=Counter)

    @property
    def dropped(self) -> int:
        return sum(self.skipped.values())


def _build_row(row: dict, schema: Schema, default_year: int, cfg: LoaderCfg) -> NormalizedRecord:
    if isinstance(schema, RawSchema):
        name = clean_name(get_field(row, schema.name), cfg.default_name)
        parsed = parse_note(get_field(row, schema.details) or "", default_year)
        if parsed is None:
            raise RowSkipped("empty_note")
        return build_raw_record(name, parsed)
    return build_preprocessed_record(row, schema, cfg.default_name)


def sort_records(records: List[NormalizedRecord]) -> List[NormalizedRecord]:
    """Order by person name (case-insensitive), then start."""
    return sorted(records, key=lambda r: (r.name.lower(), r.start))


def load_sleep_records(
    source: Source,
    *,
    today: Optional[date] = None,
    default_year: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
    cfg: Optional[LoaderCfg] = None,
    report: Optional[LoadReport] = None,
) -> List[NormalizedRecord]:
    """Parse a delimited sleep export into sorted, future-corrected records.

    `today` defaults to ``date.today()`` and `default_year` (used for note
    dates without a year) to ``today.year``; both are read at call time.

    Raises `SchemaError` for an unrecognised header and `LoadCancelled` when
    `cancel` is set mid-stream. An input with no data rows yields ``[]``.
    """
    cfg = cfg or LoaderCfg()
    report = report if report is not None else LoadReport()
    today = today or date.today()
    default_year = default_year if default_year is not None else today.year

    text = buffer_source(source, encoding=cfg.encoding)
    sep = sniff_delimiter(text)
    report.delimiter = sep
    headers = read_header(text, sep)
    if not headers:
        logger.info("sleep rows=0 (empty input)")
        return []

    schema = resolve_schema(headers)
    report.schema = "raw" if isinstance(schema, RawSchema) else "preprocessed"
    logger.info("sleep schema=%s delimiter=%r", report.schema, sep)

    records: List[NormalizedRecord] = []
    with progress_bar(total=None, desc="sleep rows", unit="rows") as bar:
        for idx, row in enumerate(iter_rows(text, sep, cfg.chunksize)):
            if cancel is not None and cancel.is_set():
                raise LoadCancelled(f"load cancelled after {idx} rows")
            report.rows_read += 1
            bar.update(1)
            try:
                records.append(_build_row(row, schema, default_year, cfg))
            except RowSkipped as e:
                report.skipped[e.reason] += 1
                logger.debug("sleep row %d skipped (%s)", idx, e)

    records = sort_records(correct_future_dates(records, today))
    report.kept = len(records)
    logger.info("sleep rows=%d kept=%d dropped=%d", report.rows_read, report.kept, report.dropped)
    return records
