#!/usr/bin/env python3
"""Command line runner for sleep export normalization.

Subcommands:
- ``load``: parse an export and write the normalized records CSV;
- ``summarize``: parse an export and write per-person window statistics.

Exit codes: 0 ok, 1 no usable records, 2 unrecognised or unreadable header,
3 cancelled.
"""
from __future__ import annotations
import argparse
import logging
import os
import signal
import sys
import threading
from datetime import date
from pathlib import Path

from ..domains.common.io import CsvReadError
from ..domains.common.progress import Timer
from ..domains.config import LoaderCfg, WindowCfg
from ..domains.sleep.loader import LoadCancelled, LoadReport, load_sleep_records
from ..domains.sleep.schema import SchemaError
from ..lib.io_guards import write_csv
from ..reports.summary import records_frame, windows_frame

logger = logging.getLogger("etl.sleep.cli")


def _configure_logging() -> None:
    lvl_name = os.getenv("ETL_LOG_LEVEL", "INFO")
    lvl = getattr(logging, lvl_name.upper(), logging.INFO)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format="%(levelname)s %(name)s: %(message)s")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sleep_runner")
    sub = parser.add_subparsers(dest="cmd")

    def common(p):
        p.add_argument("--input", required=True, help="CSV/TSV export (raw notes or preprocessed)")
        p.add_argument("--out", required=True, help="Output CSV path")
        p.add_argument("--today", type=date.fromisoformat, default=None,
                       help="Reference date YYYY-MM-DD (default: system date)")
        p.add_argument("--default-name", dest="default_name", default="Individual",
                       help="Name used when the name column is blank")
        p.add_argument("--dry-run", type=int, default=0, help="If 1 parse only (no writes)")

    common(sub.add_parser("load", help="Write normalized records"))
    p_sum = sub.add_parser("summarize", help="Write per-person window statistics")
    common(p_sum)
    p_sum.add_argument("--months", type=int, default=6, help="Window width in calendar months")
    p_sum.add_argument("--no-overview", action="store_true", dest="no_overview",
                       help="Omit the whole-history row per person")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    _configure_logging()

    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.cmd not in ("load", "summarize"):
        parser.print_help()
        return 0

    today = args.today or date.today()
    cfg = LoaderCfg(default_name=args.default_name)
    report = LoadReport()

    cancel = threading.Event()
    previous = signal.getsignal(signal.SIGINT)
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        with Timer(f"sleep {args.cmd}"):
            records = load_sleep_records(Path(args.input), today=today, cancel=cancel, cfg=cfg, report=report)
    except (SchemaError, CsvReadError) as e:
        logger.error("%s", e)
        return 2
    except LoadCancelled as e:
        logger.warning("%s", e)
        return 3
    finally:
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, previous)

    if not records:
        logger.error("No valid sleep records were found in %s (rows read=%d)", args.input, report.rows_read)
        return 1

    if args.cmd == "load":
        df = records_frame(records)
    else:
        df = windows_frame(records, WindowCfg(months=args.months), include_overview=not args.no_overview)

    write_csv(df, Path(args.out), dry_run=bool(args.dry_run))
    for reason, n in sorted(report.skipped.items()):
        logger.info("skipped %s=%d", reason, n)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
