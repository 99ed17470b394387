"""
Per-person summary windows and window statistics.

Windows are anchored at a person's latest record and step backwards in
calendar blocks of `months` months (default 6):

    [anchor - 6 months + 1 day, anchor], then anchor := start - 1 day

The oldest window is clamped to the earliest record, so the windows tile
[min_date, max_date] without gaps or overlaps.

Statistics per window:
- average_duration_hours: arithmetic mean of finite durations
- average_interruption_length: mean interruption episode length (hours)
- average_interruption_count: mean of per-record interruption counts
- average_start_minute: circular mean of start minute-of-day
- average_end_minute: average start shifted by the average duration
- interruption_start_mean / interruption_end_mean: circular means over every
  episode minute in the window, else the first record's fallback mean
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from ..domains.config import WindowCfg
from ..domains.sleep.records import NormalizedRecord
from .circular import add_minutes_circular, circular_mean_minutes, finite_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowRange:
    start: date
    end: date

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    @property
    def label(self) -> str:
        return f"{_fmt_day(self.start)} – {_fmt_day(self.end)}"


def _fmt_day(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


@dataclass(frozen=True)
class WindowStatistics:
    window_start: date
    window_end: date
    average_duration_hours: Optional[float] = None
    average_interruption_length: Optional[float] = None
    average_interruption_count: Optional[float] = None
    average_start_minute: Optional[int] = None
    average_end_minute: Optional[int] = None
    interruption_start_mean: Optional[int] = None
    interruption_end_mean: Optional[int] = None


WindowSummary = Tuple[WindowRange, WindowStatistics, List[NormalizedRecord]]


def build_windows(records: Sequence[NormalizedRecord], months: int = 6) -> List[WindowRange]:
    """Windows covering a person's records, most recent first."""
    dates = sorted(r.start_date for r in records)
    if not dates:
        return []
    min_date, max_date = dates[0], dates[-1]

    windows = []
    anchor = max_date
    while anchor >= min_date:
        start = anchor - relativedelta(months=months) + timedelta(days=1)
        if start < min_date:
            start = min_date
        windows.append(WindowRange(start, anchor))
        anchor = start - timedelta(days=1)
    return windows


def records_in_window(records: Sequence[NormalizedRecord], window: WindowRange) -> List[NormalizedRecord]:
    return sorted((r for r in records if window.contains(r.start_date)), key=lambda r: r.start)


def compute_window_statistics(records: Sequence[NormalizedRecord], window: WindowRange) -> WindowStatistics:
    if not records:
        return WindowStatistics(window.start, window.end)

    avg_duration = finite_mean(r.duration_hours for r in records)
    avg_intr_length = finite_mean(
        d for r in records for d in r.interruption_durations_hours() if d > 0
    )
    avg_intr_count = finite_mean(
        c for c in (r.interruption_count() for r in records) if c is not None and c > 0
    )

    start_mean = circular_mean_minutes(r.start_minute for r in records)
    avg_minutes = int(round(avg_duration * 60.0)) if avg_duration is not None else None
    end_mean = add_minutes_circular(start_mean, avg_minutes)

    intr_starts = [m for r in records for m in (r.interruption_start_minutes or ())]
    intr_ends = [m for r in records for m in (r.interruption_end_minutes or ())]
    if intr_starts:
        intr_start_mean = circular_mean_minutes(intr_starts)
    else:
        intr_start_mean = next(
            (r.interruption_start_mean_minutes for r in records if r.interruption_start_mean_minutes is not None),
            None,
        )
    if intr_ends:
        intr_end_mean = circular_mean_minutes(intr_ends)
    else:
        intr_end_mean = next(
            (r.interruption_end_mean_minutes for r in records if r.interruption_end_mean_minutes is not None),
            None,
        )

    return WindowStatistics(
        window_start=window.start,
        window_end=window.end,
        average_duration_hours=avg_duration,
        average_interruption_length=avg_intr_length,
        average_interruption_count=avg_intr_count,
        average_start_minute=start_mean,
        average_end_minute=end_mean,
        interruption_start_mean=intr_start_mean,
        interruption_end_mean=intr_end_mean,
    )


def summarize_person(
    records: Sequence[NormalizedRecord],
    cfg: Optional[WindowCfg] = None,
    chronological: bool = False,
) -> List[WindowSummary]:
    """(window, statistics, contributing records) per window, most recent first."""
    cfg = cfg or WindowCfg()
    out = []
    for window in build_windows(records, cfg.months):
        members = records_in_window(records, window)
        out.append((window, compute_window_statistics(members, window), members))
    if chronological:
        out.reverse()
    return out


def overview(records: Sequence[NormalizedRecord]) -> Optional[WindowSummary]:
    """Single window spanning a person's whole history."""
    if not records:
        return None
    ordered = sorted(records, key=lambda r: r.start)
    window = WindowRange(ordered[0].start_date, ordered[-1].start_date)
    return window, compute_window_statistics(ordered, window), ordered


def group_by_person(records: Sequence[NormalizedRecord]) -> Dict[str, List[NormalizedRecord]]:
    """Group records by name, case-insensitively; keys keep the first spelling seen."""
    groups: Dict[str, List[NormalizedRecord]] = {}
    keys: Dict[str, str] = {}
    for r in records:
        key = keys.setdefault(r.name.lower(), r.name)
        groups.setdefault(key, []).append(r)
    ordered = dict(sorted(groups.items(), key=lambda kv: kv[0].lower()))
    logger.info("Grouped %d records into %d people", len(records), len(ordered))
    return ordered
