"""Normalized sleep records and the row builders that produce them.

A record is only constructed once every required piece resolved; rows that
cannot produce one raise `RowSkipped` with a short reason code that the
loader counts and logs.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Tuple

from dateutil import parser as dt_parser

from .clock import MINUTES_PER_DAY, parse_clock, to_24h
from .notes import ParsedNote
from .schema import PreprocessedSchema
from ..common.io import get_field


class RowSkipped(ValueError):
    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        super().__init__(f"{reason}: {detail}" if detail else reason)


@dataclass(frozen=True)
class NormalizedRecord:
    """One sleep interval for one person."""
    name: str
    start: datetime
    duration_hours: float
    end: Optional[datetime] = None
    interruptions: Optional[float] = None
    interruption_start_minutes: Optional[Tuple[int, ...]] = None
    interruption_end_minutes: Optional[Tuple[int, ...]] = None
    interruption_start_mean_minutes: Optional[int] = None
    interruption_end_mean_minutes: Optional[int] = None

    def __post_init__(self):
        if not math.isfinite(self.duration_hours) or self.duration_hours <= 0:
            raise ValueError(f"duration_hours must be positive and finite, got {self.duration_hours}")

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def start_minute(self) -> int:
        return self.start.hour * 60 + self.start.minute

    def interruption_durations_hours(self) -> Iterator[float]:
        """Length of each interruption episode in hours.

        Episodes pair the i-th start with the i-th end; extra entries on
        either side are ignored. An end before its start wraps past midnight.
        """
        if self.interruptions is not None and self.interruptions <= 0:
            return
        starts = self.interruption_start_minutes
        ends = self.interruption_end_minutes
        if not starts or not ends:
            return
        for s, e in zip(starts, ends):
            if e < s:
                e += MINUTES_PER_DAY
            if e - s > 0:
                yield (e - s) / 60.0

    def average_interruption_length_hours(self) -> Optional[float]:
        durations = list(self.interruption_durations_hours())
        if not durations:
            return None
        return sum(durations) / len(durations)

    def interruption_count(self) -> Optional[float]:
        """Explicit total when positive, else the number of extracted episodes."""
        if self.interruptions is not None and self.interruptions > 0:
            return self.interruptions
        derived = max(len(self.interruption_start_minutes or ()), len(self.interruption_end_minutes or ()))
        return float(derived) if derived > 0 else None

    def has_interruption_evidence(self) -> bool:
        if self.interruptions is not None and self.interruptions > 0:
            return True
        return bool(self.interruption_start_minutes) or bool(self.interruption_end_minutes)

    def sleep_end(self) -> datetime:
        if self.end is not None:
            return self.end
        return self.start + timedelta(hours=self.duration_hours)

    def __str__(self):
        return f"{self.name}: {self.start:%Y-%m-%d %H:%M} ({self.duration_hours:.2f}h)"


def clean_name(raw: Optional[str], default_name: str) -> str:
    if raw is None or not raw.strip():
        return default_name
    return raw.strip()


def build_datetime(d: Optional[date], time_value: Optional[str], period: Optional[str]) -> Optional[datetime]:
    """Combine a date with a 12-hour clock reading; None if any part is missing."""
    if d is None or not period or not period.strip():
        return None
    parsed = parse_clock(time_value)
    if parsed is None:
        return None
    hour, minute = parsed
    hour24 = to_24h(hour, period)
    if hour24 is None:
        return None
    return datetime.combine(d, time(hour24 % 24, minute))


def build_raw_record(name: str, parsed: ParsedNote) -> NormalizedRecord:
    """Build a record from a parsed note or raise `RowSkipped`.

    Explicit Hours/Minutes win over the start/end difference. An end earlier
    than the start on the same date is taken to be the next morning.
    """
    start = build_datetime(parsed.date, parsed.start_time, parsed.start_period)
    end = build_datetime(parsed.date, parsed.end_time, parsed.end_period)
    if start is None:
        if parsed.date is None:
            raise RowSkipped("date")
        raise RowSkipped("clock", "start time or AM/PM unresolved")
    if end is not None and end < start:
        end = end + timedelta(days=1)

    if parsed.hours is not None or parsed.minutes is not None:
        duration_min = (parsed.hours or 0) * 60.0 + (parsed.minutes or 0)
    elif end is not None:
        duration_min = (end - start).total_seconds() / 60.0
    else:
        raise RowSkipped("duration", "no Hours/Minutes and no start/end pair")

    if duration_min <= 0:
        raise RowSkipped("duration", f"{duration_min:g} minutes")

    ep = parsed.episodes
    return NormalizedRecord(
        name=name,
        start=start,
        end=end,
        duration_hours=duration_min / 60.0,
        interruptions=parsed.interruptions,
        interruption_start_minutes=ep.starts,
        interruption_end_minutes=ep.ends,
        interruption_start_mean_minutes=ep.start_mean,
        interruption_end_mean_minutes=ep.end_mean,
    )


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Free-form timestamp parsing; timezone offsets are dropped (wall clock kept)."""
    if raw is None or not raw.strip():
        return None
    try:
        dt = dt_parser.parse(raw.strip())
    except (ValueError, OverflowError):
        return None
    return dt.replace(tzinfo=None)


def parse_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def build_preprocessed_record(row: dict, schema: PreprocessedSchema, default_name: str) -> NormalizedRecord:
    """Read an already-structured row; the duration column is taken as-is."""
    start = parse_timestamp(get_field(row, schema.start))
    if start is None:
        raise RowSkipped("start", repr(get_field(row, schema.start)))

    duration = parse_float(get_field(row, schema.duration))
    if duration is None or duration <= 0:
        raise RowSkipped("duration", repr(get_field(row, schema.duration)))

    return NormalizedRecord(
        name=clean_name(get_field(row, schema.name), default_name),
        start=start,
        end=parse_timestamp(get_field(row, schema.end)),
        duration_hours=duration,
        interruptions=parse_float(get_field(row, schema.interruptions)),
    )
