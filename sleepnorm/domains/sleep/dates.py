"""Date handling for sleep notes: loose date parsing and future-date rollback."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

if TYPE_CHECKING:
    from .records import NormalizedRecord

logger = logging.getLogger("etl.sleep.dates")

DASH_RE = re.compile("[–—−]")
# month/day[/year] as the leading token of the first segment
FIRST_SEGMENT_RE = re.compile(r"^(?P<m>\d{1,2})/(?P<d>\d{1,2})(?:/(?P<y>\d{2,4}))?(?![\d/])")
TRAILING_YEAR_RE = re.compile(r"/(?P<y>\d{2,4})\s*$")


def normalize_year(raw: str) -> Optional[int]:
    try:
        year = int(raw)
    except ValueError:
        return None
    if year < 100:
        year += 2000
    return year


def parse_date_field(raw: Optional[str], default_year: int) -> Optional[date]:
    """Parse ``M/D[/Y]`` (optionally ``M/D - M/D/Y``) into a date.

    `default_year` fills in a missing year and must come from the caller
    (normally the current year at load time).
    """
    if raw is None or not raw.strip():
        return None

    normalized = DASH_RE.sub("-", raw.strip())
    parts = [p.strip() for p in normalized.split("-")]
    parts = [p for p in parts if p]
    if not parts:
        return None

    m = FIRST_SEGMENT_RE.match(parts[0])
    if not m:
        return None
    month, day = int(m.group("m")), int(m.group("d"))

    year = None
    if m.group("y"):
        year = normalize_year(m.group("y"))
    elif len(parts) > 1:
        secondary = TRAILING_YEAR_RE.search(parts[1])
        if secondary:
            year = normalize_year(secondary.group("y"))
    if year is None:
        year = default_year

    try:
        return date(year, month, day)
    except ValueError:
        return None


def shift_back_years(dt: datetime, years: int) -> datetime:
    """Move `dt` back one year at a time; Feb 29 becomes Feb 28 and stays there."""
    for _ in range(years):
        dt = dt - relativedelta(years=1)
    return dt


def to_past(dt: datetime, today: date) -> tuple[datetime, int]:
    """Step `dt` back whole years until its date is not after `today`.

    Returns the shifted value and the number of years stepped.
    """
    years = 0
    while dt.date() > today:
        dt = dt - relativedelta(years=1)
        years += 1
    return dt, years


def correct_future_dates(records: Iterable["NormalizedRecord"], today: date) -> List["NormalizedRecord"]:
    """Return records with start (and end) rolled back so start <= today.

    If the shifted end lands before the shifted start the end moves forward a
    day, keeping overnight intervals intact.
    """
    out = []
    shifted = 0
    for rec in records:
        start, years = to_past(rec.start, today)
        if years == 0:
            out.append(rec)
            continue
        shifted += 1
        end = rec.end
        if end is not None:
            end = shift_back_years(end, years)
            if end < start:
                end = end + timedelta(days=1)
        out.append(replace(rec, start=start, end=end))
    if shifted:
        logger.info("future-dated records rolled back: %d", shifted)
    return out
