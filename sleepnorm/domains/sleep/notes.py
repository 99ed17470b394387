"""Label-based field extraction from free-text sleep progress notes.

Each rule is a pure function over the note text returning an optional value,
so partial notes degrade field by field instead of failing the row. A typical
note looks like::

    Date: 3/5 - 3/6/24
    Start time (x) PM ( ) AM 10:00
    End time ( ) PM (x) AM 6:00
    Hours: 8  Minutes: 0
    INTERRUPTIONS TOTAL #: 1
    Start time 2:10 (x) AM
    End time 2:25 (x) AM
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from ...biomarkers.circular import circular_mean_minutes
from .clock import extract_time_and_period, line_to_minutes
from .dates import parse_date_field

logger = logging.getLogger("etl.sleep.notes")

DATE_RE = re.compile(r"Date[:\s]*([^\n\r]+)", re.IGNORECASE)
START_LINE_RE = re.compile(r"Start time[^\n]*", re.IGNORECASE)
END_LINE_RE = re.compile(r"End time[^\n]*", re.IGNORECASE)
# "INTERUPPTIONS" is how the paper form spells it.
INTERRUPTIONS_RE = re.compile(
    r"INTERUPPTIONS TOTAL #\s*:*\s*(\d+)|INTERRUPTIONS(?: TOTAL)?\s*#?\s*:*\s*(\d+)",
    re.IGNORECASE,
)
INTERRUPTION_HEADER_RE = re.compile(r"INTER+UP*TIONS?\s+TOTAL\s*#.*", re.IGNORECASE)
HOURS_RE = re.compile(r"Hours[:\s]*([0-9]+)", re.IGNORECASE)
MINUTES_RE = re.compile(r"Minutes[:\s]*([0-9]+)", re.IGNORECASE)
INTR_START_MEAN_RE = re.compile(r"intr(?:er)? start mean[:\s]*(\d{1,2}:\d{2})\s*(AM|PM)?", re.IGNORECASE)
INTR_END_MEAN_RE = re.compile(r"intr(?:er)? end mean[:\s]*(\d{1,2}:\d{2})\s*(AM|PM)?", re.IGNORECASE)


@dataclass(frozen=True)
class InterruptionEpisodes:
    starts: Optional[Tuple[int, ...]] = None
    ends: Optional[Tuple[int, ...]] = None
    start_mean: Optional[int] = None
    end_mean: Optional[int] = None


@dataclass(frozen=True)
class ParsedNote:
    date: Optional[date]
    start_time: Optional[str]
    start_period: Optional[str]
    end_time: Optional[str]
    end_period: Optional[str]
    interruptions: Optional[float]
    hours: Optional[float]
    minutes: Optional[float]
    episodes: InterruptionEpisodes


def normalize_note(raw: str) -> str:
    return raw.replace("\r", "")


def extract_date_expression(text: str) -> Optional[str]:
    m = DATE_RE.search(text)
    return m.group(1) if m else None


def extract_start_line(text: str) -> Optional[str]:
    m = START_LINE_RE.search(text)
    return m.group(0) if m else None


def extract_end_line(text: str) -> Optional[str]:
    m = END_LINE_RE.search(text)
    return m.group(0) if m else None


def extract_interruption_total(text: str) -> Optional[float]:
    m = INTERRUPTIONS_RE.search(text)
    if not m:
        return None
    num = next((g for g in m.groups() if g), None)
    return float(num) if num is not None else None


def _labelled_int(pattern: re.Pattern, text: str) -> Optional[float]:
    m = pattern.search(text)
    return float(m.group(1)) if m else None


def extract_hours(text: str) -> Optional[float]:
    return _labelled_int(HOURS_RE, text)


def extract_minutes(text: str) -> Optional[float]:
    return _labelled_int(MINUTES_RE, text)


def interruption_region(text: str) -> str:
    """Text after the interruption-total header, else after the last End-time line."""
    header = INTERRUPTION_HEADER_RE.search(text)
    if header:
        return text[header.end():]
    last_end = None
    for last_end in END_LINE_RE.finditer(text):
        pass
    if last_end is not None:
        return text[last_end.end():]
    return ""


def extract_interruption_episodes(text: str) -> InterruptionEpisodes:
    """Per-episode interruption start/end minutes, or labelled fallback means.

    Starts and ends are paired by position in the region (i-th start with i-th
    end) rather than by matching times. If a note lists them in a different
    order the pairs will be wrong; the pairing is kept as the forms are filled
    in top to bottom.
    """
    region = interruption_region(text)
    starts: List[int] = []
    ends: List[int] = []
    if region:
        start_lines = [m.group(0) for m in START_LINE_RE.finditer(region)]
        end_lines = [m.group(0) for m in END_LINE_RE.finditer(region)]
        for s_line, e_line in zip(start_lines, end_lines):
            s = line_to_minutes(s_line)
            e = line_to_minutes(e_line)
            if s is not None:
                starts.append(s)
            if e is not None:
                ends.append(e)

    start_mean = circular_mean_minutes(starts) if starts else None
    end_mean = circular_mean_minutes(ends) if ends else None

    if start_mean is None and end_mean is None:
        m = INTR_START_MEAN_RE.search(text)
        if m:
            start_mean = line_to_minutes(m.group(0))
        m = INTR_END_MEAN_RE.search(text)
        if m:
            end_mean = line_to_minutes(m.group(0))

    return InterruptionEpisodes(
        starts=tuple(starts) or None,
        ends=tuple(ends) or None,
        start_mean=start_mean,
        end_mean=end_mean,
    )


def parse_note(raw: Optional[str], default_year: int) -> Optional[ParsedNote]:
    """Extract every field of a note; None for a blank note."""
    if raw is None or not raw.strip():
        return None

    text = normalize_note(raw)
    start_time, start_period = extract_time_and_period(extract_start_line(text))
    end_time, end_period = extract_time_and_period(extract_end_line(text))

    return ParsedNote(
        date=parse_date_field(extract_date_expression(text), default_year),
        start_time=start_time,
        start_period=start_period,
        end_time=end_time,
        end_period=end_period,
        interruptions=extract_interruption_total(text),
        hours=extract_hours(text),
        minutes=extract_minutes(text),
        episodes=extract_interruption_episodes(text),
    )
