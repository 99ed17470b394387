"""Clock-time and AM/PM resolution for single lines of a progress note.

Notes are typed from paper forms, so a line such as

    Start time  AM ( ) PM (x)   10:15

carries both markers and only the ticked one is meant. Resolution order:

1. a checked marker: ``(x)``/``[x]``/``{x}`` immediately followed by AM/PM;
2. otherwise the first bare AM/PM at or after the time token;
3. otherwise the first bare AM/PM anywhere on the line.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

MINUTES_PER_DAY = 24 * 60

TIME_RE = re.compile(r"(\d{1,2}:\d{2})")
CHECKED_PERIOD_RE = re.compile(r"[\(\[\{]\s*[xX]\s*[\)\]\}]\s*(A\.?M\.?|P\.?M\.?)", re.IGNORECASE)
ANY_PERIOD_RE = re.compile(r"\b(A\.?M\.?|P\.?M\.?)\b", re.IGNORECASE)
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _normalize_period(token: str) -> Optional[str]:
    tok = token.upper().replace(".", "")
    if tok.startswith("A"):
        return "AM"
    if tok.startswith("P"):
        return "PM"
    return None


def resolve_period(line: str, time_pos: Optional[int] = None) -> Optional[str]:
    """Return "AM"/"PM" governing `line`, or None.

    `time_pos` is the index of the time token in the line, if one was found.
    """
    checked = CHECKED_PERIOD_RE.search(line)
    if checked:
        return _normalize_period(checked.group(1))

    matches = list(ANY_PERIOD_RE.finditer(line))
    if not matches:
        return None
    selected = matches[0]
    if time_pos is not None:
        after = next((m for m in matches if m.start() >= time_pos), None)
        selected = after or selected
    return _normalize_period(selected.group(1))


def extract_time_and_period(line: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """First ``H:MM`` token of `line` and its governing period."""
    if not line or not line.strip():
        return None, None
    m = TIME_RE.search(line)
    time_value = m.group(1) if m else None
    period = resolve_period(line, m.start() if m else None)
    return time_value, period


def parse_clock(time_value: Optional[str]) -> Optional[Tuple[int, int]]:
    """``"H:MM"`` -> (hour, minute); None for anything out of range."""
    if not time_value:
        return None
    m = _CLOCK_RE.match(time_value.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def to_24h(hour: int, period: str) -> Optional[int]:
    ap = _normalize_period(period.strip()) if period else None
    if ap == "AM":
        return 0 if hour == 12 else hour
    if ap == "PM":
        return hour if hour == 12 else hour + 12
    return None


def clock_to_minutes(time_value: Optional[str], period: Optional[str]) -> Optional[int]:
    """Minutes from midnight (0-1439) for a 12-hour clock reading."""
    if not period or not period.strip():
        return None
    parsed = parse_clock(time_value)
    if parsed is None:
        return None
    hour, minute = parsed
    hour24 = to_24h(hour, period)
    if hour24 is None:
        return None
    return (hour24 * 60 + minute) % MINUTES_PER_DAY


def line_to_minutes(line: Optional[str]) -> Optional[int]:
    return clock_to_minutes(*extract_time_and_period(line))
