"""Text summaries and tabular exports of normalized sleep records.

Renderers (charts, PDFs) consume these frames; nothing here draws.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import pandas as pd

from ..biomarkers.circular import MINUTES_PER_DAY
from ..biomarkers.windows import WindowRange, WindowStatistics, group_by_person, overview, summarize_person
from ..domains.config import WindowCfg
from ..domains.sleep.records import NormalizedRecord


def format_hours_line(label: str, value: Optional[float]) -> str:
    if value is None:
        return f"{label}: NA"
    total = int(round(value * 60))
    return f"{label}: {total // 60}h {abs(total % 60):02d}m"


def format_clock(minutes: Optional[int]) -> Optional[str]:
    if minutes is None:
        return None
    mins = minutes % MINUTES_PER_DAY
    hours, part = divmod(mins, 60)
    suffix = "AM" if hours < 12 else "PM"
    hours12 = 12 if hours % 12 == 0 else hours % 12
    return f"{hours12}:{part:02d} {suffix}"


def format_clock_line(label: str, minutes: Optional[int]) -> str:
    return f"{label}: {format_clock(minutes) or 'NA'}"


def format_count_line(label: str, value: Optional[float]) -> str:
    if value is None:
        return f"{label}: NA"
    return f"{label}: {value:.1f}"


def summary_lines(stats: WindowStatistics) -> List[str]:
    return [
        format_hours_line("Avg sleep", stats.average_duration_hours),
        format_clock_line("Avg start", stats.average_start_minute),
        format_clock_line("Avg end", stats.average_end_minute),
        format_hours_line("Avg intr. length", stats.average_interruption_length),
        format_count_line("Avg intr. total", stats.average_interruption_count),
        format_clock_line("Avg intr. start", stats.interruption_start_mean),
    ]


def _join_minutes(values) -> Optional[str]:
    if not values:
        return None
    return ";".join(str(v) for v in values)


def records_frame(records: Sequence[NormalizedRecord]) -> pd.DataFrame:
    """One row per record, in the given order."""
    rows = [
        {
            "name": r.name,
            "start_dt": r.start,
            "end_dt": r.end,
            "duration_hr": r.duration_hours,
            "interruptions": r.interruptions,
            "interruption_start_minutes": _join_minutes(r.interruption_start_minutes),
            "interruption_end_minutes": _join_minutes(r.interruption_end_minutes),
            "interruption_start_mean": r.interruption_start_mean_minutes,
            "interruption_end_mean": r.interruption_end_mean_minutes,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=[
        "name", "start_dt", "end_dt", "duration_hr", "interruptions",
        "interruption_start_minutes", "interruption_end_minutes",
        "interruption_start_mean", "interruption_end_mean",
    ])


def chart_points_frame(records: Sequence[NormalizedRecord], window: Optional[WindowRange] = None) -> pd.DataFrame:
    """Per-record plotting inputs, chronological, optionally limited to `window`."""
    selected = [r for r in records if window is None or window.contains(r.start_date)]
    selected.sort(key=lambda r: r.start)
    return pd.DataFrame(
        [
            {
                "start_dt": r.start,
                "end_dt": r.sleep_end(),
                "duration_hr": r.duration_hours,
                "interruption_count": r.interruption_count(),
                "avg_interruption_length_hr": r.average_interruption_length_hours(),
                "has_interruptions": r.has_interruption_evidence(),
            }
            for r in selected
        ],
        columns=["start_dt", "end_dt", "duration_hr", "interruption_count",
                 "avg_interruption_length_hr", "has_interruptions"],
    )


def _stats_row(name: str, kind: str, window: WindowRange, stats: WindowStatistics, n: int) -> dict:
    return {
        "name": name,
        "window": kind,
        "window_start": window.start,
        "window_end": window.end,
        "label": window.label,
        "records": n,
        "avg_duration_hr": stats.average_duration_hours,
        "avg_interruption_length_hr": stats.average_interruption_length,
        "avg_interruption_count": stats.average_interruption_count,
        "avg_start": format_clock(stats.average_start_minute),
        "avg_end": format_clock(stats.average_end_minute),
        "interruption_start_mean": format_clock(stats.interruption_start_mean),
        "interruption_end_mean": format_clock(stats.interruption_end_mean),
        "summary": " | ".join(summary_lines(stats)),
    }


def windows_frame(
    records: Sequence[NormalizedRecord],
    cfg: Optional[WindowCfg] = None,
    include_overview: bool = True,
) -> pd.DataFrame:
    """Statistics per person and window, oldest window first after the overview row."""
    rows = []
    for name, person in group_by_person(records).items():
        if include_overview:
            window, stats, members = overview(person)
            rows.append(_stats_row(name, "overview", window, stats, len(members)))
        for window, stats, members in summarize_person(person, cfg, chronological=True):
            rows.append(_stats_row(name, "window", window, stats, len(members)))
    return pd.DataFrame(rows)
