"""Header alias tables and schema detection for sleep exports.

Two layouts are recognised:

- raw: a name column plus a free-text progress note column;
- preprocessed: name, start and duration columns (end and interruptions
  optional).

Detection happens once per load; the chosen variant is carried through the
pipeline instead of re-checking headers per row.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

RAW_NAME_HEADERS = ("Name", "Resident Name", "Resident", "ResidentName", "Client Name", "Participant Name")
RAW_DETAILS_HEADERS = ("Details", "Progress Note", "Progress Note Note", "Progress Note Text", "Note")

PROCESSED_NAME_HEADERS = ("Name", "Resident Name", "Resident")
PROCESSED_START_HEADERS = ("start_dt", "start", "start_time", "start_datetime")
PROCESSED_END_HEADERS = ("end_dt", "end", "end_time", "end_datetime")
PROCESSED_DURATION_HEADERS = ("duration_hr", "duration_hours", "duration")
PROCESSED_INTERRUPTIONS_HEADERS = ("interruptions", "interruptions_count", "interruptions_total")


class SchemaError(ValueError):
    """Header row matches neither the raw nor the preprocessed layout."""

    def __init__(self, headers: Sequence[str]):
        self.headers = list(headers)
        super().__init__(
            "CSV must contain either columns [Name,Details] or "
            "[Name,start_dt,end_dt,duration_hr,interruptions]; "
            f"found {self.headers}"
        )


@dataclass(frozen=True)
class RawSchema:
    name: str
    details: str


@dataclass(frozen=True)
class PreprocessedSchema:
    name: str
    start: str
    duration: str
    end: Optional[str] = None
    interruptions: Optional[str] = None


Schema = Union[RawSchema, PreprocessedSchema]


def find_header(headers: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    """First header equal (case-insensitive) to any candidate, as spelled in the file."""
    wanted = {c.lower() for c in candidates}
    for h in headers:
        if h.lower() in wanted:
            return h
    return None


def resolve_schema(headers: Sequence[str]) -> Schema:
    headers = [h.strip() for h in headers if h and h.strip()]

    raw_name = find_header(headers, RAW_NAME_HEADERS)
    raw_details = find_header(headers, RAW_DETAILS_HEADERS)
    if raw_name is not None and raw_details is not None:
        return RawSchema(name=raw_name, details=raw_details)

    name = find_header(headers, PROCESSED_NAME_HEADERS) or raw_name
    start = find_header(headers, PROCESSED_START_HEADERS)
    duration = find_header(headers, PROCESSED_DURATION_HEADERS)
    if name is not None and start is not None and duration is not None:
        return PreprocessedSchema(
            name=name,
            start=start,
            duration=duration,
            end=find_header(headers, PROCESSED_END_HEADERS),
            interruptions=find_header(headers, PROCESSED_INTERRUPTIONS_HEADERS),
        )

    raise SchemaError(headers)
