from __future__ import annotations

import csv
import io
import logging
import os
import re
from pathlib import Path
from typing import IO, Iterator, Union

import pandas as pd

logger = logging.getLogger("etl.io")

Source = Union[str, "os.PathLike[str]", bytes, IO[bytes], IO[str]]

_DELIMITERS = ",;\t|"
_UNNAMED = re.compile(r"^Unnamed: \d+(?:_level_\d+)?$")

class CsvReadError(RuntimeError): ...

def buffer_source(source: Source, encoding: str = "utf-8-sig") -> str:
    """Return the whole text of `source`, read exactly once.

    Accepts a filesystem path, raw bytes, or a binary/text file object. File
    objects are rewound when seekable; otherwise they are consumed as-is.
    """
    if isinstance(source, (str, os.PathLike)):
        p = Path(source)
        try:
            data: bytes | str = p.read_bytes()
        except OSError as e:
            raise CsvReadError(f"Failed to read '{p}': {e}") from e
    elif isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        try:
            if source.seekable():
                source.seek(0)
        except (AttributeError, OSError):
            pass
        data = source.read()

    if isinstance(data, bytes):
        text = data.decode(encoding, errors="replace")
    else:
        text = data
    return text.lstrip("\ufeff")

def sniff_delimiter(text: str) -> str:
    """Guess the delimiter from the header line; comma when undecidable."""
    first = text.splitlines()[0] if text else ""
    if not first.strip():
        return ","
    try:
        return csv.Sniffer().sniff(first, delimiters=_DELIMITERS).delimiter
    except csv.Error:
        return ","

def _clean_columns(columns) -> list[str]:
    return [str(c).strip() for c in columns]

def read_header(text: str, sep: str) -> list[str]:
    """Trimmed, non-empty header names (pandas placeholder names dropped)."""
    if not text.strip():
        return []
    try:
        df = pd.read_csv(io.StringIO(text), sep=sep, nrows=0, dtype=str, engine="python", index_col=False)
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, csv.Error) as e:
        raise CsvReadError(f"Unreadable header row: {e}") from e
    return [c for c in _clean_columns(df.columns) if c and not _UNNAMED.match(c)]

def _read_records(text: str, sep: str, chunksize: int) -> Iterator[dict]:
    # index_col=False: rows with a trailing delimiter must not turn the first
    # column into an index
    try:
        reader = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            on_bad_lines="skip",
            engine="python",
            index_col=False,
            chunksize=chunksize,
        )
    except pd.errors.EmptyDataError:
        return
    with reader:
        for chunk in reader:
            chunk.columns = _clean_columns(chunk.columns)
            yield from chunk.to_dict("records")

def iter_rows(text: str, sep: str, chunksize: int = 500) -> Iterator[dict]:
    """Yield data rows as dicts keyed by trimmed header names.

    Malformed lines are skipped by the reader, short rows come through with
    missing values and long rows are cut to the header width. When the reader
    gives up part way (e.g. an unterminated quote), the input is re-read one
    row at a time so every row before the bad one is still yielded.
    """
    if not text.strip():
        return
    yielded = 0
    try:
        for row in _read_records(text, sep, chunksize):
            yielded += 1
            yield row
        return
    except (pd.errors.ParserError, csv.Error) as e:
        logger.warning("malformed input after %d rows (%s); re-reading row by row", yielded, e)

    try:
        for idx, row in enumerate(_read_records(text, sep, 1)):
            if idx >= yielded:
                yield row
    except (pd.errors.ParserError, csv.Error) as e:
        logger.warning("stopped reading at malformed input: %s", e)


def get_field(row: dict, column: str | None) -> str | None:
    """Case-insensitive field lookup; None when the column or value is missing."""
    if column is None:
        return None
    if column in row:
        value = row[column]
    else:
        value = None
        for key, v in row.items():
            if str(key).lower() == column.lower():
                value = v
                break
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)
