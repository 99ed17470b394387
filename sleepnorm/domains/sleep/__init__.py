"""Sleep export ingestion: schema detection, note parsing, record building."""

from .loader import LoadCancelled, LoadReport, load_sleep_records
from .records import NormalizedRecord
from .schema import PreprocessedSchema, RawSchema, SchemaError, resolve_schema

__all__ = [
    "LoadCancelled",
    "LoadReport",
    "NormalizedRecord",
    "PreprocessedSchema",
    "RawSchema",
    "SchemaError",
    "load_sleep_records",
    "resolve_schema",
]
