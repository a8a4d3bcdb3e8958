"""Decode uploaded text into tagged record sets."""

import csv
import io
import json
import logging
from typing import Any

from backend.app.models.uploads import (
    CsvRecords,
    JsonRecords,
    ParsedContent,
    UnsupportedContent,
    UploadedFile,
)

logger = logging.getLogger(__name__)

CSV_MIME_TYPES = ("text/csv", "application/csv")
JSON_MIME_TYPES = ("application/json", "text/json")


def _is_csv(name: str, mime_type: str) -> bool:
    return mime_type in CSV_MIME_TYPES or name.lower().endswith(".csv")


def _is_json(name: str, mime_type: str) -> bool:
    return mime_type in JSON_MIME_TYPES or name.lower().endswith(".json")


def _parse_csv(raw: str) -> CsvRecords:
    reader = csv.DictReader(io.StringIO(raw))
    records: list[dict[str, Any]] = []
    for row in reader:
        # DictReader puts overflow cells under a None key
        records.append({k: v for k, v in row.items() if k is not None})
    return CsvRecords(records=records)


def _parse_json(raw: str) -> ParsedContent:
    data = json.loads(raw)

    if isinstance(data, dict):
        data = [data]

    if not isinstance(data, list):
        return UnsupportedContent(reason="JSON root must be an array or an object")

    records = [item for item in data if isinstance(item, dict)]
    if len(records) != len(data):
        return UnsupportedContent(reason="JSON array must contain only objects")

    return JsonRecords(records=records)


def parse_content(name: str, mime_type: str, raw: str) -> ParsedContent:
    """Decode raw text by extension/mime type.

    Decoding problems become UnsupportedContent with the reason attached;
    this function does not raise for bad input.
    """
    try:
        if _is_csv(name, mime_type):
            return _parse_csv(raw)
        if _is_json(name, mime_type):
            return _parse_json(raw)
    except (csv.Error, json.JSONDecodeError, UnicodeError) as e:
        logger.warning(f"Could not parse upload {name!r}: {e}")
        return UnsupportedContent(reason=f"Could not parse {name}: {e}")

    return UnsupportedContent(reason=f"Unsupported file type for {name}")


def parse_upload(name: str, mime_type: str, raw: str) -> UploadedFile:
    """Build an immutable UploadedFile from the raw upload."""
    return UploadedFile(
        name=name,
        mime_type=mime_type,
        size_bytes=len(raw.encode("utf-8")),
        raw_content=raw,
        parsed=parse_content(name, mime_type, raw),
    )
