"""
hierarchy.py — locate the record set inside a JSON document and flatten it.

Cell values are flattened to a short text preview: nested lists show their
first three items and nested objects their first two key/value pairs, with
"..." when something was cut. This is a display and type-inference
convenience, not a lossless transform; the original structure cannot be
rebuilt from a flattened cell.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DATA_KEYWORDS = ("list", "data", "items", "records", "transactions", "entries", "results")
ROOT_PATH = "root"
PREVIEW_ITEMS = 3
PREVIEW_PAIRS = 2
TRUNCATION_MARKER = "..."


@dataclass(frozen=True)
class RecordArray:
    path: str
    records: list[Any]

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def has_data_keyword(self) -> bool:
        lowered = self.path.lower()
        return any(keyword in lowered for keyword in DATA_KEYWORDS)


def _is_record_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and isinstance(value[0], dict)


def _collect(value: Any, path: str, found: list[RecordArray]) -> None:
    if _is_record_array(value):
        found.append(RecordArray(path=path or ROOT_PATH, records=value))
    if isinstance(value, dict):
        for key, child in value.items():
            _collect(child, f"{path}.{key}" if path else str(key), found)


def find_record_arrays(document: Any) -> list[RecordArray]:
    """
    Every array of objects reachable through object properties, best first.

    Arrays whose path mentions a data-like keyword rank above the rest;
    within each group larger arrays come first, and discovery order breaks
    remaining ties. Arrays of scalars are never candidates.
    """
    found: list[RecordArray] = []
    _collect(document, "", found)
    return sorted(found, key=lambda candidate: (not candidate.has_data_keyword, -candidate.count))


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def flatten_value(value: Any) -> str:
    """Render a JSON value as a single cell string (lossy for containers)."""
    if isinstance(value, list):
        preview = ", ".join(_scalar_text(item) for item in value[:PREVIEW_ITEMS])
        return preview + TRUNCATION_MARKER if len(value) > PREVIEW_ITEMS else preview
    if isinstance(value, dict):
        pairs = list(value.items())
        preview = ", ".join(f"{key}: {_scalar_text(item)}" for key, item in pairs[:PREVIEW_PAIRS])
        return preview + TRUNCATION_MARKER if len(pairs) > PREVIEW_PAIRS else preview
    return _scalar_text(value)


def collect_keys(records: Sequence[Any]) -> list[str]:
    """Union of object keys across ``records`` in first-seen order."""
    keys: dict[str, None] = {}
    for record in records:
        if isinstance(record, dict):
            for key in record:
                keys.setdefault(str(key), None)
    return list(keys)


def record_cells(record: Any, columns: Sequence[str]) -> list[str]:
    if not isinstance(record, dict):
        return ["" for _ in columns]
    lookup = {str(key): value for key, value in record.items()}
    return [flatten_value(lookup.get(column)) for column in columns]


def select_records(document: Any) -> tuple[list[Any], list[str]]:
    """
    Pick the record set for a parsed document.

    Returns ``(records, warnings)``. Raises ValueError for documents that are
    neither an array nor an object.
    """
    if isinstance(document, list):
        return document, []
    if not isinstance(document, dict):
        raise ValueError("JSON must contain an array of objects or a single object")

    candidates = find_record_arrays(document)
    if not candidates:
        return [document], ["JSON is a single object; treated as a one-row table"]

    chosen = candidates[0]
    logger.debug("Using JSON record array at %s (%d records)", chosen.path, chosen.count)
    warnings = [
        f'Found nested array at path: "{chosen.path}" with {chosen.count} records. '
        "Using this array for field mapping."
    ]
    others = [candidate for candidate in candidates if candidate.path != chosen.path]
    if others:
        listed = ", ".join(f'"{candidate.path}" ({candidate.count} items)' for candidate in others)
        warnings.append(f"Other arrays found but not used: {listed}")
    return chosen.records, warnings
