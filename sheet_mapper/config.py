"""Tuning values and per-request options for sheet-mapper parses."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_MAX_ROWS = 100
DEFAULT_MAX_PREVIEW_ROWS = 50
DEFAULT_MIN_CONFIDENCE = 0.70

TEXT_EXTENSIONS = {".txt"}
DELIMITED_EXTENSIONS = {".csv"} | TEXT_EXTENSIONS
HIERARCHICAL_EXTENSIONS = {".json"}
SUPPORTED_EXTENSIONS = DELIMITED_EXTENSIONS | HIERARCHICAL_EXTENSIONS


@dataclass(frozen=True)
class ParseOptions:
    """Caller-supplied overrides for one parse request.

    ``None`` means "detect it": delimiter, encoding and header presence are
    inferred from the file content when left unset.
    """

    max_rows: int = DEFAULT_MAX_ROWS
    max_preview_rows: int = DEFAULT_MAX_PREVIEW_ROWS
    delimiter: Optional[str] = None
    encoding: Optional[str] = None
    has_header: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.max_rows < 1:
            raise ValueError("max_rows must be at least 1")
        if self.max_preview_rows < 0:
            raise ValueError("max_preview_rows cannot be negative")
        if self.delimiter is not None and len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")


@dataclass(frozen=True)
class ParserConfig:
    """Heuristic thresholds, passed explicitly into every operation."""

    sample_size: int = 10
    header_vote_threshold: int = 3
    header_max_cell_length: int = 30
    header_descriptive_max_length: int = 50
    low_confidence_threshold: float = 0.7
    max_upload_bytes: int = 10 * 1024 * 1024
    json_key_sample: int = 10
    quoted_field_scan_rows: int = 5
    detect_fallback_encoding: bool = True
    fallback_confidence: float = 0.5

    def replace(self, **changes) -> "ParserConfig":
        return replace(self, **changes)


DEFAULT_CONFIG = ParserConfig()
