"""Result values produced by a parse."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DataType(str, Enum):
    TEXT = "Text"
    NUMBER = "Number"
    DATE = "Date"
    CURRENCY = "Currency"
    BOOLEAN = "Boolean"


@dataclass(frozen=True)
class DetectedField:
    name: str
    data_type: DataType
    sample_value: str
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dataType": self.data_type.value,
            "sampleValue": self.sample_value,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ParseOutcome:
    """
    The only output of a parse.

    Either ``success`` with at least one field, or a failure with ``error``
    set and no fields. Use ParseOutcome.failure() for the latter.
    """

    success: bool
    fields: tuple[DetectedField, ...] = ()
    row_count: int = 0
    preview_rows: tuple[tuple[str, ...], ...] = ()
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()
    detected_encoding: Optional[str] = None
    detected_delimiter: Optional[str] = None
    has_header: Optional[bool] = None
    has_quoted_fields: bool = False
    has_bom: bool = False

    def __post_init__(self) -> None:
        if self.success:
            if not self.fields:
                raise ValueError("a successful ParseOutcome needs at least one field")
            if self.error is not None:
                raise ValueError("a successful ParseOutcome cannot carry an error")
        else:
            if not self.error:
                raise ValueError("a failed ParseOutcome needs an error message")
            if self.fields:
                raise ValueError("a failed ParseOutcome cannot carry fields")

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        detected_encoding: Optional[str] = None,
        has_bom: bool = False,
    ) -> "ParseOutcome":
        return cls(
            success=False,
            error=error,
            detected_encoding=detected_encoding,
            has_bom=has_bom,
        )

    @property
    def columns(self) -> list[str]:
        return [detected.name for detected in self.fields]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "fields": [detected.to_dict() for detected in self.fields],
            "rowCount": self.row_count,
            "previewRows": [list(row) for row in self.preview_rows],
            "error": self.error,
            "warnings": list(self.warnings),
            "detectedEncoding": self.detected_encoding,
            "detectedDelimiter": self.detected_delimiter,
            "hasHeader": self.has_header,
            "hasQuotedFields": self.has_quoted_fields,
            "hasBOM": self.has_bom,
        }


@dataclass
class TableData:
    """Every column and row of a file, for the downstream transaction builder."""

    columns: list[str]
    dataframe: Any
    detected_encoding: Optional[str] = None
    detected_delimiter: Optional[str] = None
    has_header: Optional[bool] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def records(self) -> list[dict[str, str]]:
        return self.dataframe.to_dict(orient="records")
