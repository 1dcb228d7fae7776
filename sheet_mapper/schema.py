"""
schema.py — per-column data type inference with confidence scores.

Boolean, Currency and Number are committed only when every sampled value
matches. Date is committed when any sampled value matches one of the
literal date patterns. Everything else is Text.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence

import pandas as pd

from sheet_mapper.config import DEFAULT_CONFIG, ParserConfig
from sheet_mapper.models import DataType, DetectedField

BOOLEAN_RE = re.compile(r"^(true|false|yes|no|y|n|1|0)$", re.IGNORECASE)
CURRENCY_SYMBOLS = "$€£¥"
CURRENCY_RE = re.compile(r"^[$€£¥]?\d[\d,]*(?:\.\d*)?$")
NUMBER_RE = re.compile(r"^-?\d+(?:\.\d*)?$")
WHITESPACE_RE = re.compile(r"\s+")

DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),          # YYYY-MM-DD
    re.compile(r"^\d{2}/\d{2}/\d{4}$"),          # MM/DD/YYYY
    re.compile(r"^\d{2}-\d{2}-\d{4}$"),          # MM-DD-YYYY
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),    # M/D/YY
)


def is_boolean(value: str) -> bool:
    return bool(BOOLEAN_RE.match(value.strip()))


def is_currency_amount(value: str) -> bool:
    return bool(CURRENCY_RE.match(WHITESPACE_RE.sub("", value)))


def has_currency_symbol(value: str) -> bool:
    text = value.strip()
    return bool(text) and text[0] in CURRENCY_SYMBOLS


def is_number(value: str) -> bool:
    compact = WHITESPACE_RE.sub("", value).replace(",", "")
    return bool(NUMBER_RE.match(compact))


def is_date(value: str) -> bool:
    text = value.strip()
    return any(pattern.match(text) for pattern in DATE_PATTERNS)


VALIDATORS: dict[DataType, Callable[[str], bool]] = {
    DataType.BOOLEAN: is_boolean,
    DataType.CURRENCY: is_currency_amount,
    DataType.NUMBER: is_number,
    DataType.DATE: is_date,
}


def non_empty(values: Iterable[str]) -> list[str]:
    return [value.strip() for value in values if value and value.strip()]


def detect_data_type(values: Sequence[str]) -> DataType:
    """Pick the most specific type the whole sample supports."""
    sample = non_empty(values)
    if not sample:
        return DataType.TEXT

    if all(is_boolean(value) for value in sample):
        return DataType.BOOLEAN
    # A bare integer column would satisfy the amount pattern too, so at least
    # one value has to carry a symbol before the column counts as money.
    if all(is_currency_amount(value) for value in sample) and any(
        has_currency_symbol(value) for value in sample
    ):
        return DataType.CURRENCY
    if all(is_number(value) for value in sample):
        return DataType.NUMBER
    if any(is_date(value) for value in sample):
        return DataType.DATE
    return DataType.TEXT


def type_confidence(values: Sequence[str], data_type: DataType) -> float:
    """Share of non-empty values that individually satisfy ``data_type``."""
    sample = non_empty(values)
    if not sample:
        return 0.0
    if data_type is DataType.TEXT:
        return 1.0
    validator = VALIDATORS[data_type]
    return sum(1 for value in sample if validator(value)) / len(sample)


def sample_column(values: Iterable[str], config: ParserConfig = DEFAULT_CONFIG) -> list[str]:
    """Up to ``config.sample_size`` non-empty values, in row order."""
    sample: list[str] = []
    for value in values:
        if value and value.strip():
            sample.append(value.strip())
            if len(sample) >= config.sample_size:
                break
    return sample


def infer_field(
    name: str,
    values: Iterable[str],
    config: ParserConfig = DEFAULT_CONFIG,
) -> DetectedField:
    sample = sample_column(values, config)
    data_type = detect_data_type(sample)
    return DetectedField(
        name=name,
        data_type=data_type,
        sample_value=sample[0] if sample else "",
        confidence=type_confidence(sample, data_type),
    )


def infer_fields(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    config: ParserConfig = DEFAULT_CONFIG,
) -> list[DetectedField]:
    """One DetectedField per header, ordered by column position."""
    fields: list[DetectedField] = []
    for index, header in enumerate(headers):
        column = (row[index] if index < len(row) else "" for row in rows)
        name = header.strip() or f"Column_{index + 1}"
        fields.append(infer_field(name, column, config))
    return fields


def analyse_dataframe(df: pd.DataFrame, config: ParserConfig = DEFAULT_CONFIG) -> list[DetectedField]:
    """Infer fields for a string DataFrame such as TableData.dataframe."""
    fields: list[DetectedField] = []
    for column in df.columns:
        series = df[column].fillna("").astype(str)
        fields.append(infer_field(str(column), series.tolist(), config))
    return fields
