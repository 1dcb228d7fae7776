"""
parser.py — file bytes in, ParseOutcome out.

Public API:
    outcome = parse_bytes(content, "statement.csv")
    outcome = parse_path("path/to/statement.json", ParseOptions(max_rows=500))
    table   = load_table(content, "statement.csv")

Dispatch by extension:
    .csv .txt → delimited path (tokenizer + dialect detection)
    .json     → hierarchical path (record-array discovery)

Input problems never escape as exceptions from parse_bytes(); they come
back as a failed ParseOutcome with a readable error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

import pandas as pd

from sheet_mapper.config import (
    DEFAULT_CONFIG,
    DELIMITED_EXTENSIONS,
    HIERARCHICAL_EXTENSIONS,
    SUPPORTED_EXTENSIONS,
    TEXT_EXTENSIONS,
    ParseOptions,
    ParserConfig,
)
from sheet_mapper.decoder import DecodedText, DecodeError, decode_bytes
from sheet_mapper.dialect import (
    default_headers,
    detect_delimiter,
    detect_quoted_fields,
    detect_text_delimiter,
    header_vote,
)
from sheet_mapper.hierarchy import collect_keys, record_cells, select_records
from sheet_mapper.models import DetectedField, ParseOutcome, TableData
from sheet_mapper.schema import infer_fields
from sheet_mapper.tokenizer import logical_rows, split_row

logger = logging.getLogger(__name__)


class ParseFailure(ValueError):
    """An input problem that turns into a failed ParseOutcome."""


class UnsupportedFileType(ValueError):
    pass


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def _check_extension(filename: str) -> str:
    suffix = file_extension(filename)
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType(f"Unsupported file type: {suffix.lstrip('.') or '[missing extension]'}")
    return suffix


def _resolve_delimiter(first_row: str, options: ParseOptions, text_file: bool) -> str:
    if options.delimiter:
        return options.delimiter
    return detect_text_delimiter(first_row) if text_file else detect_delimiter(first_row)


def _column_names(headers: Sequence[str]) -> list[str]:
    return [header.strip() or f"Column_{index}" for index, header in enumerate(headers, start=1)]


def build_warnings(
    fields: Sequence[DetectedField],
    sampled_rows: int,
    row_count: int,
    config: ParserConfig,
    *,
    header_was_detected: bool = False,
    skipped_rows: int = 0,
    column_count: int = 0,
) -> list[str]:
    warnings: list[str] = []

    low_confidence = [
        detected.name
        for detected in fields
        if detected.sample_value and detected.confidence < config.low_confidence_threshold
    ]
    if low_confidence:
        warnings.append(f"Low confidence in data type detection for: {', '.join(low_confidence)}")

    if sampled_rows < row_count:
        warnings.append(
            f"Analysis based on {sampled_rows} sample rows of {row_count}. "
            "Full file may contain different data patterns."
        )

    if skipped_rows:
        warnings.append(
            f"{skipped_rows} rows skipped because their column count does not match "
            f"the header ({column_count} columns)."
        )

    empty = [detected.name for detected in fields if not detected.sample_value]
    if empty:
        warnings.append(f"No sample data found for: {', '.join(empty)}")

    if header_was_detected:
        warnings.append("Header row detection was automatic. Verify this is correct for your file.")

    return warnings


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITED TEXT
# ══════════════════════════════════════════════════════════════════════════════

def parse_delimited(
    text: str,
    options: Optional[ParseOptions] = None,
    config: ParserConfig = DEFAULT_CONFIG,
    *,
    encoding: Optional[str] = None,
    has_bom: bool = False,
    text_file: bool = False,
) -> ParseOutcome:
    """
    Parse delimited text. With ``text_file`` set, a first row without any
    candidate delimiter but with runs of spaces is read as space-aligned.
    """
    options = options or ParseOptions()
    raw_rows = logical_rows(text)
    if not raw_rows:
        raise ParseFailure("File is empty")

    delimiter = _resolve_delimiter(raw_rows[0], options, text_file)
    first = split_row(raw_rows[0], delimiter)

    header_was_detected = options.has_header is None
    if header_was_detected:
        second = split_row(raw_rows[1], delimiter) if len(raw_rows) > 1 else None
        vote = header_vote(first, second, config)
        has_header = vote.has_header
        logger.debug("Header vote %d/%d: %s", vote.votes, len(vote.signals), vote.signals)
    else:
        has_header = bool(options.has_header)

    headers = _column_names(first) if has_header else default_headers(len(first))
    if not headers:
        raise ParseFailure("No valid columns found in delimited file")

    data_rows = raw_rows[1:] if has_header else raw_rows
    sample_rows: list[list[str]] = []
    skipped = 0
    for raw in data_rows[: options.max_rows]:
        cells = split_row(raw, delimiter)
        if len(cells) == len(headers):
            sample_rows.append(cells)
        else:
            skipped += 1

    fields = infer_fields(headers, sample_rows, config)
    preview = [tuple(row) for row in sample_rows[: options.max_preview_rows]]
    if has_header:
        preview.insert(0, tuple(headers))

    logger.debug("Delimited parse: delimiter=%r header=%s rows=%d", delimiter, has_header, len(data_rows))
    return ParseOutcome(
        success=True,
        fields=tuple(fields),
        row_count=len(data_rows),
        preview_rows=tuple(preview),
        warnings=tuple(
            build_warnings(
                fields,
                len(sample_rows),
                len(data_rows),
                config,
                header_was_detected=header_was_detected,
                skipped_rows=skipped,
                column_count=len(headers),
            )
        ),
        detected_encoding=encoding,
        detected_delimiter=delimiter,
        has_header=has_header,
        has_quoted_fields=detect_quoted_fields(raw_rows, config),
        has_bom=has_bom,
    )


# ══════════════════════════════════════════════════════════════════════════════
# JSON
# ══════════════════════════════════════════════════════════════════════════════

JSON_TOO_DEEP = "JSON nesting too deep"


def _load_json_document(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseFailure(f"JSON parsing error: {exc}") from exc
    except RecursionError as exc:
        raise ParseFailure(JSON_TOO_DEEP) from exc


def parse_json(
    text: str,
    options: Optional[ParseOptions] = None,
    config: ParserConfig = DEFAULT_CONFIG,
    *,
    encoding: Optional[str] = None,
    has_bom: bool = False,
) -> ParseOutcome:
    options = options or ParseOptions()
    document = _load_json_document(text)
    if isinstance(document, list) and not document:
        raise ParseFailure("JSON array is empty")

    try:
        records, warnings = select_records(document)
    except RecursionError as exc:
        raise ParseFailure(JSON_TOO_DEEP) from exc
    except ValueError as exc:
        raise ParseFailure(str(exc)) from exc

    sampled = records[: options.max_rows]
    columns = collect_keys(sampled[: config.json_key_sample])
    if not columns:
        raise ParseFailure("No columns found in JSON records")

    try:
        rows = [record_cells(record, columns) for record in sampled]
    except RecursionError as exc:
        raise ParseFailure(JSON_TOO_DEEP) from exc
    fields = infer_fields(columns, rows, config)
    preview = [tuple(columns)] + [tuple(row) for row in rows[: options.max_preview_rows]]
    warnings.extend(build_warnings(fields, len(sampled), len(records), config))

    return ParseOutcome(
        success=True,
        fields=tuple(fields),
        row_count=len(records),
        preview_rows=tuple(preview),
        warnings=tuple(warnings),
        detected_encoding=encoding,
        has_bom=has_bom,
    )


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def parse_bytes(
    content: bytes,
    filename: str,
    options: Optional[ParseOptions] = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> ParseOutcome:
    """
    Parse a whole file buffer into a ParseOutcome.

    Args:
        content:  Raw file bytes (the complete file; nothing is streamed).
        filename: Used only for its extension.
        options:  Per-request overrides; see ParseOptions.
        config:   Heuristic thresholds; see ParserConfig.
    """
    options = options or ParseOptions()
    decoded: Optional[DecodedText] = None
    try:
        suffix = _check_extension(filename)
        if len(content) > config.max_upload_bytes:
            raise ParseFailure(
                f"File size {len(content)} bytes exceeds limit of {config.max_upload_bytes} bytes"
            )
        try:
            decoded = decode_bytes(content, options.encoding, config)
        except DecodeError as exc:
            raise ParseFailure(f"Failed to decode file: {exc}") from exc

        if suffix in HIERARCHICAL_EXTENSIONS:
            return parse_json(decoded.text, options, config, encoding=decoded.encoding, has_bom=decoded.has_bom)
        return parse_delimited(
            decoded.text,
            options,
            config,
            encoding=decoded.encoding,
            has_bom=decoded.has_bom,
            text_file=suffix in TEXT_EXTENSIONS,
        )
    except ValueError as exc:
        logger.warning("Parse failed for %s: %s", filename, exc)
        return ParseOutcome.failure(
            str(exc),
            detected_encoding=decoded.encoding if decoded else None,
            has_bom=decoded.has_bom if decoded else False,
        )


def parse_path(
    path: "str | Path",
    options: Optional[ParseOptions] = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> ParseOutcome:
    """
    Read a file from disk and parse it.

    Raises:
        FileNotFoundError  if the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return parse_bytes(path.read_bytes(), path.name, options, config)


def _frame(columns: list[str], rows: list[list[str]]) -> pd.DataFrame:
    width = len(columns)
    padded = [(row + [""] * width)[:width] for row in rows]
    return pd.DataFrame(padded, columns=columns, dtype=str)


def load_table(
    content: bytes,
    filename: str,
    options: Optional[ParseOptions] = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> TableData:
    """
    Every column and row of a file, for code that applies a template.

    Unlike parse_bytes() this reads all rows, pads or truncates rows to the
    header width, and raises on unsupported extensions or undecodable bytes.
    Unreadable JSON gives an empty table.
    """
    options = options or ParseOptions()
    suffix = _check_extension(filename)
    decoded = decode_bytes(content, options.encoding, config)

    if suffix in DELIMITED_EXTENSIONS:
        raw_rows = logical_rows(decoded.text)
        if not raw_rows:
            return TableData(columns=[], dataframe=pd.DataFrame(), detected_encoding=decoded.encoding)
        delimiter = _resolve_delimiter(raw_rows[0], options, suffix in TEXT_EXTENSIONS)
        rows = [split_row(raw, delimiter) for raw in raw_rows]
        if options.has_header is None:
            has_header = header_vote(rows[0], rows[1] if len(rows) > 1 else None, config).has_header
        else:
            has_header = bool(options.has_header)
        columns = _column_names(rows[0]) if has_header else default_headers(len(rows[0]))
        body = rows[1:] if has_header else rows
        return TableData(
            columns=columns,
            dataframe=_frame(columns, body),
            detected_encoding=decoded.encoding,
            detected_delimiter=delimiter,
            has_header=has_header,
        )

    try:
        document = _load_json_document(decoded.text)
        records, warnings = select_records(document)
        columns = collect_keys(records)
        rows = [record_cells(record, columns) for record in records]
    except RecursionError:
        logger.warning("Could not read JSON table from %s: %s", filename, JSON_TOO_DEEP)
        return TableData(columns=[], dataframe=pd.DataFrame(), detected_encoding=decoded.encoding)
    except ValueError as exc:
        logger.warning("Could not read JSON table from %s: %s", filename, exc)
        return TableData(columns=[], dataframe=pd.DataFrame(), detected_encoding=decoded.encoding)

    return TableData(
        columns=columns,
        dataframe=_frame(columns, rows),
        detected_encoding=decoded.encoding,
        warnings=warnings,
    )
