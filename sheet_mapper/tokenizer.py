"""
tokenizer.py — RFC 4180 style splitting of decoded text into rows and cells.

Two passes, both quote-aware:
    split_logical_rows(text)      → list of raw logical rows
    split_cells(row, delimiter)   → list of trimmed cell strings

A quote toggles the "inside quotes" state. Inside quotes a line break or a
delimiter is literal, and a doubled quote ("") stands for one quote
character without toggling state.
"""

from __future__ import annotations

import re

QUOTE = '"'
# Stands for "a run of two or more spaces" in fixed-width text exports.
ALIGNED_DELIMITER = "  "
SPACE_RUN_RE = re.compile(r" {2,}")


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_logical_rows(text: str) -> list[str]:
    """
    Split text into logical rows, keeping quoted line breaks inside a row.

    Quote characters are kept in the returned rows (doubled quotes stay
    doubled) so split_cells() can unescape them. A final row without a
    terminating newline is still returned. Expects normalized line endings.
    """
    rows: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and text[i + 1] == QUOTE:
                current.append(QUOTE * 2)
                i += 2
                continue
            in_quotes = not in_quotes
            current.append(char)
        elif char == "\n" and not in_quotes:
            rows.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    if current:
        rows.append("".join(current))
    return rows


def split_cells(row: str, delimiter: str) -> list[str]:
    """Split one logical row into trimmed cells, unescaping doubled quotes."""
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(row)

    while i < length:
        char = row[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and row[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    cells.append("".join(current).strip())
    return cells


def split_aligned(row: str) -> list[str]:
    """Split a space-aligned row on runs of two or more spaces."""
    return [cell.strip() for cell in SPACE_RUN_RE.split(row.strip())]


def split_row(row: str, delimiter: str) -> list[str]:
    if delimiter == ALIGNED_DELIMITER:
        return split_aligned(row)
    return split_cells(row, delimiter)


def logical_rows(text: str) -> list[str]:
    """Normalize line endings and return the non-blank logical rows."""
    return [row for row in split_logical_rows(normalize_line_endings(text)) if row.strip()]


def tokenize(text: str, delimiter: str) -> list[list[str]]:
    """Full pass: decoded text → rows of cells, blank rows dropped."""
    return [split_row(row, delimiter) for row in logical_rows(text)]
