"""
dialect.py — delimiter and header-row inference for delimited text.

Header detection is a vote: each signal below is an independent boolean
predicate over (first row, second row) and the file is judged to have a
header when at least ``header_vote_threshold`` of them hold. No single
signal is trusted on its own.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional

from sheet_mapper.config import DEFAULT_CONFIG, ParserConfig
from sheet_mapper.tokenizer import ALIGNED_DELIMITER, QUOTE, SPACE_RUN_RE

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","

HEADER_KEYWORDS = (
    "name", "email", "phone", "date", "amount", "id", "address", "city",
    "state", "zip", "country", "transaction", "description", "category",
    "account", "balance", "currency", "type", "status",
)

INTEGER_RE = re.compile(r"^\d+$")
DECIMAL_RE = re.compile(r"^\d+\.\d+$")
CONTACT_MARKERS = ("@", "http", "www.", ".com", ".org", ".net")


def detect_delimiter(first_row: str) -> str:
    """Pick the candidate occurring most often in the first row; ties go to ','."""
    best = DEFAULT_DELIMITER
    best_count = 0
    for candidate in CANDIDATE_DELIMITERS:
        count = first_row.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def detect_text_delimiter(first_row: str) -> str:
    """
    Delimiter for a .txt file.

    A candidate character in the first row wins as for .csv. Without one,
    a row containing runs of two or more spaces is read as space-aligned.
    """
    if any(candidate in first_row for candidate in CANDIDATE_DELIMITERS):
        return detect_delimiter(first_row)
    if SPACE_RUN_RE.search(first_row.strip()):
        return ALIGNED_DELIMITER
    return DEFAULT_DELIMITER


def is_numeric_cell(cell: str) -> bool:
    text = cell.strip()
    return bool(INTEGER_RE.match(text) or DECIMAL_RE.match(text))


def text_ratio(cells: Sequence[str]) -> float:
    """Fraction of non-empty cells that are not purely numeric."""
    non_empty = [cell.strip() for cell in cells if cell.strip()]
    if not non_empty:
        return 0.0
    return sum(1 for cell in non_empty if not is_numeric_cell(cell)) / len(non_empty)


def _non_empty_count(cells: Sequence[str]) -> int:
    return sum(1 for cell in cells if cell.strip())


# ── Header signals ────────────────────────────────────────────────────────────

def has_header_keyword(first: Sequence[str], second: Sequence[str], config: ParserConfig) -> bool:
    return any(
        keyword in cell.strip().lower()
        for cell in first
        for keyword in HEADER_KEYWORDS
    )


def is_more_textual(first: Sequence[str], second: Sequence[str], config: ParserConfig) -> bool:
    return text_ratio(first) > text_ratio(second)


def is_at_least_as_full(first: Sequence[str], second: Sequence[str], config: ParserConfig) -> bool:
    return _non_empty_count(first) >= _non_empty_count(second)


def has_short_cells(first: Sequence[str], second: Sequence[str], config: ParserConfig) -> bool:
    return all(
        len(cell.strip()) <= config.header_max_cell_length and not INTEGER_RE.match(cell.strip())
        for cell in first
    )


def looks_descriptive(first: Sequence[str], second: Sequence[str], config: ParserConfig) -> bool:
    for cell in first:
        text = cell.strip()
        if not text or len(text) > config.header_descriptive_max_length:
            return False
        if is_numeric_cell(text):
            return False
        if any(marker in text.lower() for marker in CONTACT_MARKERS):
            return False
    return True


HeaderSignal = Callable[[Sequence[str], Sequence[str], ParserConfig], bool]

HEADER_SIGNALS: tuple[tuple[str, HeaderSignal], ...] = (
    ("keyword_match", has_header_keyword),
    ("more_textual", is_more_textual),
    ("at_least_as_full", is_at_least_as_full),
    ("short_cells", has_short_cells),
    ("descriptive_cells", looks_descriptive),
)


@dataclass(frozen=True)
class HeaderVote:
    signals: dict[str, bool]
    threshold: int

    @property
    def votes(self) -> int:
        return sum(1 for value in self.signals.values() if value)

    @property
    def has_header(self) -> bool:
        return self.votes >= self.threshold


def header_vote(
    first: Sequence[str],
    second: Optional[Sequence[str]] = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> HeaderVote:
    """
    Evaluate every header signal for ``first`` against ``second``.

    A single-row file is compared against an empty row, so a lone row of
    header-looking labels still counts as a header with no data beneath it.
    """
    other = list(second) if second is not None else []
    signals = {name: signal(first, other, config) for name, signal in HEADER_SIGNALS}
    return HeaderVote(signals=signals, threshold=config.header_vote_threshold)


def detect_header(rows: Sequence[Sequence[str]], config: ParserConfig = DEFAULT_CONFIG) -> bool:
    if not rows:
        return False
    second = rows[1] if len(rows) > 1 else None
    return header_vote(rows[0], second, config).has_header


def default_headers(column_count: int) -> list[str]:
    return [f"Column_{index}" for index in range(1, column_count + 1)]


def detect_quoted_fields(raw_rows: Sequence[str], config: ParserConfig = DEFAULT_CONFIG) -> bool:
    return any(QUOTE in row for row in raw_rows[: config.quoted_field_scan_rows])
