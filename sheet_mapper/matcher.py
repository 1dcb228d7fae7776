"""Suggest the stored template whose expected columns best cover a file's columns."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from sheet_mapper.config import DEFAULT_MIN_CONFIDENCE
from sheet_mapper.templates import ImportTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateSuggestion:
    template_id: str
    confidence: int

    def to_dict(self) -> dict[str, object]:
        return {"templateId": self.template_id, "confidence": self.confidence}


def normalize(name: str) -> str:
    return name.strip().lower()


def columns_match(expected: str, detected: str) -> bool:
    return expected == detected or expected in detected or detected in expected


def score_template(detected_columns: Sequence[str], expected_fields: Sequence[str]) -> Optional[float]:
    """
    Share of ``expected_fields`` matched by some detected column.

    Returns None when the template expects nothing and so cannot be scored.
    Blank names on either side are ignored.
    """
    # An empty name would be a substring of every name on the other side.
    expected = [name for name in (normalize(field) for field in expected_fields) if name]
    if not expected:
        return None
    detected = [name for name in (normalize(column) for column in detected_columns) if name]
    matched = sum(1 for name in expected if any(columns_match(name, column) for column in detected))
    return matched / len(expected)


def suggest_template(
    detected_columns: Sequence[str],
    templates: Sequence[ImportTemplate],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> Optional[TemplateSuggestion]:
    if not detected_columns or not templates:
        return None

    best: Optional[ImportTemplate] = None
    best_score = 0.0
    for template in templates:
        score = score_template(detected_columns, template.source_fields)
        if score is None:
            continue
        if score > best_score:
            best, best_score = template, score

    if best is None or best_score < min_confidence:
        logger.debug("No template reached %.2f (best %.2f)", min_confidence, best_score)
        return None
    logger.debug("Suggesting template %s at %.2f", best.id, best_score)
    return TemplateSuggestion(template_id=best.id, confidence=math.floor(best_score * 100 + 0.5))
