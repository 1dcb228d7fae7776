"""
combination.py — merge several source columns into one target field.

A FieldCombination is edited in place (add, remove, move, rename members)
and only becomes persistable through finalize(), which validates it and
assigns an id when it has none.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

COMBINATION_ID_PREFIX = "field_combination_"


class Delimiter(str, Enum):
    SPACE = "Space"
    COMMA = "Comma"
    SEMICOLON = "Semicolon"
    CUSTOM = "Custom"


DELIMITER_SYMBOLS = {
    Delimiter.SPACE: " ",
    Delimiter.COMMA: ", ",
    Delimiter.SEMICOLON: "; ",
}


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    rule: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "rule": self.rule, "message": self.message}


class CombinationValidationError(ValueError):
    def __init__(self, issue: ValidationIssue):
        super().__init__(issue.message)
        self.issue = issue


def new_member_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class SourceField:
    id: str
    field_name: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "fieldName": self.field_name, "order": self.order}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceField":
        return cls(id=str(data["id"]), field_name=str(data["fieldName"]), order=int(data["order"]))


@dataclass
class FieldCombination:
    target_field: str = ""
    delimiter: Delimiter = Delimiter.SPACE
    custom_delimiter: Optional[str] = None
    source_fields: list[SourceField] = field(default_factory=list)
    id: Optional[str] = None

    # ── Member editing ───────────────────────────────────────────────────────

    def ordered_members(self) -> list[SourceField]:
        return sorted(self.source_fields, key=lambda member: member.order)

    def member(self, member_id: str) -> Optional[SourceField]:
        for candidate in self.source_fields:
            if candidate.id == member_id:
                return candidate
        return None

    def add_member(self, available_fields: Sequence[str]) -> SourceField:
        """Append the first available field not already used; fall back to the first one."""
        used = {member.field_name for member in self.source_fields}
        field_name = next((name for name in available_fields if name not in used), None)
        if field_name is None:
            field_name = available_fields[0] if available_fields else ""
        added = SourceField(id=new_member_id(), field_name=field_name, order=len(self.source_fields) + 1)
        self.source_fields.append(added)
        return added

    def remove_member(self, member_id: str) -> None:
        remaining = [member for member in self.ordered_members() if member.id != member_id]
        for position, member in enumerate(remaining, start=1):
            member.order = position
        self.source_fields = remaining

    def move_member(self, member_id: str, direction: str) -> bool:
        """Swap with the neighbour above or below. Returns False for a no-op."""
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        moving = self.member(member_id)
        if moving is None:
            return False
        target_order = moving.order - 1 if direction == "up" else moving.order + 1
        if target_order < 1 or target_order > len(self.source_fields):
            return False
        neighbour = next((m for m in self.source_fields if m.order == target_order), None)
        if neighbour is None:
            return False
        moving.order, neighbour.order = neighbour.order, moving.order
        return True

    def rename_member(self, member_id: str, field_name: str) -> None:
        target = self.member(member_id)
        if target is None:
            raise KeyError(member_id)
        target.field_name = field_name

    # ── Rendering ────────────────────────────────────────────────────────────

    @property
    def resolved_delimiter(self) -> str:
        if self.delimiter is Delimiter.CUSTOM:
            return self.custom_delimiter or ""
        return DELIMITER_SYMBOLS.get(self.delimiter, " ")

    @property
    def member_names(self) -> list[str]:
        return [member.field_name for member in self.ordered_members()]

    def preview(self) -> str:
        """Member names joined in order, standing in for real sample values."""
        return self.resolved_delimiter.join(self.member_names)

    def combine(self, row: Mapping[str, Any]) -> str:
        """Join this row's member values; missing and empty values are left out."""
        values = []
        for name in self.member_names:
            value = row.get(name)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                values.append(text)
        return self.resolved_delimiter.join(values)

    # ── Save ─────────────────────────────────────────────────────────────────

    def validation_issue(self) -> Optional[ValidationIssue]:
        if not self.target_field.strip():
            return ValidationIssue("targetField", "required", "Target field is required")
        if len(self.source_fields) < 2:
            return ValidationIssue(
                "sourceFields", "min_members", "A combination requires at least 2 source fields"
            )
        if self.delimiter is Delimiter.CUSTOM and not (self.custom_delimiter or "").strip():
            return ValidationIssue("customDelimiter", "required", "Custom delimiter cannot be empty")
        return None

    def is_valid(self) -> bool:
        return self.validation_issue() is None

    def finalize(self) -> "FieldCombination":
        """
        Validate and produce the persistable combination.

        Raises:
            CombinationValidationError  naming the first failing rule; the
                                        combination keeps whatever id it had.
        """
        issue = self.validation_issue()
        if issue is not None:
            raise CombinationValidationError(issue)
        return FieldCombination(
            id=self.id or f"{COMBINATION_ID_PREFIX}{uuid.uuid4().hex}",
            target_field=self.target_field,
            delimiter=self.delimiter,
            custom_delimiter=self.custom_delimiter if self.delimiter is Delimiter.CUSTOM else None,
            source_fields=[
                SourceField(id=member.id, field_name=member.field_name, order=member.order)
                for member in self.ordered_members()
            ],
        )

    def copy(self) -> "FieldCombination":
        return FieldCombination.from_dict(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "targetField": self.target_field,
            "delimiter": self.delimiter.value,
            "customDelimiter": self.custom_delimiter,
            "sourceFields": [member.to_dict() for member in self.source_fields],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldCombination":
        return cls(
            id=data.get("id"),
            target_field=str(data.get("targetField") or ""),
            delimiter=Delimiter(data.get("delimiter") or Delimiter.SPACE.value),
            custom_delimiter=data.get("customDelimiter"),
            source_fields=[SourceField.from_dict(item) for item in data.get("sourceFields") or []],
        )
