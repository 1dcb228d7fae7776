"""
templates.py — import templates: model, validation, column check, store.

A template maps a file's source columns onto target fields, either one to
one (field_mappings) or several to one (field_combinations).
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from sheet_mapper.combination import FieldCombination, ValidationIssue
from sheet_mapper.contracts import utc_now_iso

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
TEMPLATE_ID_PREFIX = "import_template_"
TEMPLATE_STATUSES = ("Active", "Inactive", "Draft")
NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class TemplateNotFound(KeyError):
    def __init__(self, template_id: str):
        super().__init__(template_id)
        self.template_id = template_id

    def __str__(self) -> str:
        return f"Import template with id {self.template_id} not found"


class TemplateValidationError(ValueError):
    def __init__(self, issues: Sequence[ValidationIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(issue.message for issue in self.issues))


@dataclass
class ImportFieldMapping:
    source_field: str
    target_field: str
    data_type: Optional[str] = None
    required: bool = False
    transform: Optional[str] = None
    validation: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceField": self.source_field,
            "targetField": self.target_field,
            "dataType": self.data_type,
            "required": self.required,
            "transform": self.transform,
            "validation": self.validation,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportFieldMapping":
        return cls(
            source_field=str(data.get("sourceField") or ""),
            target_field=str(data.get("targetField") or ""),
            data_type=data.get("dataType"),
            required=bool(data.get("required", False)),
            transform=data.get("transform"),
            validation=data.get("validation"),
        )


@dataclass
class ImportTemplate:
    name: str
    field_mappings: list[ImportFieldMapping] = field(default_factory=list)
    field_combinations: list[FieldCombination] = field(default_factory=list)
    source_fields: list[str] = field(default_factory=list)
    description: str = ""
    account: str = ""
    account_id: str = ""
    file_type: str = "CSV File"
    status: str = "Active"
    id: str = ""
    created_at: str = ""
    updated_at: str = ""
    schema_version: str = SCHEMA_VERSION
    is_default: bool = False

    @property
    def field_count(self) -> int:
        return len(self.field_mappings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "fieldCount": self.field_count,
            "account": self.account,
            "accountId": self.account_id,
            "fileType": self.file_type,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "schemaVersion": self.schema_version,
            "status": self.status,
            "fieldMappings": [mapping.to_dict() for mapping in self.field_mappings],
            "fieldCombinations": [combination.to_dict() for combination in self.field_combinations],
            "sourceFields": list(self.source_fields),
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportTemplate":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            account=str(data.get("account") or ""),
            account_id=str(data.get("accountId") or ""),
            file_type=str(data.get("fileType") or "CSV File"),
            status=str(data.get("status") or "Active"),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
            schema_version=str(data.get("schemaVersion") or SCHEMA_VERSION),
            is_default=bool(data.get("isDefault", False)),
            field_mappings=[ImportFieldMapping.from_dict(item) for item in data.get("fieldMappings") or []],
            field_combinations=[
                FieldCombination.from_dict(item) for item in data.get("fieldCombinations") or []
            ],
            source_fields=[str(item) for item in data.get("sourceFields") or []],
        )


# ══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════════════════════

def validate_name(name: str) -> list[ValidationIssue]:
    text = (name or "").strip()
    if not text:
        return [ValidationIssue("name", "required", "Template name is required")]
    if len(text) < NAME_MIN_LENGTH:
        return [ValidationIssue("name", "min_length", "Template name must be at least 3 characters long")]
    if len(text) > NAME_MAX_LENGTH:
        return [ValidationIssue("name", "max_length", "Template name must be less than 100 characters")]
    return []


def validate_description(description: str) -> list[ValidationIssue]:
    if description and len(description) > DESCRIPTION_MAX_LENGTH:
        return [ValidationIssue("description", "max_length", "Description must be less than 500 characters")]
    return []


def validate_mappings(mappings: Sequence[ImportFieldMapping]) -> list[ValidationIssue]:
    if not mappings:
        return [ValidationIssue("fieldMappings", "required", "At least one field mapping is required")]

    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    duplicates: list[str] = []
    for mapping in mappings:
        key = mapping.source_field.strip().lower()
        if key and key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)
    if duplicates:
        issues.append(
            ValidationIssue(
                "fieldMappings", "duplicate_source", f"Duplicate source fields found: {', '.join(duplicates)}"
            )
        )

    for position, mapping in enumerate(mappings, start=1):
        if not mapping.source_field.strip():
            issues.append(
                ValidationIssue(
                    f"fieldMappings[{position - 1}].sourceField",
                    "required",
                    f"Source field at position {position} cannot be empty",
                )
            )
        if not mapping.target_field.strip():
            issues.append(
                ValidationIssue(
                    f"fieldMappings[{position - 1}].targetField",
                    "required",
                    f"Target field at position {position} cannot be empty",
                )
            )
    return issues


def validate_exclusivity(
    mappings: Sequence[ImportFieldMapping],
    combinations: Sequence[FieldCombination],
) -> list[ValidationIssue]:
    """
    A source column feeds at most one target.

    Mappings whose target is a combination's target describe that
    combination's members and do not count as independent mappings.
    """
    issues: list[ValidationIssue] = []
    combination_targets = {combination.target_field for combination in combinations}
    independent = {
        mapping.source_field
        for mapping in mappings
        if mapping.source_field and mapping.target_field and mapping.target_field not in combination_targets
    }

    owner: dict[str, str] = {}
    for combination in combinations:
        for name in combination.member_names:
            if name in independent:
                issues.append(
                    ValidationIssue(
                        "fieldCombinations",
                        "exclusive_member",
                        f"Source field {name} is both mapped directly and combined into {combination.target_field}",
                    )
                )
            previous = owner.setdefault(name, combination.target_field)
            if previous != combination.target_field:
                issues.append(
                    ValidationIssue(
                        "fieldCombinations",
                        "exclusive_member",
                        f"Source field {name} is combined into both {previous} and {combination.target_field}",
                    )
                )
    return issues


def validate_combinations(combinations: Sequence[FieldCombination]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for index, combination in enumerate(combinations):
        issue = combination.validation_issue()
        if issue is not None:
            issues.append(ValidationIssue(f"fieldCombinations[{index}].{issue.field}", issue.rule, issue.message))
    return issues


def validate_template(template: ImportTemplate) -> list[ValidationIssue]:
    return [
        *validate_name(template.name),
        *validate_description(template.description),
        *validate_mappings(template.field_mappings),
        *validate_combinations(template.field_combinations),
        *validate_exclusivity(template.field_mappings, template.field_combinations),
    ]


@dataclass(frozen=True)
class TemplateMatch:
    is_match: bool
    missing_columns: tuple[str, ...] = ()


def required_columns(template: ImportTemplate) -> list[str]:
    """Mapped sources (with both ends set) followed by combination members, deduplicated."""
    required: dict[str, None] = {}
    for mapping in template.field_mappings:
        if mapping.source_field and mapping.target_field:
            required.setdefault(mapping.source_field, None)
    for combination in template.field_combinations:
        for member in combination.source_fields:
            required.setdefault(member.field_name, None)
    return list(required)


def check_template_match(
    template: Optional[ImportTemplate],
    file_columns: Optional[Iterable[str]],
) -> TemplateMatch:
    if template is None or file_columns is None:
        return TemplateMatch(is_match=True)
    available = set(file_columns)
    missing = tuple(name for name in required_columns(template) if name not in available)
    return TemplateMatch(is_match=not missing, missing_columns=missing)


# ══════════════════════════════════════════════════════════════════════════════
# STORE
# ══════════════════════════════════════════════════════════════════════════════

def new_template_id() -> str:
    return f"{TEMPLATE_ID_PREFIX}{uuid.uuid4().hex}"


_PROTECTED_FIELDS = {"id", "created_at"}


class InMemoryTemplateStore:
    """Newest-first list of templates; every method returns copies."""

    def __init__(self, templates: Iterable[ImportTemplate] = ()):
        self._templates: list[ImportTemplate] = [copy.deepcopy(item) for item in templates]

    def __len__(self) -> int:
        return len(self._templates)

    def _index(self, template_id: str) -> int:
        for index, item in enumerate(self._templates):
            if item.id == template_id:
                return index
        raise TemplateNotFound(template_id)

    def list(self) -> list[ImportTemplate]:
        return [copy.deepcopy(item) for item in self._templates]

    def get(self, template_id: str) -> ImportTemplate:
        return copy.deepcopy(self._templates[self._index(template_id)])

    def by_account(self, account_id: str) -> list[str]:
        """Names of the templates linked to ``account_id``."""
        if not account_id:
            return []
        return [item.name for item in self._templates if item.account_id == account_id]

    def create(self, template: ImportTemplate) -> ImportTemplate:
        created = copy.deepcopy(template)
        created.name = created.name.strip()
        created.description = created.description.strip()
        created.account = created.account.strip()
        issues = validate_template(created)
        if issues:
            raise TemplateValidationError(issues)

        created.field_combinations = [combination.finalize() for combination in created.field_combinations]

        now = utc_now_iso()
        created.id = new_template_id()
        created.created_at = now
        created.updated_at = now
        created.schema_version = SCHEMA_VERSION
        created.is_default = False
        self._templates.insert(0, created)
        logger.debug("Created template %s (%s)", created.id, created.name)
        return copy.deepcopy(created)

    def update(self, template_id: str, **changes: Any) -> ImportTemplate:
        index = self._index(template_id)
        known = {item.name for item in fields(ImportTemplate)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown template fields: {', '.join(sorted(unknown))}")
        protected = set(changes) & _PROTECTED_FIELDS
        if protected:
            raise TypeError(f"Template fields cannot be updated: {', '.join(sorted(protected))}")

        updated = copy.deepcopy(self._templates[index])
        for key, value in changes.items():
            if key in ("name", "description") and isinstance(value, str):
                value = value.strip()
            setattr(updated, key, copy.deepcopy(value))
        issues = validate_template(updated)
        if issues:
            raise TemplateValidationError(issues)

        updated.field_combinations = [combination.finalize() for combination in updated.field_combinations]
        updated.updated_at = utc_now_iso()
        updated.schema_version = SCHEMA_VERSION
        self._templates[index] = updated
        return copy.deepcopy(updated)

    def delete(self, template_id: str) -> bool:
        del self._templates[self._index(template_id)]
        return True

    def duplicate(self, template_id: str) -> ImportTemplate:
        original = self._templates[self._index(template_id)]
        now = utc_now_iso()
        duplicated = copy.deepcopy(original)
        duplicated.id = new_template_id()
        duplicated.name = f"{original.name} (Copy)"
        duplicated.created_at = now
        duplicated.updated_at = now
        duplicated.schema_version = SCHEMA_VERSION
        duplicated.is_default = False
        self._templates.insert(0, duplicated)
        return copy.deepcopy(duplicated)
