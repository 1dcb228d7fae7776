"""
editor.py — one template's combination list while it is being edited.

The editor owns the authoritative list. Editing a combination happens on a
detached draft; the draft only reaches the list through complete(), which
returns an EditResult, and cancel() leaves the list untouched.

Deleted ids are remembered in a suppression set until the outer document
confirms the removal, so a refresh from a stale copy of the document cannot
bring a just-deleted combination back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from sheet_mapper.combination import FieldCombination

logger = logging.getLogger(__name__)

COMPLETED = "completed"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class EditResult:
    status: str
    combination: Optional[FieldCombination] = None

    @property
    def completed(self) -> bool:
        return self.status == COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == CANCELLED


class CombinationEditor:
    def __init__(self, combinations: Iterable[FieldCombination] = ()):
        self._combinations: list[FieldCombination] = [item.copy() for item in combinations]
        self._suppressed: set[str] = set()
        self._draft: Optional[FieldCombination] = None

    @property
    def combinations(self) -> list[FieldCombination]:
        return [item.copy() for item in self._combinations]

    @property
    def suppressed_ids(self) -> frozenset[str]:
        return frozenset(self._suppressed)

    @property
    def draft(self) -> Optional[FieldCombination]:
        return self._draft

    def get(self, combination_id: str) -> FieldCombination:
        for item in self._combinations:
            if item.id == combination_id:
                return item.copy()
        raise KeyError(combination_id)

    # ── Drafts ───────────────────────────────────────────────────────────────

    def begin_new(self, available_fields: Sequence[str] = ()) -> FieldCombination:
        """Open a draft for a new combination, seeded with the first available field."""
        self._draft = FieldCombination()
        if available_fields:
            self._draft.add_member(available_fields)
        return self._draft

    def begin_edit(self, combination_id: str) -> FieldCombination:
        self._draft = self.get(combination_id)
        return self._draft

    def complete(self) -> EditResult:
        """
        Finalize the open draft into the list.

        Raises:
            CombinationValidationError  the draft stays open and the list is unchanged.
            RuntimeError                no draft is open.
        """
        if self._draft is None:
            raise RuntimeError("No combination is being edited")
        saved = self._draft.finalize()
        for index, item in enumerate(self._combinations):
            if item.id == saved.id:
                self._combinations[index] = saved
                break
        else:
            self._combinations.append(saved)
        self._draft = None
        logger.debug("Saved combination %s -> %s", saved.id, saved.target_field)
        return EditResult(COMPLETED, saved.copy())

    def cancel(self) -> EditResult:
        self._draft = None
        return EditResult(CANCELLED)

    # ── Deletion and sync ────────────────────────────────────────────────────

    def delete(self, combination_id: str) -> None:
        self._combinations = [item for item in self._combinations if item.id != combination_id]
        self._suppressed.add(combination_id)

    def sync(self, outer: Iterable[FieldCombination]) -> list[FieldCombination]:
        """
        Adopt the outer document's combinations, minus any still being deleted.

        A suppressed id that no longer appears in ``outer`` has been removed
        there too, so it is released from the suppression set.
        """
        incoming = list(outer)
        outer_ids = {item.id for item in incoming}
        confirmed = {combination_id for combination_id in self._suppressed if combination_id not in outer_ids}
        self._suppressed -= confirmed
        self._combinations = [item.copy() for item in incoming if item.id not in self._suppressed]
        if self._suppressed:
            logger.debug("Suppressed combinations awaiting removal: %s", sorted(self._suppressed))
        return self.combinations
