"""Answer record model.

An AnswerStore maps identity keys to grading outcomes for one
(student, book) assessment. Keys were valid when written but may be stale
against the current Collection; reconciliation handles that.

Wire format (JSON):
    {"3_1": {"status": "CORRECT", "concept": "...", "updatedAt": "...",
             "errorPattern": "..."}}

Legacy entries stored as a bare status string ("WRONG") and snake_case
field names (updated_at, error_pattern) are accepted on input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class AnswerStatus(str, Enum):
    """Grading outcome of one answer."""

    CORRECT = "CORRECT"
    WRONG = "WRONG"


@dataclass(frozen=True)
class AnswerRecord:
    """One historical grading outcome. Immutable once written."""

    status: AnswerStatus
    updated_at: str = ""
    concept: str | None = None
    error_pattern: str | None = None

    @property
    def is_correct(self) -> bool:
        return self.status is AnswerStatus.CORRECT

    @property
    def graded_on(self) -> str:
        """Date part (YYYY-MM-DD) of updated_at, or "" when unknown."""
        return self.updated_at.split("T")[0] if self.updated_at else ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"status": self.status.value}
        if self.concept is not None:
            result["concept"] = self.concept
        if self.updated_at:
            result["updatedAt"] = self.updated_at
        if self.error_pattern is not None:
            result["errorPattern"] = self.error_pattern
        return result

    @classmethod
    def from_wire(cls, entry: Any) -> AnswerRecord | None:
        """Normalize a stored entry.

        Returns:
            AnswerRecord, or None if the entry has no gradable status
        """
        if isinstance(entry, str):
            entry = {"status": entry}
        if not isinstance(entry, dict):
            return None

        try:
            status = AnswerStatus(entry.get("status"))
        except ValueError:
            return None

        return cls(
            status=status,
            updated_at=entry.get("updatedAt") or entry.get("updated_at") or "",
            concept=entry.get("concept") or None,
            error_pattern=entry.get("errorPattern", entry.get("error_pattern")),
        )


AnswerStore = dict[str, AnswerRecord]


def load_answer_store(raw: dict[str, Any]) -> AnswerStore:
    """Normalize a raw AnswerStore mapping.

    Entries without a CORRECT/WRONG status are skipped, never raised.
    """
    store: AnswerStore = {}
    for key, entry in raw.items():
        record = AnswerRecord.from_wire(entry)
        if record is None:
            logger.info("answer_entry_skipped", key=key, entry=entry)
            continue
        store[str(key)] = record
    return store


def dump_answer_store(store: AnswerStore) -> dict[str, dict[str, Any]]:
    """Convert an AnswerStore to its wire form, keys sorted."""
    return {key: store[key].to_dict() for key in sorted(store)}
