"""Fixtures for F3 tests - Answer Matching."""

import pytest

from questionbank.core.answers import AnswerRecord, AnswerStatus
from questionbank.core.collection import Collection, Item


@pytest.fixture
def correct():
    """Factory for CORRECT records."""

    def _make(updated_at: str = "2024-03-01T10:00:00Z", concept: str | None = None):
        return AnswerRecord(status=AnswerStatus.CORRECT, updated_at=updated_at, concept=concept)

    return _make


@pytest.fixture
def wrong():
    """Factory for WRONG records."""

    def _make(updated_at: str = "2024-03-01T10:00:00Z", concept: str | None = None):
        return AnswerRecord(status=AnswerStatus.WRONG, updated_at=updated_at, concept=concept)

    return _make


@pytest.fixture
def renumbered_book() -> Collection:
    """Book whose page 5 was renumbered to 6 after grading."""
    return Collection(
        items=[
            Item(page=1, label="1", concept="Articles"),
            Item(page=1, label="2", concept="Articles"),
            Item(page=6, label="3", concept="Gerunds"),
            Item(page=6, label="4", concept="Infinitives"),
        ],
        topics={6: "Verb patterns"},
    )
