"""Fixtures for F1 tests - Identity, Collection and Collisions."""

import pytest

from questionbank.core.collection import Collection, Item


def build_collection(*pairs: tuple[int, str], topics: dict[int, str] | None = None) -> Collection:
    """Collection with one item per (page, label) pair, in the given order."""
    return Collection(
        items=[
            Item(page=page, label=label, question=f"Question {page}-{label}")
            for page, label in pairs
        ],
        topics=dict(topics or {}),
    )


@pytest.fixture
def two_item_page() -> Collection:
    """Page 1 with labels "1" and "2"."""
    return build_collection((1, "1"), (1, "2"))


@pytest.fixture
def two_pages() -> Collection:
    """Page 3 with labels 1-3, page 4 with labels 1-2."""
    return build_collection(
        (3, "1"),
        (3, "2"),
        (3, "3"),
        (4, "1"),
        (4, "2"),
        topics={3: "Present perfect", 4: "Past simple"},
    )


@pytest.fixture
def page_documents() -> list[dict]:
    """Stored page documents as the persistence layer returns them."""
    return [
        {
            "page": 2,
            "topic": "Relative clauses",
            "items": [
                {
                    "question_number": 1,
                    "question": "Choose who or which.",
                    "answer": "which",
                    "type": "GRAMMAR",
                    "concept": "Relative pronouns",
                    "difficulty": "easy",
                },
                {
                    "label": "2",
                    "question": "Join the sentences.",
                    "answer": "The man who called is here.",
                    "topic": "Defining clauses",
                },
            ],
        },
        {
            "page": 1,
            "items": [
                {"label": "1", "question": "Warm-up", "answer": "a"},
            ],
        },
    ]


@pytest.fixture
def make_collection():
    """Factory for collections built from (page, label) pairs."""
    return build_collection
