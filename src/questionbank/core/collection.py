"""Question item collection model.

Responsibilities:
- Item dataclass with identity derived from (page, label) on demand
- Collection: flat ordered list of items plus page-level topics
- Conversion to and from persisted page documents

Page document structure (JSON):
    {"page": 3, "topic": "Present perfect", "items": [{...}, ...]}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

import structlog

from questionbank.core.identity import compose

logger = structlog.get_logger(__name__)

# Keys mapped to Item attributes; anything else is carried in Item.extra
_KNOWN_KEYS = {
    "page",
    "label",
    "question_number",
    "itemId",
    "question",
    "answer",
    "options",
    "explanation",
    "concept",
    "type",
    "topic",
}

DEFAULT_LABEL = "0"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class CollectionFormatError(Exception):
    """Page document or item dict cannot be turned into an Item."""

    pass


def _parse_page(raw_page: Any) -> int:
    """Validate a page number from a document or item dict."""
    try:
        page = int(raw_page)
    except (TypeError, ValueError):
        raise CollectionFormatError(f"Invalid page: {raw_page!r}") from None
    if page < 1:
        raise CollectionFormatError(f"Page must be positive: {page}")
    return page


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Item:
    """A single question item.

    The identity is never stored: it is recomputed from page and label
    every time it is read, so the two cannot drift apart.
    """

    page: int
    label: str
    question: str = ""
    answer: str = ""
    options: list[str] | None = None
    explanation: str | None = None
    concept: str | None = None
    item_type: str | None = None
    topic: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        """Current "{page}_{label}" identity."""
        return compose(self.page, self.label)

    def moved(self, page: int | None = None, label: str | None = None) -> Item:
        """Copy of this item with page and/or label overridden."""
        return replace(
            self,
            page=self.page if page is None else page,
            label=self.label if label is None else label,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "page": self.page,
            "label": self.label,
            "question": self.question,
            "answer": self.answer,
        }
        if self.options is not None:
            result["options"] = list(self.options)
        if self.explanation is not None:
            result["explanation"] = self.explanation
        if self.concept is not None:
            result["concept"] = self.concept
        if self.item_type is not None:
            result["type"] = self.item_type
        if self.topic is not None:
            result["topic"] = self.topic
        result.update(self.extra)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], page: int | None = None) -> Item:
        """Build an item from its dict form.

        Args:
            data: Item dict; "question_number" is accepted as a legacy
                alias for "label"
            page: Page number from the enclosing page document, used when
                the item dict has none

        Raises:
            CollectionFormatError: If no valid positive page is available
        """
        page_number = _parse_page(data.get("page", page))

        raw_label = data.get("label", data.get("question_number"))
        label = DEFAULT_LABEL if raw_label in (None, "") else str(raw_label)

        options = data.get("options")
        return cls(
            page=page_number,
            label=label,
            question=data.get("question") or "",
            answer=data.get("answer") or "",
            options=list(options) if options is not None else None,
            explanation=data.get("explanation"),
            concept=data.get("concept"),
            item_type=data.get("type"),
            topic=data.get("topic"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


@dataclass
class Collection:
    """Ordered items of one book, grouped into pages by page number.

    Items are kept in a flat list; page grouping is derived. Operations in
    this package never mutate a Collection in place, they return a new one.
    """

    items: list[Item] = field(default_factory=list)
    topics: dict[int, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index: int) -> Item:
        return self.items[index]

    def identities(self) -> list[str]:
        """Identities in collection order."""
        return [item.identity for item in self.items]

    def find_index(self, identity: str, exclude: int | None = None) -> int | None:
        """Index of the first item holding an identity, or None."""
        for index, item in enumerate(self.items):
            if index != exclude and item.identity == identity:
                return index
        return None

    def pages(self) -> list[int]:
        """Distinct page numbers, ascending."""
        return sorted({item.page for item in self.items})

    def items_on_page(self, page: int) -> list[Item]:
        """Items of one page in collection order."""
        return [item for item in self.items if item.page == page]

    def effective_topic(self, item: Item) -> str | None:
        """Item topic, falling back to its page topic."""
        return item.topic or self.topics.get(item.page)

    def duplicate_identities(self) -> list[str]:
        """Identities held by more than one item, in first-seen order.

        Always empty for collections built through this package; useful to
        audit collections loaded from storage.
        """
        seen: set[str] = set()
        duplicates: list[str] = []
        for identity in self.identities():
            if identity in seen and identity not in duplicates:
                duplicates.append(identity)
            seen.add(identity)
        return duplicates

    def with_items(self, items: Iterable[Item]) -> Collection:
        """New collection with the same page topics and different items."""
        return Collection(items=list(items), topics=dict(self.topics))

    def copy(self) -> Collection:
        return self.with_items(self.items)

    # -------------------------------------------------------------------------
    # Page documents
    # -------------------------------------------------------------------------

    def to_pages(self) -> list[dict[str, Any]]:
        """Convert to persisted page documents, sorted by page."""
        documents = []
        for page in self.pages():
            document: dict[str, Any] = {
                "page": page,
                "items": [item.to_dict() for item in self.items_on_page(page)],
            }
            if page in self.topics:
                document["topic"] = self.topics[page]
            documents.append(document)
        return documents

    @classmethod
    def from_pages(cls, documents: Iterable[dict[str, Any]]) -> Collection:
        """Build a collection from page documents.

        Raises:
            CollectionFormatError: If a document lacks a valid page number
        """
        items: list[Item] = []
        topics: dict[int, str] = {}
        for document in documents:
            if "page" not in document:
                raise CollectionFormatError("Page document without 'page'")
            page = _parse_page(document["page"])
            if document.get("topic"):
                topics[page] = document["topic"]
            for raw in document.get("items", []):
                items.append(Item.from_dict({**raw, "page": page}))

        logger.debug("collection_loaded", pages=len({i.page for i in items}), items=len(items))
        return cls(items=items, topics=topics)

    @classmethod
    def from_items(
        cls,
        raw_items: Iterable[dict[str, Any]],
        topics: dict[int, str] | None = None,
    ) -> Collection:
        """Build a collection from a flat list of item dicts."""
        return cls(
            items=[Item.from_dict(raw) for raw in raw_items],
            topics=dict(topics or {}),
        )
