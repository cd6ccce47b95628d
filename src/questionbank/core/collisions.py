"""Identity collision detection and resolution.

Responsibilities:
- Detect identity collisions for a proposed item edit (page/label change)
- Detect label collisions for a whole-page move
- Apply a caller-chosen resolution: rename, overwrite or cancel
- Editor helpers: delete item, delete page, remove duplicate content

Per-edit state machine:
    Proposed -> Applied
    Proposed -> Conflict -> Applied (via rename | via overwrite) | Cancelled
    Conflict -> rename past the suffix bound -> Conflict (rename unavailable)

Nothing here mutates its input; every result carries a new Collection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import structlog

from questionbank.config.app_config import load_app_config
from questionbank.core.collection import Collection, Item
from questionbank.core.identity import compose, suffixed_label

logger = structlog.get_logger(__name__)

# =============================================================================
# TYPES
# =============================================================================

AppliedVia = Literal["direct", "rename", "overwrite"]


class Resolution(str, Enum):
    """Caller decision for a detected collision."""

    RENAME = "rename"
    OVERWRITE = "overwrite"
    CANCEL = "cancel"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class CollisionError(Exception):
    """Edit cannot be applied as requested."""

    pass


class RenameExhaustedError(CollisionError):
    """No free suffix found within the rename attempt limit."""

    def __init__(self, page: int, label: str, attempts: int):
        self.page = page
        self.label = label
        self.attempts = attempts
        super().__init__(
            f"No unique label for '{compose(page, label)}' after {attempts} attempts"
        )


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Applied:
    """Edit applied; carries the resulting collection."""

    collection: Collection
    via: AppliedVia = "direct"
    item_index: int | None = None
    relocated: dict[str, str] = field(default_factory=dict)  # old -> new identity
    removed: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Cancelled:
    """Edit discarded; collection unchanged."""

    collection: Collection


@dataclass(frozen=True)
class Conflict:
    """Proposed item edit collides with another item's identity.

    rename_available is False once the suffix bound is exhausted; only
    overwrite or cancel can settle such a conflict.
    """

    item_index: int
    conflicting_index: int
    conflicting_identity: str
    page: int
    label: str
    rename_available: bool = True

    @property
    def candidate_identity(self) -> str:
        return compose(self.page, self.label)


@dataclass(frozen=True)
class PageConflict:
    """Proposed page move collides with labels on the target page."""

    from_page: int
    to_page: int
    colliding_labels: list[str]
    rename_available: bool = True


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def _max_attempts(max_rename_attempts: int | None) -> int:
    if max_rename_attempts is not None:
        return max_rename_attempts
    return load_app_config().collisions.max_rename_attempts


def unique_label(
    page: int,
    label: str,
    taken: set[str],
    max_rename_attempts: int | None = None,
) -> str:
    """First of label, label(1), label(2), ... whose identity is not taken.

    Args:
        page: Page the label will live on
        label: Base label
        taken: Identities already in use
        max_rename_attempts: Suffix bound (defaults to config)

    Raises:
        RenameExhaustedError: If every candidate up to the bound is taken
    """
    limit = _max_attempts(max_rename_attempts)
    for attempt in range(limit + 1):
        candidate = suffixed_label(label, attempt)
        if compose(page, candidate) not in taken:
            return candidate
    raise RenameExhaustedError(page, label, limit)


def _check_index(collection: Collection, index: int) -> None:
    if not 0 <= index < len(collection):
        raise CollisionError(f"Item index out of range: {index}")


def _check_page(page: int) -> None:
    if page < 1:
        raise CollisionError(f"Page must be positive: {page}")


# =============================================================================
# ITEM EDITS
# =============================================================================


def propose_change(
    collection: Collection,
    item_index: int,
    new_page: int | None = None,
    new_label: str | None = None,
) -> Applied | Conflict:
    """Propose a page and/or label change for one item.

    Args:
        collection: Current collection
        item_index: Index of the item being edited
        new_page: New page, or None to keep the current one
        new_label: New label, or None to keep the current one

    Returns:
        Applied when the candidate identity is free, otherwise a Conflict
        for the caller to resolve

    Raises:
        CollisionError: If item_index or new_page is invalid
    """
    _check_index(collection, item_index)
    if new_page is not None:
        _check_page(new_page)

    item = collection[item_index]
    candidate = item.moved(page=new_page, label=new_label)

    conflicting_index = collection.find_index(candidate.identity, exclude=item_index)
    if conflicting_index is None:
        items = list(collection.items)
        items[item_index] = candidate
        return Applied(
            collection=collection.with_items(items),
            via="direct",
            item_index=item_index,
            relocated=_relocation(item, candidate),
        )

    logger.debug(
        "identity_collision",
        identity=candidate.identity,
        item_index=item_index,
        conflicting_index=conflicting_index,
    )
    return Conflict(
        item_index=item_index,
        conflicting_index=conflicting_index,
        conflicting_identity=candidate.identity,
        page=candidate.page,
        label=candidate.label,
    )


def resolve(
    collection: Collection,
    conflict: Conflict,
    resolution: Resolution | str,
    max_rename_attempts: int | None = None,
) -> Applied | Cancelled | Conflict:
    """Apply a resolution to an item Conflict.

    The conflicting item is looked up again by identity, so a conflict
    that no longer holds is simply applied directly.

    Returns:
        Applied or Cancelled; a Conflict with rename_available=False when
        rename cannot find a free suffix within the bound
    """
    resolution = Resolution(resolution)
    if resolution is Resolution.CANCEL:
        logger.debug("collision_cancelled", identity=conflict.candidate_identity)
        return Cancelled(collection=collection)

    _check_index(collection, conflict.item_index)
    item = collection[conflict.item_index]
    holder = collection.find_index(conflict.candidate_identity, exclude=conflict.item_index)
    if holder is None:
        return propose_change(collection, conflict.item_index, conflict.page, conflict.label)

    if resolution is Resolution.OVERWRITE:
        candidate = item.moved(page=conflict.page, label=conflict.label)
        items = list(collection.items)
        items[conflict.item_index] = candidate
        del items[holder]
        new_index = conflict.item_index - 1 if holder < conflict.item_index else conflict.item_index
        logger.info(
            "collision_overwrite",
            identity=candidate.identity,
            removed_index=holder,
        )
        return Applied(
            collection=collection.with_items(items),
            via="overwrite",
            item_index=new_index,
            relocated=_relocation(item, candidate),
            removed=[conflict.candidate_identity],
        )

    taken = {
        identity
        for index, identity in enumerate(collection.identities())
        if index != conflict.item_index
    }
    try:
        label = unique_label(conflict.page, conflict.label, taken, max_rename_attempts)
    except RenameExhaustedError as e:
        logger.warning("rename_exhausted", identity=conflict.candidate_identity, attempts=e.attempts)
        return Conflict(
            item_index=conflict.item_index,
            conflicting_index=holder,
            conflicting_identity=conflict.candidate_identity,
            page=conflict.page,
            label=conflict.label,
            rename_available=False,
        )
    candidate = item.moved(page=conflict.page, label=label)
    items = list(collection.items)
    items[conflict.item_index] = candidate
    logger.info("collision_renamed", requested=conflict.candidate_identity, identity=candidate.identity)
    return Applied(
        collection=collection.with_items(items),
        via="rename",
        item_index=conflict.item_index,
        relocated=_relocation(item, candidate),
    )


def _relocation(before: Item, after: Item) -> dict[str, str]:
    if before.identity == after.identity:
        return {}
    return {before.identity: after.identity}


# =============================================================================
# PAGE MOVES
# =============================================================================


def propose_page_move(
    collection: Collection,
    from_page: int,
    to_page: int,
) -> Applied | PageConflict:
    """Propose moving every item of from_page onto to_page.

    Returns:
        Applied when no moved label exists on to_page, otherwise a
        PageConflict listing the colliding labels

    Raises:
        CollisionError: If to_page is not a positive page number
    """
    _check_page(to_page)
    if from_page == to_page or not collection.items_on_page(from_page):
        return Applied(collection=collection.copy(), via="direct")

    target_labels = {item.label for item in collection.items_on_page(to_page)}
    colliding = [
        item.label for item in collection.items_on_page(from_page) if item.label in target_labels
    ]
    if not colliding:
        return _apply_page_move(collection, from_page, to_page, "direct")

    logger.debug(
        "page_move_collision",
        from_page=from_page,
        to_page=to_page,
        colliding=len(colliding),
    )
    return PageConflict(from_page=from_page, to_page=to_page, colliding_labels=colliding)


def resolve_page_move(
    collection: Collection,
    conflict: PageConflict,
    resolution: Resolution | str,
    max_rename_attempts: int | None = None,
) -> Applied | Cancelled | PageConflict:
    """Apply a resolution uniformly to every colliding item of a page move.

    A rename that exhausts the suffix bound for any moved item leaves the
    collection untouched and returns the conflict with rename_available=False.
    """
    resolution = Resolution(resolution)
    if resolution is Resolution.CANCEL:
        return Cancelled(collection=collection)

    via: AppliedVia = "rename" if resolution is Resolution.RENAME else "overwrite"
    try:
        return _apply_page_move(
            collection, conflict.from_page, conflict.to_page, via, max_rename_attempts
        )
    except RenameExhaustedError as e:
        logger.warning(
            "rename_exhausted",
            identity=compose(e.page, e.label),
            attempts=e.attempts,
            from_page=conflict.from_page,
        )
        return PageConflict(
            from_page=conflict.from_page,
            to_page=conflict.to_page,
            colliding_labels=list(conflict.colliding_labels),
            rename_available=False,
        )


def _apply_page_move(
    collection: Collection,
    from_page: int,
    to_page: int,
    via: AppliedVia,
    max_rename_attempts: int | None = None,
) -> Applied:
    """Move from_page onto to_page; result is stably sorted by page."""
    source = collection.items_on_page(from_page)
    source_labels = {item.label for item in source}
    target_labels = {item.label for item in collection.items_on_page(to_page)}

    removed: list[str] = []
    kept: list[Item] = []
    for item in collection.items:
        if item.page == from_page:
            continue
        if via == "overwrite" and item.page == to_page and item.label in source_labels:
            removed.append(item.identity)
            continue
        kept.append(item)

    # Labels of all moved items are reserved up front so a rename suffix
    # never lands on a label another moved item keeps.
    taken = {compose(to_page, label) for label in target_labels | source_labels}
    moved: list[Item] = []
    relocated: dict[str, str] = {}
    for item in source:
        label = item.label
        if via == "rename" and label in target_labels:
            label = unique_label(to_page, label, taken, max_rename_attempts)
            taken.add(compose(to_page, label))
        new_item = item.moved(page=to_page, label=label)
        moved.append(new_item)
        relocated[item.identity] = new_item.identity

    result = collection.with_items(sorted(kept + moved, key=lambda i: i.page))
    topic = result.topics.pop(from_page, None)
    if topic and to_page not in result.topics:
        result.topics[to_page] = topic

    logger.info(
        "page_moved",
        from_page=from_page,
        to_page=to_page,
        moved=len(moved),
        via=via,
        removed=len(removed),
    )
    return Applied(collection=result, via=via, relocated=relocated, removed=removed)


# =============================================================================
# EDITOR HELPERS
# =============================================================================


def delete_item(collection: Collection, item_index: int) -> Collection:
    """Remove one item."""
    _check_index(collection, item_index)
    items = list(collection.items)
    del items[item_index]
    return collection.with_items(items)


def delete_page(collection: Collection, page: int) -> Collection:
    """Remove every item of a page and its topic."""
    result = collection.with_items(item for item in collection.items if item.page != page)
    result.topics.pop(page, None)
    return result


def _content_signature(item: Item) -> str:
    question = item.question.strip().lower()
    answer = (item.answer or "").strip().lower()
    return f"{item.item_type or ''}|{question}|{answer}"


def remove_duplicates(collection: Collection) -> tuple[Collection, int]:
    """Drop items whose content repeats an earlier item, on any page.

    Content signature: type, question text and answer, case-insensitive.

    Returns:
        Tuple of (deduplicated collection, removed count)
    """
    seen: set[str] = set()
    unique: list[Item] = []
    for item in collection.items:
        signature = _content_signature(item)
        if signature in seen:
            continue
        seen.add(signature)
        unique.append(item)

    removed = len(collection) - len(unique)
    if removed:
        logger.info("duplicates_removed", removed=removed)
    return collection.with_items(unique), removed
