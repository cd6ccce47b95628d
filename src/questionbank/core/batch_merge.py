"""Batch merge of extracted items into a working collection.

Extraction runs in page-range batches; each batch is folded into the
working set additively. Incoming items never overwrite: a colliding
identity is renamed with the same suffix rule the editor uses, checked
against the running result so two incoming items are disambiguated too.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

import structlog

from questionbank.core.collection import Collection, Item
from questionbank.core.collisions import RenameExhaustedError, unique_label

logger = structlog.get_logger(__name__)

MergeMode = Literal["merge", "replace"]


@dataclass(frozen=True)
class MergeResult:
    """Outcome of folding one batch into the working items."""

    items: list[Item]
    renamed: int = 0
    unplaced: list[Item] = field(default_factory=list)


def merge(
    existing: Iterable[Item],
    incoming: Iterable[Item],
    max_rename_attempts: int | None = None,
) -> list[Item]:
    """Fold incoming items into existing ones with unique identities.

    Args:
        existing: Current working items
        incoming: Newly extracted items
        max_rename_attempts: Suffix bound (defaults to config)

    Returns:
        New list, stably sorted by page
    """
    return merge_batch(existing, incoming, max_rename_attempts).items


def merge_batch(
    existing: Iterable[Item],
    incoming: Iterable[Item],
    max_rename_attempts: int | None = None,
) -> MergeResult:
    """merge() with a report of renamed and unplaced items.

    An incoming item whose label has no free suffix within the bound is
    held back in MergeResult.unplaced instead of raising; the merged items
    stay unique.
    """
    result = list(existing)
    taken = {item.identity for item in result}
    added = 0
    renamed = 0
    unplaced: list[Item] = []

    for item in incoming:
        try:
            label = unique_label(item.page, item.label, taken, max_rename_attempts)
        except RenameExhaustedError as e:
            logger.warning(
                "batch_item_unplaced",
                identity=item.identity,
                attempts=e.attempts,
            )
            unplaced.append(item)
            continue
        if label != item.label:
            renamed += 1
            item = item.moved(label=label)
        taken.add(item.identity)
        result.append(item)
        added += 1

    logger.info(
        "batch_merged",
        existing=len(result) - added,
        added=added,
        renamed=renamed,
        unplaced=len(unplaced),
    )
    return MergeResult(
        items=sorted(result, key=lambda i: i.page),
        renamed=renamed,
        unplaced=unplaced,
    )


def merge_collection(
    collection: Collection,
    incoming: Iterable[Item],
    mode: MergeMode = "merge",
    max_rename_attempts: int | None = None,
) -> Collection:
    """Merge a batch into a collection.

    In "replace" mode the batch starts a fresh collection; page topics of
    the old collection are dropped.
    """
    if mode == "replace":
        return Collection(items=merge([], incoming, max_rename_attempts))
    return collection.with_items(merge(collection.items, incoming, max_rename_attempts))
