"""Answer matching cascade.

Responsibilities:
- Map a possibly stale answer key to a current item through ordered tiers
- Re-key matched answer records to the item's current identity
- Drop records no tier can place (stale keys), counting them

Tier order (first success wins):
1. exact      key equals an item identity
2. same_page  parsed page and label match an item
3. global     parsed label matches an item on any page (lowest page first)

Records carrying a concept snapshot are kept even when no item is found;
they stay under their original key so their concept still counts.

Reconciliation is deterministic and idempotent: keys are visited in sorted
order, there is no randomized tie-breaking, and the cleaned store is
returned with sorted keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog

from questionbank.core.answers import AnswerRecord, AnswerStore
from questionbank.core.collection import Collection, Item
from questionbank.core.identity import parse

logger = structlog.get_logger(__name__)

# =============================================================================
# TYPES
# =============================================================================


class MatchTier(str, Enum):
    """Cascade tier that resolved an answer key."""

    EXACT = "exact"
    SAME_PAGE = "same_page"
    GLOBAL = "global"
    STALE = "stale"


TierFunction = Callable[[str, Collection], "int | None"]


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class MatchResult:
    """Outcome of the cascade for one key."""

    key: str
    tier: MatchTier
    item_index: int | None = None
    item: Item | None = None

    @property
    def matched(self) -> bool:
        return self.item is not None


@dataclass
class ReconcileStats:
    """Validation counters for one or more reconciliations."""

    total: int = 0
    snapshot_match: int = 0
    exact_match: int = 0
    same_page_match: int = 0
    same_label_match: int = 0
    failed: int = 0
    snapshot_unkeyed: int = 0
    superseded: int = 0

    def add(self, other: ReconcileStats) -> None:
        """Accumulate another stats object into this one."""
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total": self.total,
            "snapshotMatch": self.snapshot_match,
            "exactMatch": self.exact_match,
            "samePageMatch": self.same_page_match,
            "sameLabelMatch": self.same_label_match,
            "failed": self.failed,
            "snapshotUnkeyed": self.snapshot_unkeyed,
            "superseded": self.superseded,
        }


@dataclass(frozen=True)
class MatchedAnswer:
    """A record kept by reconciliation, with the item it was placed on."""

    key: str
    original_key: str
    record: AnswerRecord
    tier: MatchTier
    item: Item | None = None


@dataclass
class ReconcileResult:
    """Cleaned AnswerStore plus the matches and counters behind it."""

    cleaned: AnswerStore
    stats: ReconcileStats
    matches: list[MatchedAnswer] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "cleaned": {key: record.to_dict() for key, record in self.cleaned.items()},
            "stats": self.stats.to_dict(),
        }


# =============================================================================
# TIERS
# =============================================================================


def match_exact(key: str, collection: Collection) -> int | None:
    """Tier 1: key is a current identity."""
    return collection.find_index(key)


def match_same_page(key: str, collection: Collection) -> int | None:
    """Tier 2: numeric page prefix and label both match."""
    parsed = parse(key)
    if parsed.page is None:
        return None
    for index, item in enumerate(collection.items):
        if item.page == parsed.page and item.label == parsed.label:
            return index
    return None


def match_global(key: str, collection: Collection) -> int | None:
    """Tier 3: label matches on any page; lowest page, then input order."""
    label = parse(key).label
    candidates = [
        (item.page, index) for index, item in enumerate(collection.items) if item.label == label
    ]
    if not candidates:
        return None
    return min(candidates)[1]


TIERS: tuple[tuple[MatchTier, TierFunction], ...] = (
    (MatchTier.EXACT, match_exact),
    (MatchTier.SAME_PAGE, match_same_page),
    (MatchTier.GLOBAL, match_global),
)

# Lower rank wins when two records land on the same identity
_TIER_RANK = {MatchTier.EXACT: 0, MatchTier.SAME_PAGE: 1, MatchTier.GLOBAL: 2}


def match_answer_key(key: str, collection: Collection) -> MatchResult:
    """Run the cascade for one key."""
    for tier, tier_function in TIERS:
        index = tier_function(key, collection)
        if index is not None:
            return MatchResult(key=key, tier=tier, item_index=index, item=collection[index])
    return MatchResult(key=key, tier=MatchTier.STALE)


# =============================================================================
# RECONCILIATION
# =============================================================================


def _preferred(candidate: MatchedAnswer, current: MatchedAnswer) -> bool:
    """Whether candidate should replace current on a shared identity.

    Direct (lower tier) records win, then the more recent grading; on a
    full tie the earlier key in sorted order, already held, stays.
    """
    candidate_rank = _TIER_RANK[candidate.tier]
    current_rank = _TIER_RANK[current.tier]
    if candidate_rank != current_rank:
        return candidate_rank < current_rank
    return candidate.record.updated_at > current.record.updated_at


def reconcile(answer_store: AnswerStore, collection: Collection) -> ReconcileResult:
    """Migrate an AnswerStore onto the current collection.

    Args:
        answer_store: Records keyed against some earlier collection state
        collection: Current collection snapshot

    Returns:
        ReconcileResult whose cleaned store is keyed by current identities
        (snapshot-bearing records with no item keep their original key)
    """
    stats = ReconcileStats()
    placed: dict[str, MatchedAnswer] = {}

    for key in sorted(answer_store):
        record = answer_store[key]
        stats.total += 1
        if record.concept:
            stats.snapshot_match += 1

        result = match_answer_key(key, collection)

        if not result.matched:
            if record.concept:
                stats.snapshot_unkeyed += 1
                logger.debug("snapshot_answer_unkeyed", key=key, concept=record.concept)
                placed[key] = MatchedAnswer(
                    key=key, original_key=key, record=record, tier=MatchTier.STALE
                )
                continue
            stats.failed += 1
            logger.info("stale_answer_dropped", key=key, status=record.status.value)
            continue

        item = result.item
        if result.tier is MatchTier.EXACT:
            stats.exact_match += 1
        elif result.tier is MatchTier.SAME_PAGE:
            stats.same_page_match += 1
        else:
            stats.same_label_match += 1
            logger.warning("answer_key_cross_page_match", key=key, identity=item.identity)

        matched = MatchedAnswer(
            key=item.identity,
            original_key=key,
            record=record,
            tier=result.tier,
            item=item,
        )
        current = placed.get(item.identity)
        if current is None:
            placed[item.identity] = matched
            continue

        stats.superseded += 1
        loser = current
        if _preferred(matched, current):
            placed[item.identity] = matched
        else:
            loser = matched
        logger.info(
            "answer_superseded",
            identity=item.identity,
            dropped_key=loser.original_key,
        )

    matches = [placed[key] for key in sorted(placed)]
    cleaned = {match.key: match.record for match in matches}

    logger.debug("answers_reconciled", **stats.to_dict())
    return ReconcileResult(cleaned=cleaned, stats=stats, matches=matches)
