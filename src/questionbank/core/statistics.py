"""Statistics aggregation over reconciled answers.

Responsibilities:
- Overall accuracy for one assessment or a pooled report
- Per-concept performance keyed by "CATEGORY:concept"
- Mutually exclusive strength / weakness classification
- Page topics grouped by category for report context

Classification rules (thresholds from config):
- strength: accuracy >= strength_threshold AND no wrong answers
- weakness: accuracy < weakness_threshold AND not a strength
A single wrong answer rules out strength even at high accuracy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog

from questionbank.config.app_config import StatisticsConfig, load_app_config
from questionbank.core.answer_matching import (
    MatchedAnswer,
    ReconcileStats,
    match_answer_key,
    reconcile,
)
from questionbank.core.answers import AnswerStore
from questionbank.core.collection import Collection

logger = structlog.get_logger(__name__)

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ConceptPerformance:
    """Graded answer counts for one concept."""

    category: str
    concept: str
    total: int = 0
    wrong: int = 0

    @property
    def key(self) -> str:
        return f"{self.category}:{self.concept}"

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.total - self.wrong) / self.total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "concept": self.concept,
            "category": self.category,
            "total": self.total,
            "wrong": self.wrong,
            "accuracy": round(self.accuracy * 100),
        }


@dataclass
class CategoryBreakdown:
    """Strengths and weaknesses within one category."""

    strengths: list[ConceptPerformance] = field(default_factory=list)
    weaknesses: list[ConceptPerformance] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "strengths": [c.to_dict() for c in self.strengths],
            "weaknesses": [c.to_dict() for c in self.weaknesses],
        }


@dataclass
class Stats:
    """Aggregated statistics for one assessment or a whole report."""

    total: int
    correct: int
    concepts: list[ConceptPerformance]
    strengths: list[ConceptPerformance]
    weaknesses: list[ConceptPerformance]
    by_category: dict[str, CategoryBreakdown] = field(default_factory=dict)
    topics_by_category: dict[str, list[str]] = field(default_factory=dict)
    validation: ReconcileStats | None = None

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "total": self.total,
            "correct": self.correct,
            "accuracy": self.accuracy,
            "concepts": [c.to_dict() for c in self.concepts],
            "strengths": [c.to_dict() for c in self.strengths],
            "weaknesses": [c.to_dict() for c in self.weaknesses],
            "byCategory": {k: v.to_dict() for k, v in self.by_category.items()},
            "topicsByCategory": self.topics_by_category,
        }
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        return result


@dataclass
class Assessment:
    """One student's answers for one book."""

    book_id: str
    answers: AnswerStore
    book_category: str | None = None
    book_title: str | None = None
    student_id: str | None = None


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


class _Accumulator:
    """Running totals shared by single and multi-assessment aggregation."""

    def __init__(self, config: StatisticsConfig):
        self.config = config
        self.total = 0
        self.correct = 0
        self.performance: dict[str, ConceptPerformance] = {}
        self.topics: dict[str, list[str]] = {}

    def add_topic(self, category: str, topic: str | None) -> None:
        if not topic:
            return
        topics = self.topics.setdefault(category, [])
        if topic not in topics:
            topics.append(topic)

    def add(
        self,
        match: MatchedAnswer,
        collection: Collection | None,
        book_category: str | None,
        book_title: str | None,
    ) -> None:
        record = match.record
        item = match.item

        # The snapshot reflects the concept at grading time and wins over
        # the item's current concept.
        concept = (
            record.concept
            or (item.concept if item else None)
            or book_title
            or self.config.fallback_concept
        )
        category = (
            (item.item_type if item else None) or book_category or self.config.default_category
        ).upper()

        performance = self.performance.get(f"{category}:{concept}")
        if performance is None:
            performance = ConceptPerformance(category=category, concept=concept)
            self.performance[performance.key] = performance
        performance.total += 1
        self.total += 1
        if record.is_correct:
            self.correct += 1
        else:
            performance.wrong += 1

        if item is not None and collection is not None:
            self.add_topic(category, collection.effective_topic(item))

    def build(self, validation: ReconcileStats | None = None) -> Stats:
        concepts = [self.performance[key] for key in sorted(self.performance)]
        strengths, weaknesses = classify(concepts, self.config)

        by_category: dict[str, CategoryBreakdown] = {}
        for concept in concepts:
            by_category.setdefault(concept.category, CategoryBreakdown())
        for concept in strengths:
            by_category[concept.category].strengths.append(concept)
        for concept in weaknesses:
            by_category[concept.category].weaknesses.append(concept)

        return Stats(
            total=self.total,
            correct=self.correct,
            concepts=concepts,
            strengths=strengths,
            weaknesses=weaknesses,
            by_category=dict(sorted(by_category.items())),
            topics_by_category=self.topics,
            validation=validation,
        )


def classify(
    concepts: Iterable[ConceptPerformance],
    config: StatisticsConfig | None = None,
) -> tuple[list[ConceptPerformance], list[ConceptPerformance]]:
    """Split concepts into strengths and weaknesses.

    Returns:
        Tuple of (strengths by accuracy desc, weaknesses by accuracy asc);
        a concept never appears in both
    """
    if config is None:
        config = load_app_config().statistics

    strengths: list[ConceptPerformance] = []
    weaknesses: list[ConceptPerformance] = []
    for concept in concepts:
        if concept.total == 0:
            continue
        if concept.accuracy >= config.strength_threshold and concept.wrong == 0:
            strengths.append(concept)
        elif concept.accuracy < config.weakness_threshold:
            weaknesses.append(concept)

    strengths.sort(key=lambda c: (-c.accuracy, c.key))
    weaknesses.sort(key=lambda c: (c.accuracy, c.key))
    return strengths, weaknesses


def _in_period(graded_on: str, period_start: str | None, period_end: str | None) -> bool:
    # Records without a timestamp are always in period
    if not graded_on:
        return True
    if period_start and graded_on < period_start:
        return False
    if period_end and graded_on > period_end:
        return False
    return True


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================


def aggregate(
    cleaned: AnswerStore,
    collection: Collection,
    book_category: str | None = None,
    book_title: str | None = None,
    config: StatisticsConfig | None = None,
) -> Stats:
    """Aggregate statistics for one reconciled AnswerStore.

    Args:
        cleaned: Output of reconcile()
        collection: The collection it was reconciled against
        book_category: Category used for items without a type
        book_title: Concept name for records with no concept at all
        config: Statistics settings (defaults to app config)

    Returns:
        Stats over every record in cleaned
    """
    accumulator = _Accumulator(config or load_app_config().statistics)
    for key in sorted(cleaned):
        result = match_answer_key(key, collection)
        accumulator.add(
            MatchedAnswer(
                key=key,
                original_key=key,
                record=cleaned[key],
                tier=result.tier,
                item=result.item,
            ),
            collection,
            book_category,
            book_title,
        )
    return accumulator.build()


def aggregate_report(
    assessments: Iterable[Assessment],
    collections: dict[str, Collection],
    period_start: str | None = None,
    period_end: str | None = None,
    config: StatisticsConfig | None = None,
) -> Stats:
    """Reconcile and pool many assessments into one report.

    Args:
        assessments: Assessments to include
        collections: Current collection per book_id
        period_start: Inclusive start date (YYYY-MM-DD), or None
        period_end: Inclusive end date (YYYY-MM-DD), or None
        config: Statistics settings (defaults to app config)

    Returns:
        Pooled Stats with the summed reconcile counters in validation
    """
    accumulator = _Accumulator(config or load_app_config().statistics)
    validation = ReconcileStats()
    assessment_count = 0

    for assessment in assessments:
        assessment_count += 1
        answers = {
            key: record
            for key, record in assessment.answers.items()
            if _in_period(record.graded_on, period_start, period_end)
        }
        category = (assessment.book_category or accumulator.config.default_category).upper()
        accumulator.add_topic(category, assessment.book_title)

        collection = collections.get(assessment.book_id)
        if collection is None:
            # Snapshot-bearing records still count toward concepts
            logger.warning(
                "report_collection_missing",
                book_id=assessment.book_id,
                answers=len(answers),
            )
            collection = Collection()

        result = reconcile(answers, collection)
        validation.add(result.stats)
        for match in result.matches:
            accumulator.add(match, collection, assessment.book_category, assessment.book_title)

    logger.info(
        "report_aggregated",
        assessments=assessment_count,
        graded=accumulator.total,
        failed=validation.failed,
    )
    return accumulator.build(validation=validation)

