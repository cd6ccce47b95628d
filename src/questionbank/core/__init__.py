"""Core reconciliation logic.

Modules:
- identity: "{page}_{label}" key composition and parsing
- collection: Item / Collection model and page documents
- answers: AnswerRecord / AnswerStore model
- collisions: collision detection and rename/overwrite/cancel resolution
- batch_merge: additive merge of extracted batches
- answer_matching: tiered matching of stale answer keys
- statistics: accuracy and strength/weakness classification
- schemas: pydantic validation of stored page documents
"""

__all__ = [
    "identity",
    "collection",
    "answers",
    "collisions",
    "batch_merge",
    "answer_matching",
    "statistics",
    "schemas",
]
