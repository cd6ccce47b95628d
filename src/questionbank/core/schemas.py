"""Pydantic schemas for persisted page documents.

Validates collection files before they are turned into a Collection.
Unknown item fields are allowed and carried through unchanged.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class ItemPayload(BaseModel):
    """One stored question item."""

    page: int | None = Field(default=None, ge=1)
    label: str | int | None = None
    question_number: str | int | None = None
    question: str = ""
    answer: str | None = None
    options: list[str] | None = None
    explanation: str | None = None
    concept: str | None = None
    type: str | None = None
    topic: str | None = None

    model_config = {"extra": "allow"}

    @field_validator("question", "answer", mode="before")
    @classmethod
    def numbers_as_text(cls, value: Any) -> Any:
        """Extracted answers and questions are sometimes bare numbers."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("options", mode="before")
    @classmethod
    def options_as_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [
                str(option)
                if isinstance(option, (int, float)) and not isinstance(option, bool)
                else option
                for option in value
            ]
        return value


class PageDocument(BaseModel):
    """All items stored for one page."""

    page: int = Field(..., ge=1)
    topic: str | None = None
    items: list[ItemPayload] = Field(default_factory=list)

    def to_raw(self) -> dict[str, Any]:
        """Plain dict accepted by Collection.from_pages."""
        return self.model_dump(exclude_none=True)


PageDocumentList = TypeAdapter(list[PageDocument])
ItemPayloadList = TypeAdapter(list[ItemPayload])
