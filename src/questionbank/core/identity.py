"""Composite key model for question items.

Identity format: "{page}_{label}"
- page: positive integer page number
- label: user-visible ordinal ("1", "3-a", "2(1)")

Keys read back from answer data may be stale or malformed; parse() never
raises and degrades to a label-only key instead.
"""

from __future__ import annotations

from typing import NamedTuple

SEPARATOR = "_"


class ParsedKey(NamedTuple):
    """Decomposed identity key."""

    page: int | None
    label: str


def compose(page: int, label: str) -> str:
    """Build the identity string for a page/label pair."""
    return f"{page}{SEPARATOR}{label}"


def parse(key: str) -> ParsedKey:
    """Split a key on its first separator.

    Args:
        key: Identity key, possibly legacy or malformed

    Returns:
        ParsedKey with page=None when the prefix is not an integer
        (the whole key is then the label)
    """
    head, sep, tail = key.partition(SEPARATOR)
    if not sep:
        return ParsedKey(page=None, label=key)

    try:
        page = int(head)
    except ValueError:
        return ParsedKey(page=None, label=key)

    return ParsedKey(page=page, label=tail)


def suffixed_label(label: str, attempt: int) -> str:
    """Label candidate for the n-th rename attempt.

    Attempt 0 is the label itself, then "label(1)", "label(2)", ...
    """
    if attempt == 0:
        return label
    return f"{label}({attempt})"
