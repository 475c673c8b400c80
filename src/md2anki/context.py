"""Heading context resolution for cards nested in heading hierarchies."""

import logging
from typing import List, Sequence

from .spans import Heading, SpanIndex

logger = logging.getLogger(__name__)


def scan_headings(text: str) -> List[Heading]:
    """Headings of ``text`` as found by the structural scan, so fenced code is skipped."""
    return SpanIndex.scan(text).headings


def resolve_context(headings: Sequence[Heading], position: int, explicit_level: int = -1) -> List[str]:
    """
    Build the chain of ancestor heading texts for a card.

    Args:
        headings: Headings of the note in document order
        position: Offset the card is anchored at; only headings before it count
        explicit_level: Level of the card's own heading, or -1 when it has none

    Returns:
        Heading texts ordered outermost to innermost
    """
    context: List[str] = []
    current = position
    i = len(headings) - 1

    if explicit_level > 0:
        goal = explicit_level - 1
    else:
        # Seed with the nearest heading above the card
        while i >= 0 and headings[i].offset >= current:
            i -= 1
        if i < 0:
            return context
        seed = headings[i]
        context.append(seed.text)
        current = seed.offset
        goal = seed.level - 1
        i -= 1

    while i >= 0 and goal > 0:
        heading = headings[i]
        if heading.level == goal and heading.offset < current:
            context.insert(0, heading.text)
            current = heading.offset
            goal -= 1
        i -= 1

    logger.debug(f"Context at {position}: {context}")
    return context
