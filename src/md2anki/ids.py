"""Identifier markers linking note text to cards already in Anki."""

import logging
import re
from typing import Iterable, List, Tuple

from .cards import Card
from .patterns import DELETION_CANDIDATE, ID_MARKER

logger = logging.getLogger(__name__)


def find_existing_ids(note_text: str) -> List[re.Match]:
    """Every ``^1234567890123`` marker in the note."""
    if note_text is None:
        raise TypeError("note_text must be a string")
    return list(ID_MARKER.finditer(note_text))


def find_deletion_candidates(note_text: str) -> List[int]:
    """
    Ids whose marker stands alone after a blank line (or opens the note).

    Such markers are no longer attached to any card, so the cards they name
    can be removed from Anki.
    """
    if note_text is None:
        raise TypeError("note_text must be a string")
    return [int(m.group(1)) for m in DELETION_CANDIDATE.finditer(note_text)]


def format_marker(card_id: int, inline: bool = False) -> str:
    if len(str(card_id)) != 13 or card_id < 0:
        raise ValueError(f"Card id must have 13 digits, got {card_id}")
    return f" ^{card_id}" if inline else f"\n^{card_id}"


def write_identifiers(note_text: str, assignments: Iterable[Tuple[Card, int]], inline: bool = False) -> str:
    """
    Insert id markers after newly created cards.

    Args:
        note_text: The note the cards were extracted from
        assignments: ``(card, new_id)`` pairs; cards that already carry an id are skipped
        inline: Put the marker at the end of the card's line instead of on the next line

    Returns:
        The note text with markers inserted
    """
    text = note_text
    pending = [(card, card_id) for card, card_id in assignments if not card.core.inserted]
    # Back to front so earlier offsets stay valid
    for card, card_id in sorted(pending, key=lambda item: item[0].core.span.end, reverse=True):
        end = card.core.span.end
        while end > card.core.span.start and text[end - 1] in " \t":
            end -= 1
        text = text[:end] + format_marker(card_id, inline) + text[end:]

    logger.info(f"Wrote {len(pending)} identifier markers")
    return text
