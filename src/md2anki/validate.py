"""Validation of extracted cards against the note they came from."""

import logging
import re
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .cards import Card, CardKind

logger = logging.getLogger(__name__)

CLOZE_DELETION = re.compile(r"\{\{c\d+::.+?\}\}", re.DOTALL)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


class CardValidator:
    """Checks cards for broken invariants and suspicious content."""

    # Fields every card of a kind must carry
    REQUIRED_FIELDS = {
        CardKind.TAG: ("Front", "Back"),
        CardKind.INLINE: ("Front", "FrontPronunciation", "Back", "BackPronunciation"),
        CardKind.SPACED: ("Prompt",),
        CardKind.CLOZE: ("Text", "Extra"),
    }

    def __init__(self, media_path: Optional[Path] = None, source_support: bool = False):
        self.media_path = media_path
        self.source_support = source_support
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_cards(self, cards: Sequence[Card], note_text: str, verbose: bool = False) -> Dict[str, Any]:
        """Validate cards extracted from ``note_text`` and return validation results."""
        if note_text is None:
            raise ValidationError("Note text is required to validate card spans")
        self.errors = []
        self.warnings = []

        for position, card in enumerate(cards):
            label = f"{card.kind} card #{position}"
            self._validate_span(card, label, len(note_text))
            self._validate_identity(card, label)
            self._validate_fields(card, label)
            self._validate_media(card, label)
        self._validate_ids(cards)

        result = {
            "valid": len(self.errors) == 0,
            "errors": self.errors,
            "warnings": self.warnings,
            "total_cards": len(cards),
            "kinds": dict(Counter(card.kind for card in cards)),
            "new_cards": sum(1 for card in cards if not card.core.inserted),
        }

        if verbose:
            self._log_validation_results(result)

        return result

    def _validate_span(self, card: Card, label: str, length: int) -> None:
        span = card.core.span
        if not 0 <= span.start < span.end <= length:
            self.errors.append(f"{label}: span {span.start}-{span.end} outside note of length {length}")

    def _validate_identity(self, card: Card, label: str) -> None:
        if (card.core.id != -1) != card.core.inserted:
            self.errors.append(f"{label}: id {card.core.id} disagrees with inserted={card.core.inserted}")
        if card.core.inserted and len(str(card.core.id)) != 13:
            self.warnings.append(f"{label}: id {card.core.id} is not a 13 digit Anki id")

    def _validate_fields(self, card: Card, label: str) -> None:
        fields = card.core.fields
        for name in self.REQUIRED_FIELDS[CardKind(card.kind)]:
            if name not in fields:
                self.errors.append(f"{label}: missing field '{name}'")
        if ("Source" in fields) != self.source_support:
            self.errors.append(f"{label}: Source field presence does not match source support setting")

        primary = self.REQUIRED_FIELDS[CardKind(card.kind)][0]
        if not fields.get(primary, "").strip():
            self.warnings.append(f"{label}: empty '{primary}' field")
        if card.kind == CardKind.CLOZE.value and not CLOZE_DELETION.search(fields.get("Text", "")):
            self.errors.append(f"{label}: cloze text has no deletion")

    def _validate_media(self, card: Card, label: str) -> None:
        if not self.media_path:
            return
        missing = [name for name in card.core.media if not (self.media_path / name).exists()]
        if missing:
            self.warnings.append(f"{label}: missing media files: {missing[:5]}")

    def _validate_ids(self, cards: Sequence[Card]) -> None:
        counts = Counter(card.core.id for card in cards if card.core.inserted)
        duplicates = [card_id for card_id, count in counts.items() if count > 1]
        if duplicates:
            self.errors.append(f"Found {len(duplicates)} duplicate ids: {duplicates[:5]}")

    def _log_validation_results(self, result: Dict[str, Any]) -> None:
        if result["valid"]:
            logger.info(f"Validation passed for {result['total_cards']} cards")
        else:
            logger.error(f"Validation failed with {len(result['errors'])} errors")
        for error in result["errors"]:
            logger.error(f"  {error}")
        for warning in result["warnings"]:
            logger.warning(f"  {warning}")


def validate_cards(cards: Sequence[Card], note_text: str, **kwargs) -> Dict[str, Any]:
    """Convenience function to validate cards."""
    return CardValidator(**kwargs).validate_cards(cards, note_text)
