"""Single-prompt spaced recall cards."""

import logging
import re
from typing import List

from ..cards import CardKind, SpacedCard
from ..normalize import extract_image_links
from .base import BaseBuilder, NoteContext

logger = logging.getLogger(__name__)


class SpacedBuilder(BaseBuilder):
    """Builds ``Prompt #card/spaced`` cards, which have no answer side."""

    kind = CardKind.SPACED

    @property
    def pattern(self) -> re.Pattern:
        return self.patterns.spaced

    def build(self, note: NoteContext) -> List[SpacedCard]:
        cards = []
        for match in self.pattern.finditer(note.text):
            prompt_text = match.group("prompt").strip()
            level = self.heading_level(match)
            prompt = self.with_context(self.context_chain(note, match, level), prompt_text)
            identifier, _ = self.parse_identifier(match)

            core = self.make_core(
                note,
                match,
                original_text=prompt_text,
                fields={"Prompt": self.render(note, prompt)},
                tags=self.parse_tags(note, match.group("tags")),
                identifier=identifier,
                media=extract_image_links(prompt),
            )
            cards.append(SpacedCard(core=core))

        logger.debug(f"Built {len(cards)} spaced cards")
        return cards
