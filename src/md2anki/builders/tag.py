"""Tag-anchored question/answer cards."""

import logging
import re
from typing import List

from ..cards import CardKind, TagCard
from ..normalize import expand_embeds, extract_audio_links, extract_image_links
from .base import BaseBuilder, NoteContext

logger = logging.getLogger(__name__)


class TagBuilder(BaseBuilder):
    """
    Builds cards written as::

        Question #card
        Answer line one
        Answer line two
        ^1234567890123

    ``#card-reverse`` or ``#card/reverse`` marks the card as reversed.
    """

    kind = CardKind.TAG

    @property
    def pattern(self) -> re.Pattern:
        return self.patterns.tag

    def build(self, note: NoteContext) -> List[TagCard]:
        cards = []
        for match in self.pattern.finditer(note.text):
            identifier, answer = self.parse_identifier(match, match.group("answer") or "")
            answer = answer.strip()
            if not answer:
                logger.debug(f"Skipping tag card at {match.start()} without an answer")
                continue

            question_text = match.group("question").strip()
            level = self.heading_level(match)
            question = self.with_context(self.context_chain(note, match, level), question_text)

            media = extract_image_links(question) + extract_image_links(answer) + extract_audio_links(answer)
            answer = expand_embeds(answer, note.embeds)

            fields = {
                "Front": self.render(note, question),
                "Back": self.render(note, answer),
            }
            core = self.make_core(
                note,
                match,
                original_text=question_text,
                fields=fields,
                tags=self.parse_tags(note, match.group("tags")),
                identifier=identifier,
                media=media,
                reversed=match.group("reverse") is not None,
            )
            cards.append(TagCard(core=core))

        logger.debug(f"Built {len(cards)} tag cards")
        return cards
