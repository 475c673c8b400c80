"""Cloze deletion cards from ``{...}`` and ``==...==`` markup."""

import logging
import re
from typing import List

from ..cards import ClozeCard, CardKind
from ..normalize import extract_audio_links, extract_image_links
from ..patterns import CLOZE_EXTRA_STRIP, CURLY_CLOZE, HIGHLIGHT_CLOZE
from .base import BaseBuilder, NoteContext, split_metadata

logger = logging.getLogger(__name__)


class ClozeBuilder(BaseBuilder):
    """
    Builds a cloze card from every line holding a deletion.

    ``{text}`` and ``{1:text}`` / ``{c1::text}`` become ``{{c1::text}}``
    (index taken from the markup, 1 when absent); ``==text==`` becomes
    ``{{c1::text}}``. Braces inside math are left alone, and a line with
    nothing to substitute yields no card.
    """

    kind = CardKind.CLOZE

    @property
    def pattern(self) -> re.Pattern:
        return self.patterns.cloze

    def substitute(self, note: NoteContext, text: str, offset: int) -> str:
        """Replace deletion markup in ``text``, which starts at ``offset`` in the note."""

        def curly(m: re.Match) -> str:
            if note.index.in_math(offset + m.start(), offset + m.end()):
                return m.group(0)
            return f"{{{{c{m.group('index') or 1}::{m.group('body')}}}}}"

        text = CURLY_CLOZE.sub(curly, text)
        return HIGHLIGHT_CLOZE.sub(lambda m: f"{{{{c1::{m.group('body')}}}}}", text)

    def build(self, note: NoteContext) -> List[ClozeCard]:
        cards = []
        for match in self.pattern.finditer(note.text):
            raw = match.group("text")
            head, entries = split_metadata(raw)

            cloze = self.substitute(note, head, match.start("text"))
            if cloze == head:
                continue
            cloze = cloze.replace("%%", "").strip()

            extra, _ = split_metadata(CLOZE_EXTRA_STRIP.sub("", raw))
            meta = self.parse_metadata(note, [e.replace("%%", "") for e in entries], match.start())

            level = self.heading_level(match)
            text = self.with_context(self.context_chain(note, match, level), cloze)
            media = extract_image_links(text) + extract_audio_links(text)

            fields = {"Text": self.render(note, text), "Extra": extra.strip()}
            if meta.hint:
                fields["Hint"] = meta.hint

            identifier, _ = self.parse_identifier(match)
            core = self.make_core(
                note,
                match,
                original_text=raw.strip(),
                fields=fields,
                tags=self.parse_tags(note, match.group("tags")),
                identifier=identifier,
                media=media,
                deck=meta.deck,
            )
            cards.append(ClozeCard(core=core, hint=meta.hint or "", extra=fields["Extra"]))

        logger.debug(f"Built {len(cards)} cloze cards")
        return cards
