"""Single-line ``Question :: Answer`` cards with optional speech and image hints."""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..cards import CardKind, InlineCard, WarningKind
from ..media import MediaServiceError
from ..normalize import extract_audio_links, extract_image_links, strip_paragraphs, strip_tags
from ..patterns import (
    CLOZE_INDEX_SUFFIX,
    DECK_LANGUAGES,
    HINT_IMAGE,
    HTML_ANCHOR,
    PICTURE_IMAGE,
    PRONUNCIATION,
    SENTENCE_DECK,
)
from .base import BaseBuilder, NoteContext, split_metadata

logger = logging.getLogger(__name__)

# Dataview-style fields and note-level declarations share the separator syntax
SKIPPED_PREFIXES = ("cards-deck", "tags")
SKIPPED_FIELDS = ("up", "down", "same")


def split_pronunciation(html: str) -> Tuple[str, str]:
    """Split ``word [pronunciation]`` into the word and the bracketed hint."""
    match = PRONUNCIATION.search(html)
    if match is None:
        return html.strip(), ""
    return html[:match.start()].strip(), strip_tags(match.group(0))


def plain_side(html: str) -> str:
    return HTML_ANCHOR.sub("", strip_paragraphs(html)).strip()


class InlineBuilder(BaseBuilder):
    """
    Builds ``Question :: Answer`` cards (``:::`` for reversed cards).

    The answer may end with ``|| deck: X || hint: Y || options: addSentences``
    metadata. With a media service available, ``[[file|Hint]]`` and
    ``[[file|🖼]]`` image hints are uploaded, and decks named like
    ``EN-PL`` get speech for the sides selected by the audio policy.
    """

    kind = CardKind.INLINE

    @property
    def pattern(self) -> re.Pattern:
        return self.patterns.inline

    def is_structural(self, question: str) -> bool:
        lowered = question.lower()
        return lowered.startswith(SKIPPED_PREFIXES) or lowered in SKIPPED_FIELDS

    async def build(self, note: NoteContext) -> List[InlineCard]:
        cards = []
        for match in self.pattern.finditer(note.text):
            question = match.group("question").strip()
            if self.is_structural(question) or CLOZE_INDEX_SUFFIX.search(question):
                continue
            cards.append(await self._build_card(note, match, question))

        await self._add_sentences(note, cards)
        logger.debug(f"Built {len(cards)} inline cards")
        return cards

    async def _build_card(self, note: NoteContext, match: re.Match, question_text: str) -> InlineCard:
        level = self.heading_level(match)
        question = self.with_context(self.context_chain(note, match, level), question_text)
        identifier, answer = self.parse_identifier(match, match.group("answer"))
        answer, entries = split_metadata(answer.replace("%%", ""))
        meta = self.parse_metadata(note, entries, match.start(), allow_options=True)
        deck = meta.deck or note.deck

        media = extract_image_links(question) + extract_image_links(answer) + extract_audio_links(answer)
        hint_images = HINT_IMAGE.findall(answer)
        front_images = PICTURE_IMAGE.findall(question)
        back_images = PICTURE_IMAGE.findall(answer)
        question = PICTURE_IMAGE.sub("", question)
        answer = HINT_IMAGE.sub("", PICTURE_IMAGE.sub("", answer))

        front, front_pronunciation = split_pronunciation(strip_paragraphs(self.render(note, question)))
        back, back_pronunciation = split_pronunciation(strip_paragraphs(self.render(note, answer.strip())))
        fields = {
            "Front": front,
            "FrontPronunciation": front_pronunciation,
            "Back": back,
            "BackPronunciation": back_pronunciation,
        }
        core = self.make_core(
            note,
            match,
            original_text=question_text,
            fields=fields,
            tags=self.parse_tags(note, match.group("tags")),
            identifier=identifier,
            media=media,
            deck=deck,
            reversed=match.group("separator") == self.parsing.inline_separator_reverse,
        )

        if meta.hint:
            core.fields["Hint"] = meta.hint
        if note.media is not None:
            core.fields.update(await self._media_fields(
                note, deck, front, back, match.start(),
                HintImage=hint_images, FrontImage=front_images, BackImage=back_images,
            ))

        return InlineCard(core=core, options=meta.options)

    async def _media_fields(
        self, note: NoteContext, deck: str, front: str, back: str, offset: int, **images: Sequence[str]
    ) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for key, file_names in images.items():
            for file_name in file_names:
                if await self._upload(note, file_name, offset):
                    fields[key] = f'<img src="{file_name}">'
                    break

        languages = self._deck_languages(note, deck, offset)
        if languages is None:
            return fields
        front_lang, back_lang = languages
        if self.audio_policy.front(deck):
            sound = await self._synthesize(note, front_lang, strip_tags(front), offset)
            if sound:
                fields["FrontSound"] = f"[sound:{sound}]"
        if self.audio_policy.back(deck):
            sound = await self._synthesize(note, back_lang, strip_tags(back), offset)
            if sound:
                fields["BackSound"] = f"[sound:{sound}]"
        return fields

    async def _add_sentences(self, note: NoteContext, cards: List[InlineCard]) -> None:
        """Attach sibling sentence cards to cards that asked for them."""
        sentences = [
            f"{plain_side(card.core.fields['Front'])} - {plain_side(card.core.fields['Back'])}"
            for card in cards
            if SENTENCE_DECK.search(card.core.deck)
        ]
        if not sentences:
            return

        for card in cards:
            if not card.options.add_sentences:
                continue
            card.core.fields["Sentences"] = "<p>" + "".join(f"{s}<br/>" for s in sentences) + "</p>"
            if note.media is None:
                continue
            languages = self._deck_languages(note, card.core.deck, card.core.span.start)
            if languages is None:
                continue
            text = strip_tags(card.core.fields["Front"])
            sound = await self._synthesize(note, languages[1], text, card.core.span.start, sentences)
            if sound:
                card.core.fields["SentencesSound"] = f"[sound:{sound}]"

    def _deck_languages(self, note: NoteContext, deck: str, offset: int) -> Optional[Tuple[str, str]]:
        match = DECK_LANGUAGES.match(deck)
        if match is None:
            note.warn(
                WarningKind.UNRECOGNIZED_DECK_PATTERN,
                f"Deck '{deck}' does not name a language pair, skipping audio",
                offset,
                level=logging.DEBUG,
            )
            return None
        return match.group(1).lower(), match.group(2).lower()

    async def _upload(self, note: NoteContext, file_name: str, offset: int) -> bool:
        try:
            return await note.media.upload(file_name)
        except MediaServiceError as e:
            note.warn(WarningKind.NETWORK_FAILURE, f"Could not upload {file_name}: {e}", offset)
            return False

    async def _synthesize(
        self, note: NoteContext, lang: str, text: str, offset: int, sentences: Optional[Sequence[str]] = None
    ) -> Optional[str]:
        if not text:
            return None
        try:
            return await note.media.synthesize(lang, text, sentences)
        except MediaServiceError as e:
            note.warn(WarningKind.NETWORK_FAILURE, f"Speech synthesis failed for '{text[:40]}': {e}", offset)
            return None
