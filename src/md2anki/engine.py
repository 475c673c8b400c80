"""Extraction engine: runs every enabled builder over a note."""

import asyncio
import inspect
import logging
from contextlib import AsyncExitStack
from typing import Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from .builder_registry import BuilderRegistry, get_builder_registry
from .builders import BaseBuilder, NoteContext
from .cards import Card, ExtractionWarning
from .config import Config
from .ids import find_deletion_candidates, find_existing_ids, write_identifiers
from .media import AudioPolicy, HttpMediaService, MediaService
from .normalize import Normalizer, rewrite_note_links
from .render import Renderer
from .spans import SpanIndex, filter_contained

logger = logging.getLogger(__name__)


class ExtractionResult(BaseModel):
    cards: List[Card] = Field(default_factory=list)
    warnings: List[ExtractionWarning] = Field(default_factory=list)


class ExtractionEngine:
    """
    Extracts flashcards from markdown notes.

    Builders run independently over the whole note; their cards are pooled,
    cards lying inside code or math are dropped, and the rest are ordered by
    the offset where they end.

    Args:
        config: Configuration; defaults apply when omitted
        media: Media backend for uploads and speech. When omitted and
            ``config.media.enabled`` is set, an HTTP client is opened for
            each extraction and closed afterwards.
        renderer: Markdown to HTML callable replacing the default renderer
        audio_policy: Deck predicates choosing which sides get speech
        registry: Builder registry; the global one by default
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        media: Optional[MediaService] = None,
        renderer: Optional[Renderer] = None,
        audio_policy: Optional[AudioPolicy] = None,
        registry: Optional[BuilderRegistry] = None,
    ):
        self.config = config or Config()
        self.media = media
        self.normalizer = Normalizer(renderer)
        self.audio_policy = audio_policy or AudioPolicy()
        self.builders = self._create_builders(registry or get_builder_registry())

    def _create_builders(self, registry: BuilderRegistry) -> List[BaseBuilder]:
        builders = []
        for name in self.config.builders.enabled_names():
            builder = registry.create_builder(
                name, self.config, normalizer=self.normalizer, audio_policy=self.audio_policy
            )
            if builder is not None:
                builders.append(builder)
        logger.debug(f"Enabled builders: {[b.name for b in builders]}")
        return builders

    async def extract(
        self,
        note_text: str,
        deck: str,
        vault: str,
        note_title: str,
        global_tags: Iterable[str] = (),
        embeds: Optional[Mapping[str, str]] = None,
    ) -> List[Card]:
        """Extract the cards of one note."""
        result = await self.extract_detailed(note_text, deck, vault, note_title, global_tags, embeds)
        return result.cards

    async def extract_detailed(
        self,
        note_text: str,
        deck: str,
        vault: str,
        note_title: str,
        global_tags: Iterable[str] = (),
        embeds: Optional[Mapping[str, str]] = None,
    ) -> ExtractionResult:
        """Extract the cards of one note along with the warnings raised on the way."""
        if not isinstance(note_text, str):
            raise TypeError(f"note_text must be a string, got {type(note_text).__name__}")
        if not deck:
            raise ValueError("A deck name is required")

        async with AsyncExitStack() as stack:
            media = self.media
            if media is None and self.config.media.enabled:
                media = await stack.enter_async_context(HttpMediaService(self.config.media))

            index = SpanIndex.scan(note_text)
            note = NoteContext(
                text=note_text,
                index=index,
                deck=deck,
                vault=vault,
                source=rewrite_note_links(f"[[{note_title}]]", vault),
                global_tags=list(global_tags),
                embeds=dict(embeds or {}),
                media=media,
            )

            cards: List[Card] = []
            for builder in self.builders:
                built = builder.build(note)
                if inspect.isawaitable(built):
                    built = await built
                cards.extend(built)

        cards = filter_contained(cards, index.discard_ranges)
        cards.sort(key=lambda card: card.core.span.end)

        default_tag = self.config.parsing.default_anki_tag
        if default_tag:
            for card in cards:
                card.core.add_tag(default_tag)

        logger.info(f"Extracted {len(cards)} cards from '{note_title}' ({len(note.warnings)} warnings)")
        return ExtractionResult(cards=cards, warnings=note.warnings)

    def extract_sync(self, *args, **kwargs) -> List[Card]:
        """Blocking wrapper around :meth:`extract`."""
        return asyncio.run(self.extract(*args, **kwargs))

    def find_deletion_candidates(self, note_text: str) -> List[int]:
        return find_deletion_candidates(note_text)

    def find_existing_ids(self, note_text: str):
        return find_existing_ids(note_text)

    def write_identifiers(self, note_text: str, assignments: Iterable[Tuple[Card, int]]) -> str:
        """Insert id markers for new cards, placed as configured by ``parsing.inline_id``."""
        return write_identifiers(note_text, assignments, inline=self.config.parsing.inline_id)
