"""Base builder class and the per-note state builders share."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..cards import Card, CardCore, CardKind, CardOption, CardOptions, ExtractionWarning, WarningKind
from ..config import Config
from ..context import resolve_context
from ..media import AudioPolicy, MediaService
from ..normalize import Normalizer, strip_tags
from ..patterns import HTML_CODE_SPAN, METADATA_DELIMITER, TAG_HIERARCHY, TRAILING_ID, compile_card_patterns
from ..spans import Span, SpanIndex

logger = logging.getLogger(__name__)

DECK_KEYS = ("deck", "d")
HINT_KEYS = ("hint", "h")
OPTION_KEYS = ("options", "o")


@dataclass
class NoteContext:
    """Everything builders need to know about the note being extracted."""
    text: str
    index: SpanIndex
    deck: str
    vault: str
    source: str
    global_tags: Sequence[str] = ()
    embeds: Mapping[str, str] = field(default_factory=dict)
    media: Optional[MediaService] = None
    warnings: List[ExtractionWarning] = field(default_factory=list)

    def warn(self, kind: WarningKind, message: str, offset: Optional[int] = None, level: int = logging.WARNING) -> None:
        logger.log(level, f"{message} (offset {offset})")
        self.warnings.append(ExtractionWarning(kind=kind, message=message, offset=offset))


@dataclass
class Metadata:
    """Values read from a ``|| key: value`` tail."""
    deck: Optional[str] = None
    hint: Optional[str] = None
    options: CardOptions = field(default_factory=CardOptions)


def split_metadata(text: str) -> Tuple[str, List[str]]:
    """Split ``text`` into its body and the ``||``-delimited tail entries."""
    head, *tail = text.split(METADATA_DELIMITER)
    return head, tail


class BaseBuilder(ABC):
    """Base class for all card builders."""

    kind: CardKind

    def __init__(
        self,
        config: Config,
        normalizer: Optional[Normalizer] = None,
        audio_policy: Optional[AudioPolicy] = None,
    ):
        self.config = config
        self.parsing = config.parsing
        self.normalizer = normalizer or Normalizer()
        self.audio_policy = audio_policy or AudioPolicy()
        self.patterns = compile_card_patterns(config.parsing)

    @property
    @abstractmethod
    def pattern(self) -> re.Pattern:
        """Pattern locating this builder's card candidates."""

    @abstractmethod
    def build(self, note: NoteContext) -> List[Card]:
        """Build every card of this kind found in the note."""

    @property
    def name(self) -> str:
        return self.kind.value

    def heading_level(self, match: re.Match) -> int:
        heading = match.group("heading")
        return len(heading.strip()) if heading and heading.strip() else -1

    def context_chain(self, note: NoteContext, match: re.Match, level: int) -> List[str]:
        if not self.parsing.context_aware_mode:
            return []
        return resolve_context(note.index.headings, match.start() - 1, level)

    def with_context(self, chain: Sequence[str], text: str) -> str:
        return self.parsing.context_separator.join([*chain, text])

    def render(self, note: NoteContext, text: str) -> str:
        return self.normalizer.render_line(text, note.vault)

    def parse_tags(self, note: NoteContext, captured: Optional[str]) -> List[str]:
        """Global tags followed by the card's own ``#tags``, hierarchy mapped to ``::``."""
        tags = list(note.global_tags)
        for raw in (captured or "").split("#"):
            raw = raw.strip()
            if not raw:
                continue
            tag = TAG_HIERARCHY.sub("::", raw)
            if tag not in tags:
                tags.append(tag)
        return tags

    def parse_identifier(self, match: re.Match, text: str = "") -> Tuple[int, str]:
        """Return the recovered id (-1 when absent) and ``text`` without a trailing marker."""
        if match.group("id"):
            return int(match.group("id")), text
        trailing = TRAILING_ID.search(text)
        if trailing:
            return int(trailing.group(1)), text[:trailing.start()]
        return -1, text

    def parse_metadata(self, note: NoteContext, entries: Sequence[str], offset: int, allow_options: bool = False) -> Metadata:
        meta = Metadata()
        for entry in entries:
            pair = entry.split(":")
            if len(pair) != 2:
                note.warn(WarningKind.MALFORMED_METADATA, f"Metadata entry '{entry.strip()}' is not a 'key: value' pair", offset)
                continue
            key = strip_tags(pair[0]).lower()
            value = strip_tags(pair[1])
            if key in DECK_KEYS:
                meta.deck = value
            elif key in HINT_KEYS:
                meta.hint = value
            elif allow_options and key in OPTION_KEYS:
                meta.options = self._parse_options(note, value, offset)
            else:
                note.warn(WarningKind.MALFORMED_METADATA, f"Unknown metadata key '{key}'", offset)
        return meta

    def _parse_options(self, note: NoteContext, value: str, offset: int) -> CardOptions:
        options = CardOptions()
        for item in value.split(","):
            name, _, raw = item.partition("=")
            name = name.strip()
            if not name:
                continue
            if name.lower() == CardOption.ADD_SENTENCES.value.lower():
                options.add_sentences = raw.strip().lower() not in ("false", "0", "no")
            else:
                note.warn(WarningKind.MALFORMED_METADATA, f"Unknown card option '{name}'", offset)
        return options

    def contains_code(self, *fields: str) -> bool:
        return any(HTML_CODE_SPAN.search(value) for value in fields if value)

    def make_core(
        self,
        note: NoteContext,
        match: re.Match,
        *,
        original_text: str,
        fields: Dict[str, str],
        tags: List[str],
        identifier: int,
        media: List[str],
        deck: Optional[str] = None,
        reversed: bool = False,
    ) -> CardCore:
        """Assemble the shared card attributes, adding ``Source`` when enabled."""
        code = self.contains_code(*fields.values())
        if self.parsing.source_support:
            fields["Source"] = note.source
        return CardCore(
            id=identifier,
            deck=deck or note.deck,
            original_text=original_text,
            fields=fields,
            reversed=reversed,
            span=Span(start=match.start(), end=match.end()),
            tags=tags,
            inserted=identifier != -1,
            media=media,
            contains_code=code,
        )
