"""Single-pass index of structural spans in a note."""

import logging
from enum import Enum
from typing import Iterable, List, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .patterns import MATH_INLINE, STRUCTURE

logger = logging.getLogger(__name__)


class Heading(BaseModel):
    """A markdown heading and its offset in the note."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, le=6)
    text: str
    offset: int = Field(ge=0)


class SpanKind(str, Enum):
    """Kinds of structural spans."""
    HEADING = "heading"
    CODE_BLOCK = "code_block"
    MATH_BLOCK = "math_block"
    MATH_INLINE = "math_inline"


class Span(BaseModel):
    """Half-open character range ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def ordered(self):
        if self.end < self.start:
            raise ValueError(f"span end {self.end} precedes start {self.start}")
        return self

    def contains(self, other: "Span") -> bool:
        return other.start >= self.start and other.end <= self.end

    def __len__(self) -> int:
        return self.end - self.start


class TypedSpan(Span):
    """A structural span tagged with its kind."""
    kind: SpanKind


class SpanIndex:
    """Structural spans of one note, found in a single tokenizing pass.

    Fenced code is consumed whole, so headings and math inside a code block
    are not recorded. Inline math on a heading line is recorded after the
    heading span.
    """

    def __init__(self, text: str, spans: Sequence[TypedSpan], headings: Sequence[Heading]):
        self.text = text
        self.spans = list(spans)
        self.headings = list(headings)

    @classmethod
    def scan(cls, text: str) -> "SpanIndex":
        spans: List[TypedSpan] = []
        headings: List[Heading] = []

        for m in STRUCTURE.finditer(text):
            if m.group("code") is not None:
                kind = SpanKind.CODE_BLOCK
            elif m.group("math_block") is not None:
                kind = SpanKind.MATH_BLOCK
            elif m.group("heading") is not None:
                kind = SpanKind.HEADING
                headings.append(Heading(
                    level=len(m.group("level")),
                    text=m.group("title").strip(),
                    offset=m.start(),
                ))
            else:
                kind = SpanKind.MATH_INLINE
            spans.append(TypedSpan(kind=kind, start=m.start(), end=m.end()))

            # A heading match takes its whole line, including any inline math on it
            if kind is SpanKind.HEADING:
                spans.extend(
                    TypedSpan(kind=SpanKind.MATH_INLINE, start=m.start() + math.start(), end=m.start() + math.end())
                    for math in MATH_INLINE.finditer(m.group(0))
                )

        logger.debug(f"Indexed {len(spans)} structural spans ({len(headings)} headings)")
        return cls(text, spans, headings)

    def of_kind(self, *kinds: SpanKind) -> List[TypedSpan]:
        return [span for span in self.spans if span.kind in kinds]

    @property
    def math_ranges(self) -> List[TypedSpan]:
        return self.of_kind(SpanKind.MATH_BLOCK, SpanKind.MATH_INLINE)

    @property
    def discard_ranges(self) -> List[TypedSpan]:
        """Ranges whose wholly-contained cards are dropped."""
        return self.of_kind(SpanKind.CODE_BLOCK, SpanKind.MATH_BLOCK, SpanKind.MATH_INLINE)

    def in_math(self, start: int, end: int) -> bool:
        """Whether ``[start, end)`` lies wholly inside a math span."""
        target = Span(start=start, end=end)
        return any(span.contains(target) for span in self.math_ranges)


CardT = TypeVar("CardT")


def filter_contained(cards: Iterable[CardT], ranges: Sequence[Span]) -> List[CardT]:
    """Drop cards whose span lies wholly inside any of ``ranges``.

    Cards that straddle a range boundary are kept.
    """
    kept = []
    for card in cards:
        span = card.core.span
        if any(r.contains(span) for r in ranges):
            logger.debug(f"Discarding card at {span.start}-{span.end} inside a code or math range")
            continue
        kept.append(card)
    return kept
