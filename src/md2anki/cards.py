"""Card model: a closed set of card kinds sharing a common core."""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from .spans import Span


class CardKind(str, Enum):
    TAG = "tag"
    INLINE = "inline"
    SPACED = "spaced"
    CLOZE = "cloze"


class CardOption(str, Enum):
    """Option keys accepted in an inline card's ``options:`` metadata."""
    ADD_SENTENCES = "addSentences"


class CardOptions(BaseModel):
    add_sentences: bool = False


class CardCore(BaseModel):
    """Attributes every card carries."""

    id: int = -1
    deck: str
    original_text: str
    fields: Dict[str, str]
    reversed: bool = False
    span: Span
    tags: List[str] = Field(default_factory=list)
    inserted: bool = False
    media: List[str] = Field(default_factory=list)
    contains_code: bool = False

    @model_validator(mode="after")
    def id_matches_inserted(self):
        if (self.id != -1) != self.inserted:
            raise ValueError("a card is inserted exactly when it carries an id")
        return self

    def add_tag(self, tag: str) -> None:
        if tag and tag not in self.tags:
            self.tags.append(tag)


class TagCard(BaseModel):
    """Question ending in the card tag, answer on the following lines."""
    kind: Literal["tag"] = "tag"
    core: CardCore


class InlineCard(BaseModel):
    """``Question :: Answer`` on a single line."""
    kind: Literal["inline"] = "inline"
    core: CardCore
    options: CardOptions = Field(default_factory=CardOptions)


class SpacedCard(BaseModel):
    """Single prompt for spaced recall, no answer."""
    kind: Literal["spaced"] = "spaced"
    core: CardCore


class ClozeCard(BaseModel):
    """Line with ``{...}`` or ``==...==`` deletions."""
    kind: Literal["cloze"] = "cloze"
    core: CardCore
    hint: str = ""
    extra: str = ""


Card = Annotated[Union[TagCard, InlineCard, SpacedCard, ClozeCard], Field(discriminator="kind")]

card_list_adapter = TypeAdapter(List[Card])


class WarningKind(str, Enum):
    MALFORMED_METADATA = "malformed_metadata"
    UNRECOGNIZED_DECK_PATTERN = "unrecognized_deck_pattern"
    NETWORK_FAILURE = "network_failure"


class ExtractionWarning(BaseModel):
    """A recoverable problem met while building a card."""
    kind: WarningKind
    message: str
    offset: Optional[int] = None
