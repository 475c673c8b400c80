"""Configuration management using Pydantic."""

from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BuilderName(str, Enum):
    """Card syntaxes recognized in notes."""
    TAG = "tag"
    INLINE = "inline"
    SPACED = "spaced"
    CLOZE = "cloze"


class ParsingConfig(BaseModel):
    """How cards are recognized and assembled."""
    context_aware_mode: bool = True
    source_support: bool = False
    inline_id: bool = False
    context_separator: str = " > "
    flashcards_tag: str = "card"
    inline_separator: str = "::"
    inline_separator_reverse: str = ":::"
    default_anki_tag: Optional[str] = "obsidian"

    @field_validator("flashcards_tag")
    @classmethod
    def strip_hash(cls, v):
        v = v.strip().lstrip("#")
        if not v:
            raise ValueError("flashcards_tag must not be empty")
        return v

    @field_validator("inline_separator", "inline_separator_reverse")
    @classmethod
    def non_empty_separator(cls, v):
        if not v or not v.strip():
            raise ValueError("inline separators must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def distinct_separators(self):
        if self.inline_separator == self.inline_separator_reverse:
            raise ValueError("inline_separator and inline_separator_reverse must differ")
        return self


class DeckConfig(BaseModel):
    """Deck selection defaults."""
    default_deck: str = "Default"
    folder_based_deck: bool = True


class MediaConfig(BaseModel):
    """Local media helper service (speech synthesis and media upload)."""
    enabled: bool = False
    base_url: str = "http://localhost:9179"
    anki_dir: str = ""
    obsidian_dir: str = ""
    timeout: int = 30

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class BuilderConfig(BaseModel):
    """Individual builder configuration."""
    enabled: bool = True


class BuildersConfig(BaseModel):
    """All card builders configuration."""
    tag: BuilderConfig = Field(default_factory=BuilderConfig)
    inline: BuilderConfig = Field(default_factory=BuilderConfig)
    spaced: BuilderConfig = Field(default_factory=BuilderConfig)
    cloze: BuilderConfig = Field(default_factory=BuilderConfig)

    def enabled_names(self) -> list:
        """Names of enabled builders, in execution order."""
        return [name.value for name in BuilderName if getattr(self, name.value).enabled]


class Config(BaseSettings):
    """Complete md2anki configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MD2ANKI_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    parsing: ParsingConfig = Field(default_factory=ParsingConfig)
    decks: DeckConfig = Field(default_factory=DeckConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    builders: BuildersConfig = Field(default_factory=BuildersConfig)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Config":
        """Load configuration from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, indent=2, allow_unicode=True)
