"""
md2anki: Extract Anki flashcards from markdown notes.
"""

__version__ = "0.1.0"

from .cards import ClozeCard, InlineCard, SpacedCard, TagCard
from .config import Config
from .engine import ExtractionEngine, ExtractionResult

__all__ = [
    "Config",
    "ExtractionEngine",
    "ExtractionResult",
    "TagCard",
    "InlineCard",
    "SpacedCard",
    "ClozeCard",
]
