"""Card builders, one per card syntax."""

from .base import BaseBuilder, NoteContext
from .cloze import ClozeBuilder
from .inline import InlineBuilder
from .spaced import SpacedBuilder
from .tag import TagBuilder

__all__ = [
    "BaseBuilder",
    "NoteContext",
    "TagBuilder",
    "InlineBuilder",
    "SpacedBuilder",
    "ClozeBuilder",
]
