"""End-to-end tests for the extraction engine."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from md2anki.config import Config
from md2anki.engine import ExtractionEngine

MIXED_NOTE = """# Biology
## Cells
What is ATP? #card
Energy currency

Mitochondria :: Powerhouse #bio

The ==nucleus== holds DNA

Recall the cell cycle #card/spaced

```
Hidden #card
Inside code
```
"""


def extract(text, engine=None, **kwargs):
    kwargs.setdefault("deck", "Default")
    kwargs.setdefault("vault", "Vault")
    kwargs.setdefault("note_title", "Note")
    return (engine or ExtractionEngine()).extract_sync(text, **kwargs)


class TestExtraction:
    """Test the whole extraction pipeline."""

    def test_mixed_note(self):
        cards = extract(MIXED_NOTE)

        assert [card.kind for card in cards] == ["tag", "inline", "cloze", "spaced"]
        assert all("obsidian" in card.core.tags for card in cards)

    def test_spans_within_note(self):
        cards = extract(MIXED_NOTE)

        for card in cards:
            assert 0 <= card.core.span.start < card.core.span.end <= len(MIXED_NOTE)

    def test_sorted_by_end_offset(self):
        cards = extract("Dog :: Pies\n\nQ #card\nA\n")

        assert [card.kind for card in cards] == ["inline", "tag"]
        ends = [card.core.span.end for card in cards]
        assert ends == sorted(ends)

    def test_card_in_code_fence_dropped(self):
        assert extract("```\nQ #card\nA\n```\n") == []

    def test_card_around_code_fence_kept(self):
        cards = extract("What prints? #card\n```python\nprint(1)\n```\n")

        assert len(cards) == 1
        assert cards[0].core.contains_code is True

    def test_card_starting_in_fence_and_ending_outside_kept(self):
        cards = extract("```\nQ #card\nA\n```\n\n```\nx\n```\nafter\n")

        assert [card.kind for card in cards] == ["tag"]

    def test_card_in_math_block_dropped(self):
        assert extract("$$\nx :: y\n$$\n") == []

    def test_card_containing_math_kept(self):
        cards = extract("Sum $a+b$ :: total\n")

        assert len(cards) == 1
        assert cards[0].core.fields["Front"] == "Sum \\(a+b\\)"

    def test_end_to_end_inline(self):
        cards = extract("# Lang\nHello :: Cześć #card\n")

        assert len(cards) == 1
        card = cards[0]
        assert card.kind == "inline"
        assert "Lang" in card.core.fields["Front"]
        assert card.core.fields["Front"].endswith("Hello")
        assert card.core.fields["Back"] == "Cześć"
        assert card.core.tags == ["card", "obsidian"]

    def test_end_to_end_cloze(self):
        cards = extract("Paris is the capital of {France} ^1111111111111")

        assert len(cards) == 1
        card = cards[0]
        assert card.kind == "cloze"
        assert card.core.id == 1111111111111
        assert card.core.inserted is True
        assert "{{c1::France}}" in card.core.fields["Text"]

    def test_global_tags_and_embeds(self):
        cards = extract(
            "Q #card\n![[Other]]\n",
            global_tags=["lang::pl"],
            embeds={"Other": "Embedded answer"},
        )

        assert cards[0].core.tags == ["lang::pl", "obsidian"]
        assert "Embedded answer" in cards[0].core.fields["Back"]

    def test_source_support(self):
        config = Config()
        config.parsing.source_support = True

        cards = extract("Q #card\nA\n", ExtractionEngine(config), vault="My Vault", note_title="Cells")

        assert cards[0].core.fields["Source"] == (
            '<a href="obsidian://open?vault=My%20Vault&amp;file=Cells.md">Cells</a>'
        )

    def test_no_default_tag(self):
        config = Config()
        config.parsing.default_anki_tag = None

        cards = extract("Q #card\nA\n", ExtractionEngine(config))

        assert cards[0].core.tags == []

    def test_disabled_builder(self):
        config = Config()
        config.builders.inline.enabled = False

        cards = extract("Dog :: Pies\n\nQ #card\nA\n", ExtractionEngine(config))

        assert [card.kind for card in cards] == ["tag"]

    def test_custom_renderer(self):
        engine = ExtractionEngine(renderer=lambda text: f"<div>{text}</div>")

        cards = extract("Q #card\nA\n", engine)

        assert cards[0].core.fields["Front"] == "<div>Q</div>"

    def test_warnings_reported(self):
        result = asyncio.run(
            ExtractionEngine().extract_detailed("Dog :: Pies || bogus", "Default", "Vault", "Note")
        )

        assert len(result.cards) == 1
        assert [w.kind for w in result.warnings] == ["malformed_metadata"]


class TestMedia:
    """Test media wiring through the engine."""

    def test_injected_media_service(self):
        media = Mock()
        media.upload = AsyncMock(return_value=True)
        media.synthesize = AsyncMock(return_value="dog.mp3")

        cards = extract("Dog :: Pies\n", ExtractionEngine(media=media), deck="EN-PL")

        assert cards[0].core.fields["FrontSound"] == "[sound:dog.mp3]"

    def test_http_client_unused_without_inline_cards(self):
        config = Config()
        config.media.enabled = True

        cards = extract("Q #card\nA\n", ExtractionEngine(config))

        assert len(cards) == 1


class TestInvocation:
    """Test invalid calls."""

    def test_none_note_rejected(self):
        with pytest.raises(TypeError):
            ExtractionEngine().extract_sync(None, "Default", "Vault", "Note")

    def test_empty_deck_rejected(self):
        with pytest.raises(ValueError):
            ExtractionEngine().extract_sync("Q #card\nA\n", "", "Vault", "Note")


class TestIdentifiers:
    """Test identifier helpers exposed by the engine."""

    def test_deletion_candidates(self):
        engine = ExtractionEngine()

        assert engine.find_deletion_candidates("Q #card\nA\n^1111111111111\n\n^2222222222222\n") == [2222222222222]

    def test_existing_ids(self):
        matches = ExtractionEngine().find_existing_ids("Q #card\nA\n^1111111111111\n")

        assert [int(m.group(1)) for m in matches] == [1111111111111]

    def test_write_identifiers_next_line(self):
        engine = ExtractionEngine()
        text = "Q #card\nA\n"
        cards = extract(text, engine)

        updated = engine.write_identifiers(text, [(cards[0], 1234567890123)])

        assert updated == "Q #card\nA\n^1234567890123\n"
        assert extract(updated, engine)[0].core.id == 1234567890123

    def test_write_identifiers_inline(self):
        config = Config()
        config.parsing.inline_id = True
        engine = ExtractionEngine(config)
        text = "Q #card\nA\n"
        cards = extract(text, engine)

        updated = engine.write_identifiers(text, [(cards[0], 1234567890123)])

        assert updated == "Q #card\nA ^1234567890123\n"
        assert extract(updated, engine)[0].core.id == 1234567890123
