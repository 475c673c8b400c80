"""Tests for inline cards, their metadata and media hints."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from md2anki.builders import InlineBuilder, NoteContext
from md2anki.builders.inline import plain_side, split_pronunciation
from md2anki.cards import WarningKind
from md2anki.config import Config
from md2anki.media import AudioPolicy, MediaServiceError
from md2anki.spans import SpanIndex


def make_note(text, deck="Default", media=None):
    return NoteContext(
        text=text,
        index=SpanIndex.scan(text),
        deck=deck,
        vault="Vault",
        source="",
        media=media,
    )


def make_media(uploaded=True, sound="tts.mp3"):
    media = Mock()
    media.upload = AsyncMock(return_value=uploaded)
    media.synthesize = AsyncMock(return_value=sound)
    return media


def build(note, config=None, **kwargs):
    return asyncio.run(InlineBuilder(config or Config(), **kwargs).build(note))


class TestInlineCards:
    """Test parsing of Question :: Answer lines."""

    def test_basic(self):
        cards = build(make_note("Hello :: Cześć"))

        assert len(cards) == 1
        assert cards[0].kind == "inline"
        assert cards[0].core.fields == {
            "Front": "Hello",
            "FrontPronunciation": "",
            "Back": "Cześć",
            "BackPronunciation": "",
        }
        assert cards[0].core.reversed is False

    def test_reverse_separator(self):
        cards = build(make_note("Hello ::: Cześć"))

        assert cards[0].core.reversed is True
        assert cards[0].core.fields["Front"] == "Hello"
        assert cards[0].core.fields["Back"] == "Cześć"

    def test_custom_separators(self):
        config = Config()
        config.parsing.inline_separator = "=>"
        config.parsing.inline_separator_reverse = "<=>"

        cards = build(make_note("Hello <=> Cześć\nDog => Pies"), config)

        assert [c.core.reversed for c in cards] == [True, False]
        assert cards[1].core.fields["Back"] == "Pies"

    def test_pronunciation(self):
        cards = build(make_note("Hello [həˈləʊ] :: Cześć [ˈt͡ʂɛɕt͡ɕ]"))

        fields = cards[0].core.fields
        assert fields["Front"] == "Hello"
        assert fields["FrontPronunciation"] == "[həˈləʊ]"
        assert fields["Back"] == "Cześć"
        assert fields["BackPronunciation"] == "[ˈt͡ʂɛɕt͡ɕ]"

    def test_structural_lines_skipped(self):
        text = "up:: [[Parent]]\ntags:: language\nDog :: Pies"
        cards = build(make_note(text))

        assert [c.core.original_text for c in cards] == ["Dog"]

    def test_cloze_markup_not_inline(self):
        assert build(make_note("Term {c1::definition}")) == []

    def test_tags_and_identifier(self):
        cards = build(make_note("Dog :: Pies #animals/pets ^1234567890123"))

        assert cards[0].core.tags == ["animals::pets"]
        assert cards[0].core.id == 1234567890123
        assert cards[0].core.fields["Back"] == "Pies"

    def test_context(self):
        cards = build(make_note("# Lang\nHello :: Cześć\n"))

        assert cards[0].core.fields["Front"] == "Lang &gt; Hello"


class TestInlineMetadata:
    """Test the || key: value tail."""

    def test_deck_and_options(self):
        cards = build(make_note("Dog :: Pies || deck: EN-PL || options: addSentences"))

        card = cards[0]
        assert card.core.deck == "EN-PL"
        assert card.options.add_sentences is True
        assert card.core.fields["Back"] == "Pies"

    def test_short_keys(self):
        cards = build(make_note("Dog :: Pies || d: Animals || h: barks"))

        assert cards[0].core.deck == "Animals"
        assert cards[0].core.fields["Hint"] == "barks"

    def test_malformed_entry_warns(self):
        note = make_note("Dog :: Pies || bogus")
        cards = build(note)

        assert len(cards) == 1
        assert [w.kind for w in note.warnings] == [WarningKind.MALFORMED_METADATA]

    def test_unknown_option_warns(self):
        note = make_note("Dog :: Pies || options: wat")
        cards = build(note)

        assert cards[0].options.add_sentences is False
        assert note.warnings[0].kind == WarningKind.MALFORMED_METADATA

    def test_sentences_without_media(self):
        text = (
            "Dog :: Pies || options: addSentences || deck: EN-PL\n"
            "I have a dog :: Mam psa || deck: EN-PL-Sentences\n"
        )
        cards = build(make_note(text))

        assert cards[0].core.fields["Sentences"] == "<p>I have a dog - Mam psa<br/></p>"
        assert "Sentences" not in cards[1].core.fields
        assert "SentencesSound" not in cards[0].core.fields

    def test_no_sentences_without_sentence_deck(self):
        cards = build(make_note("Dog :: Pies || options: addSentences"))

        assert "Sentences" not in cards[0].core.fields


class TestInlineMedia:
    """Test speech and image hints through a media service."""

    def test_front_audio_for_language_deck(self):
        media = make_media()
        cards = build(make_note("Dog :: Pies", deck="EN-PL", media=media))

        assert cards[0].core.fields["FrontSound"] == "[sound:tts.mp3]"
        assert "BackSound" not in cards[0].core.fields
        media.synthesize.assert_awaited_once_with("en", "Dog", None)

    def test_back_audio_for_reverse_language_deck(self):
        media = make_media()
        cards = build(make_note("Pies :: Dog", deck="PL-EN", media=media))

        assert cards[0].core.fields["BackSound"] == "[sound:tts.mp3]"
        assert "FrontSound" not in cards[0].core.fields
        media.synthesize.assert_awaited_once_with("en", "Dog", None)

    def test_custom_audio_policy(self):
        media = make_media()
        policy = AudioPolicy(front=lambda deck: False, back=lambda deck: True)
        cards = build(make_note("Dog :: Pies", deck="EN-PL", media=media), audio_policy=policy)

        assert "FrontSound" not in cards[0].core.fields
        media.synthesize.assert_awaited_once_with("pl", "Pies", None)

    def test_image_hints_uploaded(self):
        media = make_media()
        cards = build(make_note("Dog [[dog.png|\U0001F5BC]] :: Pies [[hint.png|Hint]]", media=media))

        fields = cards[0].core.fields
        assert fields["FrontImage"] == '<img src="dog.png">'
        assert fields["HintImage"] == '<img src="hint.png">'
        assert "BackImage" not in fields
        assert fields["Front"] == "Dog"
        assert fields["Back"] == "Pies"
        assert media.upload.await_count == 2

    def test_failed_upload_leaves_no_image(self):
        media = make_media(uploaded=False)
        cards = build(make_note("Dog [[dog.png|\U0001F5BC]] :: Pies", media=media))

        assert "FrontImage" not in cards[0].core.fields

    def test_no_media_service_no_uploads(self):
        cards = build(make_note("Dog [[dog.png|\U0001F5BC]] :: Pies"))

        assert "FrontImage" not in cards[0].core.fields
        assert cards[0].core.fields["Front"] == "Dog"

    def test_network_failure_warns_and_keeps_card(self):
        media = make_media()
        media.synthesize.side_effect = MediaServiceError("down")
        note = make_note("Dog :: Pies", deck="EN-PL", media=media)

        cards = build(note)

        assert len(cards) == 1
        assert "FrontSound" not in cards[0].core.fields
        assert [w.kind for w in note.warnings] == [WarningKind.NETWORK_FAILURE]

    def test_unrecognized_deck_skips_audio(self):
        media = make_media()
        note = make_note("Dog :: Pies", deck="Default", media=media)

        cards = build(note)

        assert len(cards) == 1
        media.synthesize.assert_not_awaited()
        assert [w.kind for w in note.warnings] == [WarningKind.UNRECOGNIZED_DECK_PATTERN]

    def test_sentences_sound(self):
        media = make_media()
        text = (
            "Dog :: Pies || options: addSentences || deck: EN-PL\n"
            "I have a dog :: Mam psa || deck: EN-PL-Sentences\n"
        )
        cards = build(make_note(text, media=media))

        assert cards[0].core.fields["SentencesSound"] == "[sound:tts.mp3]"
        media.synthesize.assert_any_await("pl", "Dog", ["I have a dog - Mam psa"])


@pytest.mark.parametrize("html,expected", [
    ("Hello [hɛˈləʊ]", ("Hello", "[hɛˈləʊ]")),
    ("Hello", ("Hello", "")),
    ("Hi [sound:hi.mp3]", ("Hi [sound:hi.mp3]", "")),
])
def test_split_pronunciation(html, expected):
    assert split_pronunciation(html) == expected


def test_plain_side_strips_paragraphs_and_anchors():
    assert plain_side('<p><a href="x">Dog</a></p>') == "Dog"
