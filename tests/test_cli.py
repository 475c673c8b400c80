"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from md2anki import __version__
from md2anki.cli import app
from md2anki.config import Config
from md2anki.io import load_cards_json

runner = CliRunner()


@pytest.fixture
def note(tmp_path):
    vault = tmp_path / "vault"
    (vault / ".obsidian").mkdir(parents=True)
    path = vault / "cells.md"
    path.write_text("What is ATP? #card\nEnergy\n\nDog :: Pies\n", encoding="utf-8")
    return path


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"md2anki version {__version__}" in result.output


def test_extract_previews_cards(note):
    result = runner.invoke(app, ["extract", str(note)])

    assert result.exit_code == 0
    assert "Card Preview" in result.output
    assert "Summary: 2 total cards" in result.output


def test_extract_writes_json(note, tmp_path):
    json_path = tmp_path / "cards.json"

    result = runner.invoke(app, ["extract", str(note.parent), "--json", str(json_path), "--tag", "extra"])

    assert result.exit_code == 0
    cards = load_cards_json(json_path)
    assert len(cards) == 2
    assert all("extra" in card.core.tags for card in cards)


def test_extract_with_config(note, tmp_path):
    config = Config()
    config.builders.inline.enabled = False
    config_path = tmp_path / "md2anki.yaml"
    config.to_yaml(config_path)
    json_path = tmp_path / "cards.json"

    result = runner.invoke(app, ["extract", str(note), "--config", str(config_path), "--json", str(json_path)])

    assert result.exit_code == 0
    assert [card.kind for card in load_cards_json(json_path)] == ["tag"]


def test_extract_without_notes(tmp_path):
    """Test that an empty folder is an error."""
    with patch("md2anki.cli.console") as mock_console:
        try:
            app(["extract", str(tmp_path)])
            assert False, "Expected typer.Exit to be raised"
        except SystemExit as e:
            assert e.code == 1

        mock_console.print.assert_called()


def test_ids_lists_markers(tmp_path):
    path = tmp_path / "note.md"
    path.write_text("Q #card\nA\n^1111111111111\n\n^2222222222222\n", encoding="utf-8")

    result = runner.invoke(app, ["ids", str(path)])

    assert result.exit_code == 0
    assert "1111111111111" in result.output
    assert "Summary: 1 deletion candidates" in result.output


def test_ids_missing_note(tmp_path):
    result = runner.invoke(app, ["ids", str(tmp_path / "missing.md")])

    assert result.exit_code == 1


def test_validate_note(note):
    result = runner.invoke(app, ["validate", str(note)])

    assert result.exit_code == 0
    assert "Validation successful" in result.output


def test_init_writes_config(tmp_path):
    target = tmp_path / "md2anki.yaml"

    result = runner.invoke(app, ["init", str(target)])

    assert result.exit_code == 0
    assert Config.from_yaml(target).parsing.flashcards_tag == "card"

    again = runner.invoke(app, ["init", str(target)])
    assert again.exit_code == 1
