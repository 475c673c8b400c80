"""Command-line interface for md2anki."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import Config
from .engine import ExtractionEngine, ExtractionResult
from .ids import find_deletion_candidates, find_existing_ids
from .io import (
    find_markdown_files,
    find_vault_root,
    load_embeds,
    note_deck,
    note_global_tags,
    preview_cards,
    read_note,
    save_cards_json,
)
from .validate import CardValidator

app = typer.Typer(
    name="md2anki",
    help="Extract Anki flashcards from markdown notes",
    add_completion=False,
)
console = Console()


def _load_config(config_path: Optional[Path], verbose: bool = False) -> Config:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("md2anki").setLevel(logging.DEBUG)
    if config_path:
        return Config.from_yaml(config_path)
    return Config()


def _extract_note(
    engine: ExtractionEngine,
    note_path: Path,
    deck: Optional[str],
    vault: Optional[str],
    tags: List[str],
) -> Tuple[str, ExtractionResult]:
    text = read_note(note_path)
    vault_root = find_vault_root(note_path)
    note_tags = note_global_tags(text) + [t for t in tags if t]
    result = asyncio.run(engine.extract_detailed(
        text,
        deck=deck or note_deck(text, note_path, vault_root, engine.config.decks),
        vault=vault or vault_root.name,
        note_title=note_path.stem,
        global_tags=note_tags,
        embeds=load_embeds(text, vault_root),
    ))
    return text, result


@app.command()
def extract(
    paths: List[Path] = typer.Argument(..., help="Markdown notes or folders to scan"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    deck: Optional[str] = typer.Option(None, "--deck", "-d", help="Deck for every card (overrides note and folder decks)"),
    vault: Optional[str] = typer.Option(None, "--vault", help="Vault name used in note links"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Extra tag for every card (repeatable)"),
    json_path: Optional[Path] = typer.Option(None, "--json", help="Write the extracted cards to a JSON file"),
    n: int = typer.Option(10, "--n", help="Number of cards to preview per note"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Extract cards from notes and preview them."""
    try:
        config = _load_config(config_path, verbose)
        engine = ExtractionEngine(config)
        notes = find_markdown_files(paths)
        if not notes:
            console.print("⚠️  No markdown notes found", style="yellow")
            raise typer.Exit(code=1)

        all_cards = []
        for note_path in notes:
            console.print(f"📄 {note_path}", style="bold blue")
            _, result = _extract_note(engine, note_path, deck, vault, tags)
            all_cards.extend(result.cards)
            preview_cards(result.cards, console, max_cards=n)
            for warning in result.warnings:
                console.print(f"  ⚠️  {escape(warning.message)}", style="yellow")

        if json_path:
            save_cards_json(all_cards, json_path)
            console.print(f"💾 Saved {len(all_cards)} cards to {json_path}", style="green")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"❌ Error during extraction: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)


@app.command()
def ids(
    note_path: Path = typer.Argument(..., help="Markdown note to inspect"),
) -> None:
    """List identifier markers and the ones no longer attached to a card."""
    try:
        text = read_note(note_path)
    except FileNotFoundError as e:
        console.print(f"❌ {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)

    orphans = set(find_deletion_candidates(text))
    table = Table(title=f"Identifier markers in {note_path.name}")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Offset", style="magenta")
    table.add_column("Status", style="yellow")
    for match in find_existing_ids(text):
        card_id = int(match.group(1))
        table.add_row(str(card_id), str(match.start()), "delete" if card_id in orphans else "linked")
    console.print(table)
    console.print(f"\nSummary: {len(orphans)} deletion candidates")


@app.command()
def validate(
    note_path: Path = typer.Argument(..., help="Markdown note to validate"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    media_path: Optional[Path] = typer.Option(None, "--media", help="Folder holding referenced media files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Extract cards from a note and check them for problems."""
    console.print("🔍 Validating cards...", style="bold blue")

    try:
        config = _load_config(config_path, verbose)
        text, result = _extract_note(ExtractionEngine(config), note_path, None, None, [])
        validator = CardValidator(media_path=media_path, source_support=config.parsing.source_support)
        report = validator.validate_cards(result.cards, text, verbose=verbose)
    except Exception as e:
        console.print(f"❌ Error during validation: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)

    for warning in report["warnings"]:
        console.print(f"  ⚠️  {escape(warning)}", style="yellow")
    if report["valid"]:
        kinds = ", ".join(f"{kind}: {count}" for kind, count in report["kinds"].items()) or "none"
        console.print(Panel.fit(
            f"✅ Validation successful!\n\n"
            f"Total cards: {report['total_cards']}\n"
            f"Kinds: {kinds}\n"
            f"New cards: {report['new_cards']}",
            title="Valid",
            style="green"
        ))
    else:
        console.print("❌ Validation failed:", style="bold red")
        for error in report["errors"]:
            console.print(f"  • {escape(error)}", style="red")
        raise typer.Exit(code=1)


@app.command()
def init(
    target: Path = typer.Argument(Path("md2anki.yaml"), help="Where to write the example configuration"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing files"),
) -> None:
    """Write an example configuration file."""
    if target.exists() and not force:
        console.print(f"⚠️  {target} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)

    target.parent.mkdir(parents=True, exist_ok=True)
    Config().to_yaml(target)
    console.print(Panel.fit(
        f"📝 Created example configuration: {target}\n\n"
        "Next steps:\n"
        "1. Adjust the card tag and separators under 'parsing'\n"
        "2. Enable 'media' if the local media helper is running\n"
        f"3. Run: md2anki extract NOTES --config {target}",
        title="Success",
        style="green"
    ))


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"md2anki version {__version__}")


if __name__ == "__main__":
    app()
