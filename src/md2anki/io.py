"""I/O utilities: reading notes from a vault and exporting cards."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cards import Card, card_list_adapter
from .config import DeckConfig
from .patterns import CARDS_DECK_LINE, EMBED, FRONTMATTER, GLOBAL_TAG_TOKEN, GLOBAL_TAGS_LINE, TAG_HIERARCHY

logger = logging.getLogger(__name__)


def read_note(note_path: Path) -> str:
    """Read a markdown note."""
    if not note_path.exists():
        raise FileNotFoundError(f"Note not found: {note_path}")
    return note_path.read_text(encoding="utf-8")


def find_vault_root(note_path: Path) -> Path:
    """
    Walk up from the note to the folder holding ``.obsidian/``.

    Falls back to the note's own folder when there is none.
    """
    current = note_path.resolve().parent
    while current != current.parent:
        if (current / ".obsidian").exists():
            logger.debug(f"Vault root found: {current}")
            return current
        current = current.parent

    fallback = note_path.resolve().parent
    logger.debug(f"No .obsidian folder found, using {fallback}")
    return fallback


def find_markdown_files(paths: List[Path], recursive: bool = True) -> List[Path]:
    """Find markdown notes among files and directories."""
    notes = []
    for path in paths:
        path = Path(path)
        if path.is_file() and path.suffix.lower() == ".md":
            notes.append(path)
        elif path.is_dir():
            notes.extend(path.rglob("*.md") if recursive else path.glob("*.md"))

    # Skip the vault's own settings folder
    notes = sorted({note for note in notes if ".obsidian" not in note.parts})
    logger.info(f"Found {len(notes)} markdown files")
    return notes


def note_deck(note_text: str, note_path: Path, vault_root: Path, config: DeckConfig) -> str:
    """
    Deck for a note: a ``cards-deck:`` line wins, then the note's folder
    inside the vault (when folder based decks are on), then the default deck.
    """
    declared = CARDS_DECK_LINE.search(note_text)
    if declared:
        return declared.group("deck")

    if config.folder_based_deck:
        try:
            folder = note_path.resolve().parent.relative_to(vault_root.resolve())
        except ValueError:
            folder = Path()
        if folder.parts:
            return "::".join(folder.parts)

    return config.default_deck


def _normalize_tag(tag: str) -> str:
    return TAG_HIERARCHY.sub("::", tag.strip().lstrip("#"))


def note_global_tags(note_text: str) -> List[str]:
    """Tags applying to every card of a note, from frontmatter or a ``tags:`` line."""
    tokens: List[str] = []

    frontmatter = FRONTMATTER.match(note_text)
    if frontmatter:
        try:
            data = yaml.safe_load(frontmatter.group("body")) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Ignoring unparsable frontmatter: {e}")
            data = {}
        tags = data.get("tags") if isinstance(data, dict) else None
        if isinstance(tags, list):
            tokens = [str(tag) for tag in tags if tag is not None]
        elif isinstance(tags, str):
            tokens = _split_tag_line(tags)
    else:
        line = GLOBAL_TAGS_LINE.search(note_text)
        if line:
            tokens = _split_tag_line(line.group("tags"))

    tags: List[str] = []
    for token in tokens:
        tag = _normalize_tag(token)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _split_tag_line(line: str) -> List[str]:
    return [next(group for group in m.groups() if group) for m in GLOBAL_TAG_TOKEN.finditer(line)]


def load_embeds(note_text: str, vault_root: Path) -> Dict[str, str]:
    """Read the notes embedded with ``![[name]]`` from the vault."""
    embeds: Dict[str, str] = {}
    for match in EMBED.finditer(note_text):
        target = match.group(1).strip()
        if target in embeds:
            continue
        name = target.split("#")[0]
        candidates = [vault_root / f"{name}.md", *vault_root.rglob(f"{Path(name).name}.md")]
        found = next((path for path in candidates if path.is_file()), None)
        if found is None:
            logger.debug(f"Embedded note '{target}' not found in {vault_root}")
            continue
        embeds[target] = found.read_text(encoding="utf-8")
    return embeds


def save_cards_json(cards: Sequence[Card], json_path: Path) -> None:
    """Save cards to a JSON file."""
    json_path.parent.mkdir(parents=True, exist_ok=True)
    json_path.write_bytes(card_list_adapter.dump_json(list(cards), indent=2))
    logger.info(f"Saved {len(cards)} cards to {json_path}")


def load_cards_json(json_path: Path) -> List[Card]:
    """Load cards from a JSON file."""
    if not json_path.exists():
        raise FileNotFoundError(f"Cards file not found: {json_path}")
    cards = card_list_adapter.validate_json(json_path.read_bytes())
    logger.info(f"Loaded {len(cards)} cards from {json_path}")
    return cards


def _clip(text: str, width: int = 80) -> str:
    return text[:width] + "..." if len(text) > width else text


def preview_cards(cards: Sequence[Card], console: Console, max_cards: Optional[int] = 10) -> None:
    """Preview cards in a formatted table."""
    if not cards:
        console.print("No cards to preview", style="yellow")
        return

    shown = list(cards)[:max_cards] if max_cards else list(cards)
    table = Table(title=f"Card Preview ({len(shown)} of {len(cards)} cards)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Deck", style="white")
    table.add_column("Front/Text", style="green", max_width=40)
    table.add_column("Back/Extra", style="blue", max_width=40)
    table.add_column("Tags", style="yellow")
    table.add_column("Span", style="red")

    for card in shown:
        fields = card.core.fields
        front = fields.get("Front") or fields.get("Text") or fields.get("Prompt", "")
        back = fields.get("Back") or fields.get("Extra", "")
        tags = ", ".join(card.core.tags[:3])
        if len(card.core.tags) > 3:
            tags += f" (+{len(card.core.tags) - 3})"
        table.add_row(
            str(card.core.id) if card.core.inserted else "new",
            card.kind + (" (reversed)" if card.core.reversed else ""),
            escape(card.core.deck),
            escape(_clip(front)),
            escape(_clip(back)),
            escape(tags),
            f"{card.core.span.start}-{card.core.span.end}",
        )

    console.print(table)

    counts: Dict[str, int] = {}
    for card in cards:
        counts[card.kind] = counts.get(card.kind, 0) + 1
    console.print(f"\nSummary: {len(cards)} total cards")
    for kind, count in counts.items():
        console.print(f"  - {kind}: {count} cards")
