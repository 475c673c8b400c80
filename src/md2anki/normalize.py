"""Media extraction and link normalization ahead of markdown rendering."""

import logging
from typing import List, Mapping, Optional
from urllib.parse import quote, unquote

from .patterns import (
    EMBED,
    HTML_PARAGRAPH,
    HTML_TAG,
    MARKDOWN_IMAGE,
    MATH_BLOCK,
    MATH_INLINE,
    NOTE_LINK,
    WIKI_AUDIO,
    WIKI_IMAGE,
)
from .render import MarkdownRenderer, Renderer

logger = logging.getLogger(__name__)

# Characters Python-Markdown would interpret inside a math payload
MATH_ESCAPED_CHARS = "`*_[]()#"

_default_renderer = MarkdownRenderer()


def extract_image_links(text: str) -> List[str]:
    """Image file names referenced in ``text``: wiki links, then markdown links."""
    links = [m.group(1) for m in WIKI_IMAGE.finditer(text)]
    links.extend(unquote(m.group(1)) for m in MARKDOWN_IMAGE.finditer(text))
    return links


def extract_audio_links(text: str) -> List[str]:
    """Audio file names referenced through wiki embeds."""
    return [m.group(1) for m in WIKI_AUDIO.finditer(text)]


def note_link(target: str, vault: str, label: Optional[str] = None) -> str:
    """Deep link anchor opening ``target`` in the vault."""
    href = f"obsidian://open?vault={quote(vault, safe='')}&amp;file={quote(target, safe='')}.md"
    return f'<a href="{href}">{label or target}</a>'


def rewrite_note_links(text: str, vault: str) -> str:
    """Turn ``[[target|alias]]`` note links into deep link anchors."""
    return NOTE_LINK.sub(lambda m: note_link(m.group(1).strip(), vault, m.group(2)), text)


def rewrite_media_links(text: str) -> str:
    """Turn audio embeds into ``[sound:...]`` and image embeds into ``<img>``."""
    text = WIKI_AUDIO.sub(lambda m: f"[sound:{m.group(1)}]", text)
    text = WIKI_IMAGE.sub(lambda m: f"<img src='{m.group(1)}'>", text)
    return MARKDOWN_IMAGE.sub(lambda m: f"<img src='{m.group(1)}'>", text)


def escape_math(payload: str) -> str:
    payload = payload.replace("\\", "\\\\")
    for char in MATH_ESCAPED_CHARS:
        payload = payload.replace(char, "\\" + char)
    return payload.replace("<", "&lt;").replace(">", "&gt;")


def rewrite_math(text: str) -> str:
    r"""Convert ``$$...$$`` to ``\\[...\\]`` and ``$...$`` to ``\\(...\\)``.

    The doubled backslashes become single ones after the markdown pass.
    """
    text = MATH_BLOCK.sub(lambda m: "\\\\[" + escape_math(m.group(1)) + "\\\\]", text)
    return MATH_INLINE.sub(lambda m: "\\\\(" + escape_math(m.group(1)) + "\\\\)", text)


def render_line(text: str, vault: str, renderer: Optional[Renderer] = None) -> str:
    """Rewrite media, links and math, then convert markdown to HTML."""
    renderer = renderer or _default_renderer
    return renderer(rewrite_math(rewrite_note_links(rewrite_media_links(text), vault)))


def expand_embeds(text: str, embeds: Mapping[str, str]) -> str:
    """Append the content of every non-media ``![[note]]`` embed found in ``text``."""
    for m in EMBED.finditer(text):
        content = embeds.get(m.group(1).strip())
        if content is None:
            logger.debug(f"No content available for embed '{m.group(1)}'")
            continue
        text = f"{text}\n{content}"
    return text


def strip_paragraphs(html: str) -> str:
    return HTML_PARAGRAPH.sub("", html).replace("&nbsp;", " ").strip()


def strip_tags(html: str) -> str:
    return HTML_TAG.sub("", html).strip()


class Normalizer:
    """Renders note fragments with a configurable markdown converter."""

    def __init__(self, renderer: Optional[Renderer] = None):
        self.renderer = renderer or _default_renderer

    def render_line(self, text: str, vault: str) -> str:
        return render_line(text, vault, self.renderer)
