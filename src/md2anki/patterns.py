"""Regular expressions for card syntaxes and structural note elements.

Structural patterns are module constants. Card syntaxes that depend on the
configured card tag or inline separators are compiled by
:func:`compile_card_patterns` and cached per configuration.
"""

import re
from functools import lru_cache
from typing import NamedTuple

from .config import ParsingConfig

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "bmp", "svg", "tiff")
AUDIO_EXTENSIONS = ("mp3", "webm", "wav", "m4a", "ogg", "3gp", "flac")

_IMAGE_EXT = "|".join(IMAGE_EXTENSIONS)
_AUDIO_EXT = "|".join(AUDIO_EXTENSIONS)
_MEDIA_EXT = f"{_IMAGE_EXT}|{_AUDIO_EXT}"

# Tag characters: letters, digits, underscore, dash and hierarchy delimiters
TAG_CHARS = r"[\w\-/\\]"
_TAG_RUN = rf"(?:[ \t]*#{TAG_CHARS}+)"
_FENCE_LINE = r" {0,3}(?:```|~~~)"
# A whole fenced block, opening line to matching closing line
_FENCE_BLOCK = r"(?: {0,3}```[^\n]*\n(?s:.*?)^ {0,3}```[ \t]*$| {0,3}~~~[^\n]*\n(?s:.*?)^ {0,3}~~~[ \t]*$)"
_HEADING_PREFIX = r"(?P<heading> {0,3}#{1,6}(?=[ \t]))?"
_LIST_PREFIX = r"(?:[ \t]*(?:\d+\.|[-+*])[ \t]+)?"

# Structure (scanned once per note by spans.SpanIndex)
STRUCTURE = re.compile(
    r"(?P<code>(?P<fence>```|~~~)(?s:.*?)(?P=fence))"
    r"|(?P<math_block>\$\$(?s:.*?)\$\$)"
    r"|(?P<heading>^ {0,3}(?P<level>#{1,6}) +(?P<title>[^\n]+?) ?(?:(?: *#\S+)*) *$)"
    r"|(?P<math_inline>(?<![\\$])\$(?!\$)[^\n$]+?(?<!\\)\$(?!\$))",
    re.MULTILINE,
)

# Math rewriting
MATH_BLOCK = re.compile(r"\$\$(.*?)\$\$", re.DOTALL)
MATH_INLINE = re.compile(r"(?<![\\$])\$(?!\$)([^\n$]+?)(?<!\\)\$(?!\$)")

# Rendered HTML
HTML_CODE_SPAN = re.compile(r"<code\b[^>]*>(.*?)</code>", re.DOTALL | re.IGNORECASE)
HTML_TAG = re.compile(r"<[^>]+?>")
HTML_PARAGRAPH = re.compile(r"</?p\b[^>]*>", re.IGNORECASE)
HTML_ANCHOR = re.compile(r"</?a\b[^>]*>", re.IGNORECASE)

# Identifier markers
ID_MARKER = re.compile(r"\^(\d{13})(?!\d)\s*")
TRAILING_ID = re.compile(r"[ \t]*\^(\d{13})[ \t]*$")
DELETION_CANDIDATE = re.compile(r"(?:\A|^[ \t]*\n)[ \t]*\^(\d{13})[ \t]*$", re.MULTILINE)

# Links and media
EMBED = re.compile(rf"!\[\[(?![^\]]*\.(?:{_MEDIA_EXT})(?:\|[^\]]*)?\]\])([^\[\]|]+?)(?:\|[^\]]*)?\]\]", re.IGNORECASE)
WIKI_IMAGE = re.compile(rf"!\[\[([^\[\]|]*?\.(?:{_IMAGE_EXT}))(?:\|[^\]]*)?\]\]", re.IGNORECASE)
MARKDOWN_IMAGE = re.compile(rf"!\[[^\]]*\]\(([^)\s]*?\.(?:{_IMAGE_EXT}))[^)]*\)", re.IGNORECASE)
WIKI_AUDIO = re.compile(rf"!\[\[([^\[\]|]*?\.(?:{_AUDIO_EXT}))(?:\|[^\]]*)?\]\]", re.IGNORECASE)
NOTE_LINK = re.compile(r"!?\[\[([^\[\]|]+?)(?:\|([^\[\]]+?))?\]\]")
HINT_IMAGE = re.compile(r"\[\[([^\[\]|]+?)\|Hint\]\]")
PICTURE_IMAGE = re.compile(r"\[\[([^\[\]|]+?)\|\U0001F5BC\uFE0F?\]\]")

# Cloze syntax
CURLY_CLOZE = re.compile(r"(?<!\{)\{(?!\{)(?:c?(?P<index>\d+)::?)?(?P<body>[^{}\n]+?)\}(?!\})")
HIGHLIGHT_CLOZE = re.compile(r"==(?P<body>[^\n]+?)==")
CLOZE_LINE = re.compile(
    rf"^{_HEADING_PREFIX}{_LIST_PREFIX}"
    r"(?P<text>[^\n]*?(?:==[^\n]+?==|\{[^\n]+?\})[^\n]*?)"
    rf"(?P<tags>{_TAG_RUN}+)?"
    r"(?:[ \t]*\n?[ \t]*\^(?P<id>\d{13}))?[ \t]*$",
    re.MULTILINE,
)

# Cloze Extra field cleanup
CLOZE_EXTRA_STRIP = re.compile(r"==|<[^>]+?>|%%.+?%%|\(.+?\)")

# Inline metadata and hints
METADATA_DELIMITER = "||"
CLOZE_INDEX_SUFFIX = re.compile(r"\{c?\d+$")
PRONUNCIATION = re.compile(r"(?<!\\)\[(?!sound:)([^\[\]\n]+)\]")
DECK_LANGUAGES = re.compile(r"^(.+?)-(.+?)(-.+)?$")
SENTENCE_DECK = re.compile(r"sentences", re.IGNORECASE)

# Tags
TAG_HIERARCHY = re.compile(r"[/\\]")
GLOBAL_TAGS_LINE = re.compile(r"^tags:[ \t]*(?P<tags>[^\n]*)$", re.MULTILINE | re.IGNORECASE)
GLOBAL_TAG_TOKEN = re.compile(r"\[\[(.+?)\]\]|#([\w:\-/\\]+)|([\w:\-/\\]+)")
CARDS_DECK_LINE = re.compile(r"^cards-deck:[ \t]*(?P<deck>[^\n]+?)[ \t]*$", re.MULTILINE | re.IGNORECASE)
FRONTMATTER = re.compile(r"\A---[ \t]*\n(?P<body>.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)


class CardPatterns(NamedTuple):
    """Card syntaxes compiled for one parsing configuration."""
    tag: re.Pattern
    spaced: re.Pattern
    inline: re.Pattern
    cloze: re.Pattern


def compile_card_patterns(config: ParsingConfig) -> CardPatterns:
    """Compile the card syntaxes for a parsing configuration."""
    return _compile(config.flashcards_tag, config.inline_separator, config.inline_separator_reverse)


@lru_cache(maxsize=32)
def _compile(card_tag: str, separator: str, reverse_separator: str) -> CardPatterns:
    tag = re.escape(card_tag)
    # Longest separator first so "Q ::: A" is never read as "Q :: : A"
    separators = "|".join(
        re.escape(s) for s in sorted((separator, reverse_separator), key=len, reverse=True)
    )
    plain_line = rf"(?!{_FENCE_LINE})(?! {{0,3}}#{{1,6}}[ \t])(?![^\n]*#{tag}\b)[^\n]+\n"
    answer_line = (
        rf"(?!{_FENCE_LINE})(?! {{0,3}}#{{1,6}}[ \t])(?![^\n]*#{tag}\b)"
        r"[ \t]*(?!\^\d{13})[^\s][^\n]*"
    )
    answer_unit = rf"(?:{_FENCE_BLOCK}|{answer_line})"

    tag_card = re.compile(
        rf"^{_HEADING_PREFIX}"
        rf"(?P<question>(?(heading)[^\n]*?|(?:{plain_line})*?[^\n]*?))"
        rf"#{tag}(?:[/-](?P<reverse>reverse))?(?![\w/\\-])"
        rf"(?P<tags>{_TAG_RUN}*)[ \t]*\n+"
        rf"(?P<answer>{answer_unit}(?:\n{answer_unit})*)?"
        r"(?:\n[ \t]*\^(?P<id>\d{13}))?",
        re.MULTILINE | re.IGNORECASE,
    )
    spaced_card = re.compile(
        rf"^{_HEADING_PREFIX}"
        rf"(?P<prompt>(?(heading)[^\n]*?|(?:{plain_line})*?[^\n]*?))"
        rf"#{tag}[/-]spaced(?![\w/\\-])"
        rf"(?P<tags>{_TAG_RUN}*)"
        r"(?:[ \t]*\n?[ \t]*\^(?P<id>\d{13}))?",
        re.MULTILINE | re.IGNORECASE,
    )
    inline_card = re.compile(
        rf"^{_HEADING_PREFIX}{_LIST_PREFIX}"
        rf"(?P<question>[^\n]+?) ?(?P<separator>{separators}) ?(?P<answer>[^\n]+?)"
        rf"(?P<tags>{_TAG_RUN}+)?"
        r"(?:[ \t]*\n?[ \t]*\^(?P<id>\d{13}))?[ \t]*$",
        re.MULTILINE,
    )
    return CardPatterns(tag=tag_card, spaced=spaced_card, inline=inline_card, cloze=CLOZE_LINE)
