"""Default markdown to HTML converter built on Python-Markdown."""

import re
import xml.etree.ElementTree as etree
from typing import Callable, List, Optional

import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor
from markdown.treeprocessors import Treeprocessor

Renderer = Callable[[str], str]

STRIKETHROUGH_RE = r"(~~)(.+?)~~"
BARE_URL_RE = r"(?<![\"'=<(/\w])(https?://[^\s<>\"']*[^\s<>\"'.,;:!?)\]])"
TASK_RE = re.compile(r"^\[([ xX])\][ \t]+")


class StrikethroughExtension(Extension):
    """``~~text~~`` becomes ``<del>text</del>``."""

    def extendMarkdown(self, md):
        md.inlinePatterns.register(SimpleTagInlineProcessor(STRIKETHROUGH_RE, "del"), "md2anki_del", 45)


class BareUrlInlineProcessor(InlineProcessor):
    def handleMatch(self, m, data):
        el = etree.Element("a")
        el.set("href", m.group(1))
        el.text = m.group(1)
        return el, m.start(0), m.end(0)


class BareUrlExtension(Extension):
    """Link plain ``http(s)://`` URLs."""

    def extendMarkdown(self, md):
        # Lowest priority: only text no other pattern claimed
        md.inlinePatterns.register(BareUrlInlineProcessor(BARE_URL_RE, md), "md2anki_bare_url", 5)


class TaskListTreeprocessor(Treeprocessor):
    def run(self, root):
        for item in root.iter("li"):
            match = TASK_RE.match(item.text or "")
            if match is None:
                continue
            box = etree.Element("input", {"type": "checkbox", "disabled": "disabled"})
            if match.group(1).lower() == "x":
                box.set("checked", "checked")
            box.tail = item.text[match.end():]
            item.text = ""
            item.insert(0, box)


class TaskListExtension(Extension):
    """List items starting with ``[ ]`` or ``[x]`` become checkboxes."""

    def extendMarkdown(self, md):
        # After the inline treeprocessor (priority 20) has produced final text
        md.treeprocessors.register(TaskListTreeprocessor(md), "md2anki_tasklist", 5)


DEFAULT_EXTENSIONS = ["tables", "fenced_code", "nl2br", "sane_lists"]


class MarkdownRenderer:
    """Callable markdown converter.

    A fresh ``markdown.Markdown`` instance is built for every call, so one
    renderer can be shared between concurrent extractions.
    """

    def __init__(self, extensions: Optional[List] = None):
        self.extensions = list(DEFAULT_EXTENSIONS if extensions is None else extensions)
        self.extensions.extend([StrikethroughExtension(), BareUrlExtension(), TaskListExtension()])

    def __call__(self, text: str) -> str:
        return markdown.markdown(text, extensions=self.extensions)
