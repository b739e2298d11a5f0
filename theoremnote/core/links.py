"""
Obsidian link syntax.

Two pieces live here:

* ``rewrite_embeds`` runs on raw text before parsing and turns ``![[file]]``
  embeds into ordinary Markdown images under ``<root>/_images/``.
* ``WikiLinkExtension`` is a Python-Markdown extension that turns
  ``[[path]]`` / ``[[path|label]]`` into anchor elements carrying the target as
  data attributes. The anchors have no ``href``; the preview UI intercepts
  clicks and opens the referenced note itself.
"""

import logging
import re
import xml.etree.ElementTree as etree
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor
from markdown.util import AtomicString

from theoremnote.core.context import IMAGE_PREFIX

logger = logging.getLogger(__name__)

EMBED_RE = re.compile(r'!\[\[(.*?)]]')
ALT_SPECIAL_RE = re.compile(r'[\\\[\]]')
WIKILINK_RE = r'\[\[([^\[\]\n]+?)\]\]'
# Must outrank the built-in reference (170) and link (160) processors
WIKILINK_PRIORITY = 175


def embed_url(name: str, root: str) -> str:
    return f"{root}{IMAGE_PREFIX}{quote(name, safe='')}"


def escape_alt(text: str) -> str:
    """Backslash-escape the characters that would end the image alt text early."""
    return ALT_SPECIAL_RE.sub(r'\\\g<0>', text)


def rewrite_embeds(text: str, root: str) -> str:
    """Replace every ``![[name]]`` with ``![name](<root>/_images/<encoded name>)``."""
    def replacer(match):
        filename = match.group(1)
        return f"![{escape_alt(filename)}]({embed_url(filename, root)})"

    rewritten, count = EMBED_RE.subn(replacer, text)
    if count:
        logger.debug(f"Rewrote {count} embed(s) against root '{root}'")
    return rewritten


@dataclass(frozen=True)
class ReferenceToken:
    path: str
    label: str
    header: Optional[str] = None

    @classmethod
    def parse(cls, inner: str) -> "ReferenceToken":
        """Parse the text between ``[[`` and ``]]``."""
        target, sep, label = inner.partition('|')
        target = target.strip()
        label = label.strip() if sep else ''
        path, hash_sep, header = target.partition('#')
        return cls(
            path=path.strip(),
            label=label or target,
            header=header.strip() if hash_sep and header.strip() else None,
        )


class WikiLinkInlineProcessor(InlineProcessor):
    def handleMatch(self, m, data):
        token = ReferenceToken.parse(m.group(1))
        if not token.path and not token.header:
            return None, None, None

        el = etree.Element('a')
        el.set('class', 'internal-link')
        el.set('data-internal-link', 'true')
        el.set('data-path', token.path)
        if token.header:
            el.set('data-header', token.header)
        el.text = AtomicString(token.label)
        return el, m.start(0), m.end(0)


class WikiLinkExtension(Extension):
    """Register the ``[[...]]`` reference processor."""

    def extendMarkdown(self, md):
        md.inlinePatterns.register(
            WikiLinkInlineProcessor(WIKILINK_RE, md), 'theorem_wikilink', WIKILINK_PRIORITY
        )
