"""
Theorem blocks.

``<theorem name="Pigeonhole">...</theorem>`` holds Markdown (math included).
The parser is told that ``theorem`` is a block-level element so the element
survives parsing with its body untouched; ``resolve_theorems`` then renders
the body through the nested renderer and swaps the element for a titled
callout.
"""

import logging
import re
import textwrap
from typing import Awaitable, Callable, List

from bs4 import BeautifulSoup, Tag
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

from theoremnote.core.treeutil import new_element

logger = logging.getLogger(__name__)

THEOREM_TAG = 'theorem'
DEFAULT_TITLE = 'Theorem'

THEOREM_TAG_RE = re.compile(r'<(/?)theorem\b[^>]*>', re.IGNORECASE)
# Bare "<" inside a theorem body; nested theorem tags stay markup
BODY_LT_RE = re.compile(r'<(?!/?theorem\b)', re.IGNORECASE)
# After fenced code (25), before raw HTML extraction (20)
BODY_ESCAPE_PRIORITY = 22

NestedRenderer = Callable[[str, object], Awaitable[List]]


def escape_theorem_bodies(text: str) -> str:
    """
    Escape ``<`` inside every closed ``<theorem>...</theorem>`` region so
    bodies such as ``$a<b$`` survive the HTML parse as text.
    Unclosed regions are left alone.
    """
    regions = []
    depth = 0
    start = 0
    for match in THEOREM_TAG_RE.finditer(text):
        if not match.group(1):
            if depth == 0:
                start = match.start()
            depth += 1
        elif depth:
            depth -= 1
            if depth == 0:
                regions.append((start, match.end()))

    if not regions:
        return text

    pieces = []
    last = 0
    for region_start, region_end in regions:
        pieces.append(text[last:region_start])
        pieces.append(BODY_LT_RE.sub('&lt;', text[region_start:region_end]))
        last = region_end
    pieces.append(text[last:])
    return ''.join(pieces)


class TheoremBodyPreprocessor(Preprocessor):
    def run(self, lines):
        return escape_theorem_bodies('\n'.join(lines)).split('\n')


class TheoremBlockExtension(Extension):
    """Pass ``<theorem>`` elements through the parser as raw block HTML."""

    def extendMarkdown(self, md):
        md.preprocessors.register(TheoremBodyPreprocessor(md), 'theorem_body', BODY_ESCAPE_PRIORITY)
        elements = md.block_level_elements
        if THEOREM_TAG in elements:
            return
        if hasattr(elements, 'add'):
            elements.add(THEOREM_TAG)
        else:
            elements.append(THEOREM_TAG)


def theorem_source(element: Tag) -> str:
    """Concatenate all descendant text, ignoring element boundaries."""
    return textwrap.dedent(element.get_text()).strip('\n')


def build_theorem(soup: BeautifulSoup, title: str, nodes: List) -> Tag:
    container = new_element(soup, 'div', classes=['theorem'])
    container.append(new_element(soup, 'div', classes=['theorem-title'], text=title))
    content = new_element(soup, 'div', classes=['theorem-content'])
    for node in nodes:
        content.append(node)
    container.append(content)
    return container


def _attached(element: Tag, soup: BeautifulSoup) -> bool:
    return any(parent is soup for parent in element.parents)


def _is_blank(node) -> bool:
    if isinstance(node, Tag):
        return node.name == 'br'
    return not str(node).strip()


def _place_callout(soup: BeautifulSoup, element: Tag, callout: Tag) -> None:
    """
    Swap ``element`` for ``callout``. A block may not sit inside a paragraph,
    so an inline theorem splits its paragraph into before / callout / after.
    """
    paragraph = element.parent
    if paragraph is None or paragraph.name != 'p':
        element.replace_with(callout)
        return

    trailing = soup.new_tag('p')
    for node in list(element.next_siblings):
        trailing.append(node.extract())
    element.extract()

    paragraph.insert_after(callout)
    if not all(_is_blank(node) for node in trailing.contents):
        callout.insert_after(trailing)
    if all(_is_blank(node) for node in paragraph.contents):
        paragraph.decompose()


async def resolve_theorems(soup: BeautifulSoup, context, nested_render: NestedRenderer) -> None:
    for element in soup.find_all(THEOREM_TAG):
        # Theorems nested in an already replaced theorem went with it
        if not _attached(element, soup):
            continue

        title = (element.get('name') or '').strip() or DEFAULT_TITLE
        source = theorem_source(element)
        if not source.strip():
            logger.warning(f"Theorem block '{title}' has no content")

        try:
            nodes = await nested_render(source, context.nested())
        except Exception as e:
            logger.warning(f"Theorem block '{title}' rendered as plain text: {e}")
            nodes = [new_element(soup, 'p', text=source)] if source.strip() else []

        _place_callout(soup, element, build_theorem(soup, title, nodes))
