"""
Generic tree passes: heading ids, math markup and code highlighting.
"""

import logging
from typing import Set

from bs4 import BeautifulSoup
from markdown.extensions.toc import slugify_unicode
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from theoremnote.core.cardlink import CARD_LANGUAGE
from theoremnote.core.diagrams import DIAGRAM_LANGUAGE
from theoremnote.core.treeutil import code_language, fragment_nodes

logger = logging.getLogger(__name__)

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']
# Fenced languages consumed by later passes; never highlighted
RESERVED_LANGUAGES = {DIAGRAM_LANGUAGE, CARD_LANGUAGE}

INLINE_MATH_WRAP = ('\\(', '\\)')
DISPLAY_MATH_WRAP = ('\\[', '\\]')


def slugify(text: str) -> str:
    return slugify_unicode(text, '-') or 'section'


def _unique(slug: str, used: Set[str]) -> str:
    candidate = slug
    counter = 1
    while candidate in used:
        candidate = f"{slug}-{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def assign_heading_ids(soup: BeautifulSoup, context=None) -> None:
    """Give every heading without an id a unique slug id."""
    used = {tag['id'] for tag in soup.find_all(id=True)}
    for heading in soup.find_all(HEADING_TAGS):
        if heading.get('id'):
            continue
        heading['id'] = _unique(slugify(heading.get_text().strip()), used)


def _strip_wrap(text: str, wrap) -> str:
    opening, closing = wrap
    text = text.strip()
    if text.startswith(opening) and text.endswith(closing):
        return text[len(opening):len(text) - len(closing)]
    return text.strip('$')


def render_math(soup: BeautifulSoup, context=None) -> None:
    """
    Turn Arithmatex output into KaTeX auto-render markup:
    ``span.math.math-inline`` and ``div.math.math-display``.
    """
    for node in soup.select('.arithmatex'):
        display = node.name == 'div'
        wrap = DISPLAY_MATH_WRAP if display else INLINE_MATH_WRAP
        tex = _strip_wrap(node.get_text(), wrap)
        node['class'] = ['math', 'math-display' if display else 'math-inline']
        node.string = f"{wrap[0]}{tex}{wrap[1]}"


def highlight_code(soup: BeautifulSoup, context=None) -> None:
    formatter = HtmlFormatter(nowrap=True)
    for pre in soup.find_all('pre'):
        code = pre.find('code', recursive=False)
        if code is None:
            continue
        language = code_language(code)
        if not language or language in RESERVED_LANGUAGES:
            continue
        try:
            lexer = get_lexer_by_name(language)
        except ClassNotFound:
            logger.debug(f"No lexer for fenced language '{language}'")
            continue

        highlighted = highlight(code.get_text(), lexer, formatter)
        code.clear()
        for node in fragment_nodes(highlighted):
            code.append(node)
        code['class'] = (code.get('class') or []) + ['hljs']
