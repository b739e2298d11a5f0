"""Small BeautifulSoup helpers shared by the tree transform passes."""

from typing import Iterator, List, Tuple

from bs4 import BeautifulSoup, Tag


def code_language(code: Tag) -> str:
    """Return the fenced language of a ``<code>`` element (``language-xxx`` class)."""
    for cls in code.get('class') or []:
        if cls.startswith('language-'):
            return cls[len('language-'):].lower()
    return ''


def iter_fenced_blocks(soup: BeautifulSoup, language: str) -> Iterator[Tuple[Tag, Tag]]:
    """Yield ``(pre, code)`` pairs whose code element declares ``language``."""
    # Materialize first: callers replace nodes while iterating
    blocks: List[Tuple[Tag, Tag]] = []
    for pre in soup.find_all('pre'):
        code = pre.find('code', recursive=False)
        if code is not None and code_language(code) == language:
            blocks.append((pre, code))
    return iter(blocks)


def new_element(soup: BeautifulSoup, name: str, classes=None, text=None, **attrs) -> Tag:
    tag = soup.new_tag(name)
    if classes:
        tag['class'] = list(classes)
    for key, value in attrs.items():
        tag[key.replace('_', '-')] = value
    if text is not None:
        tag.string = text
    return tag


def fragment_nodes(html: str) -> list:
    """Parse an HTML fragment and detach its top-level nodes."""
    fragment = BeautifulSoup(html, 'html.parser')
    return [node.extract() for node in list(fragment.contents)]


def demote_fenced_block(code: Tag) -> None:
    """Drop the language marker so a block that failed to resolve renders as plain code."""
    classes = [cls for cls in code.get('class') or [] if not cls.startswith('language-')]
    if classes:
        code['class'] = classes
    else:
        del code['class']
