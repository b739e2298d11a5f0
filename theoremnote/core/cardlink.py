"""
Card-link blocks.

A fenced block tagged ``cardlink`` describes an external page::

    ```cardlink
    url: https://example.com/post
    title: "Example post"
    description: "A short summary"
    host: example.com
    favicon: https://example.com/favicon.ico
    image: https://example.com/cover.png
    ```

and is rendered as a preview card that opens the page in a new browsing
context.
"""

import logging
from dataclasses import dataclass, fields
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from theoremnote.core.treeutil import demote_fenced_block, iter_fenced_blocks, new_element

logger = logging.getLogger(__name__)

CARD_LANGUAGE = 'cardlink'
CARD_REL = 'noopener noreferrer'


@dataclass
class CardDescriptor:
    url: str = ''
    title: str = ''
    description: str = ''
    host: str = ''
    favicon: str = ''
    image: str = ''


CARD_KEYS = {f.name for f in fields(CardDescriptor)}


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def parse_card_descriptor(text: str) -> CardDescriptor:
    """Parse ``key: value`` lines; unknown keys and lines without ``:`` are ignored."""
    card = CardDescriptor()
    for line in text.splitlines():
        key, sep, value = line.partition(':')
        if not sep:
            continue
        key = key.strip().lower()
        if key not in CARD_KEYS:
            continue
        setattr(card, key, _unquote(value.strip()))

    if not card.host and card.url:
        card.host = urlparse(card.url).netloc
    if not card.url or not card.title:
        logger.warning(f"Card link block is missing {'url' if not card.url else 'title'}")
    return card


def build_card(soup: BeautifulSoup, card: CardDescriptor):
    container = new_element(soup, 'div', classes=['auto-card-link-container'])
    anchor = new_element(
        soup, 'a', classes=['auto-card-link-card'],
        href=card.url, target='_blank', rel=CARD_REL,
    )
    container.append(anchor)

    main = new_element(soup, 'div', classes=['auto-card-link-main'])
    main.append(new_element(soup, 'div', classes=['auto-card-link-title'], text=card.title))
    if card.description:
        main.append(new_element(soup, 'div', classes=['auto-card-link-description'], text=card.description))

    footer = new_element(soup, 'div', classes=['auto-card-link-host'])
    if card.favicon:
        footer.append(new_element(soup, 'img', classes=['auto-card-link-favicon'], src=card.favicon, alt=''))
    footer.append(new_element(soup, 'span', text=card.host))
    main.append(footer)
    anchor.append(main)

    if card.image:
        thumbnail = new_element(soup, 'div', classes=['auto-card-link-thumbnail'])
        thumbnail.append(new_element(soup, 'img', classes=['auto-card-link-thumbnail-img'], src=card.image, alt=''))
        anchor.append(thumbnail)

    return container


def resolve_card_links(soup: BeautifulSoup, context=None) -> None:
    for pre, code in iter_fenced_blocks(soup, CARD_LANGUAGE):
        try:
            card = parse_card_descriptor(code.get_text())
            pre.replace_with(build_card(soup, card))
        except Exception as e:
            logger.warning(f"Card link block left as code: {e}")
            demote_fenced_block(code)
