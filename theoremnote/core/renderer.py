"""
Markdown -> HTML render pipeline.

Stage order is fixed:

1. ``rewrite_embeds``: ``![[file]]`` -> image reference (text level)
2. Python-Markdown parse with line breaks, tables, math and raw ``<theorem>``
   passthrough
3. ``[[path|label]]`` references, resolved by an inline processor during the
   parse
4. Tree transforms: theorems, heading ids, math, highlighting, diagrams,
   card links
5. Serialization
"""

import asyncio
import logging
from typing import List, Optional

import markdown
from bs4 import BeautifulSoup

from theoremnote.core.cardlink import CARD_LANGUAGE, resolve_card_links
from theoremnote.core.context import RenderContext
from theoremnote.core.diagrams import DIAGRAM_LANGUAGE, resolve_diagrams
from theoremnote.core.exceptions import NestedRenderError, RenderError, SerializationError
from theoremnote.core.links import WikiLinkExtension, rewrite_embeds
from theoremnote.core.markup import assign_heading_ids, highlight_code, render_math
from theoremnote.core.pipeline import Pipeline
from theoremnote.core.theorems import THEOREM_TAG, TheoremBlockExtension, resolve_theorems

logger = logging.getLogger(__name__)

BASE_EXTENSIONS = [
    'nl2br',
    'tables',
    'fenced_code',
    'pymdownx.arithmatex',
    'pymdownx.tilde',
    'pymdownx.tasklist',
    'pymdownx.magiclink',
]

# Theorem bodies: no links, cards, diagrams or theorems of their own
NESTED_EXTENSIONS = [
    'nl2br',
    'tables',
    'pymdownx.arithmatex',
]

EXTENSION_CONFIGS = {
    'pymdownx.arithmatex': {'generic': True},
    'pymdownx.tilde': {'subscript': False},
}

UNRESOLVED_MARKERS = [
    THEOREM_TAG,
    f'code.language-{DIAGRAM_LANGUAGE}',
    f'code.language-{CARD_LANGUAGE}',
]


def _parse(text: str, extensions: list) -> str:
    md_instance = markdown.Markdown(
        extensions=extensions,
        extension_configs={k: v for k, v in EXTENSION_CONFIGS.items() if k in extensions},
    )
    try:
        return md_instance.convert(text)
    except Exception as e:
        raise RenderError(f"Markdown parse failed: {e}") from e


async def render_nested(text: str, context: RenderContext) -> List:
    """
    Render a theorem body and return its top-level nodes.
    Only parse, line breaks, tables and math take part.
    """
    if context.depth > context.max_depth:
        raise NestedRenderError(f"Nested render depth {context.depth} exceeds {context.max_depth}")

    html = _parse(text, NESTED_EXTENSIONS)
    soup = BeautifulSoup(html, 'html.parser')
    await build_nested_pipeline().run(soup, context)
    return [node.extract() for node in list(soup.contents)]


async def resolve_theorem_blocks(soup: BeautifulSoup, context: RenderContext) -> None:
    await resolve_theorems(soup, context, render_nested)


def build_transform_pipeline() -> Pipeline:
    return (
        Pipeline("TransformPipeline")
        .add_step(resolve_theorem_blocks, name='theorems')
        .add_step(assign_heading_ids, name='heading_ids')
        .add_step(render_math, name='math')
        .add_step(highlight_code, name='highlight')
        .add_step(resolve_diagrams, name='diagrams')
        .add_step(resolve_card_links, name='card_links')
    )


def build_nested_pipeline() -> Pipeline:
    return Pipeline("NestedPipeline").add_step(render_math, name='math')


def serialize(soup: BeautifulSoup) -> str:
    leftovers = [selector for selector in UNRESOLVED_MARKERS if soup.select_one(selector) is not None]
    if leftovers:
        raise SerializationError(f"Unresolved extension markers in tree: {leftovers}")
    try:
        return str(soup)
    except Exception as e:
        raise SerializationError(f"Tree serialization failed: {e}") from e


async def render(text: str, context: Optional[RenderContext] = None) -> str:
    """Render extended Markdown to an HTML string."""
    context = context or RenderContext.from_project_root()
    logger.debug(f"Render: {len(text)} chars input, root '{context.root}'")

    source = rewrite_embeds(text, context.root)
    html = _parse(source, BASE_EXTENSIONS + [WikiLinkExtension(), TheoremBlockExtension()])

    soup = BeautifulSoup(html, 'html.parser')
    await build_transform_pipeline().run(soup, context)
    return serialize(soup)


def render_sync(text: str, context: Optional[RenderContext] = None) -> str:
    """Blocking wrapper for callers without an event loop (Flask views, CLI)."""
    return asyncio.run(render(text, context))
