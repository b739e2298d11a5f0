"""
Mermaid diagram support, in two phases.

``resolve_diagrams`` runs inside the render pipeline and swaps fenced
``mermaid`` blocks for ``<div class="mermaid">`` containers holding the raw
source. Drawing needs a layout engine, so it happens later:
``activate_diagrams`` is called by the embedding UI once the HTML has been
mounted into a document, and hands every pending container to a diagram
engine.
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol, Sequence

from bs4 import BeautifulSoup

from theoremnote.core.treeutil import demote_fenced_block, fragment_nodes, iter_fenced_blocks, new_element

logger = logging.getLogger(__name__)

DIAGRAM_LANGUAGE = 'mermaid'
DIAGRAM_CLASS = 'mermaid'
DIAGRAM_SELECTOR = f'.{DIAGRAM_CLASS}'
PROCESSED_ATTR = 'data-processed'


def resolve_diagrams(soup: BeautifulSoup, context=None) -> None:
    for pre, code in iter_fenced_blocks(soup, DIAGRAM_LANGUAGE):
        try:
            container = new_element(soup, 'div', classes=[DIAGRAM_CLASS], text=code.get_text())
            pre.replace_with(container)
        except Exception as e:
            logger.warning(f"Diagram block left as code: {e}")
            demote_fenced_block(code)


class DiagramEngine(Protocol):
    def render(self, source: str) -> str:
        """Return SVG markup for the diagram source."""
        ...


class MermaidCliEngine:
    """Render diagrams with the mermaid-cli (``mmdc``) executable."""

    def __init__(self, command: Sequence[str] = ('mmdc',), background: str = 'transparent', timeout: float = 30.0):
        self.command = list(command)
        self.background = background
        self.timeout = timeout

    def render(self, source: str) -> str:
        with tempfile.TemporaryDirectory(prefix='theorem-note-mermaid-') as tmp:
            input_path = Path(tmp) / 'diagram.mmd'
            output_path = Path(tmp) / 'diagram.svg'
            input_path.write_text(source, encoding='utf-8')
            subprocess.run(
                self.command + ['-i', str(input_path), '-o', str(output_path), '-b', self.background],
                check=True,
                capture_output=True,
                timeout=self.timeout,
            )
            return output_path.read_text(encoding='utf-8')


def activate_diagrams(document: BeautifulSoup, engine: DiagramEngine, selector: str = DIAGRAM_SELECTOR) -> int:
    """
    Render every diagram container in a mounted document.

    Containers already rendered carry ``data-processed="true"`` and are skipped,
    so repeated calls are safe. A diagram the engine rejects keeps its source
    text and is retried on the next call.

    Returns the number of diagrams rendered by this call.
    """
    rendered = 0
    for element in document.select(selector):
        if element.get(PROCESSED_ATTR) == 'true':
            continue
        source = element.get_text()
        try:
            svg = engine.render(source)
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b'').decode('utf-8', errors='replace').strip()
            logger.warning(f"Diagram engine rejected diagram: {stderr or e}")
            continue
        except Exception as e:
            logger.warning(f"Diagram rendering failed: {e}")
            continue

        element.clear()
        for node in fragment_nodes(svg):
            element.append(node)
        element[PROCESSED_ATTR] = 'true'
        rendered += 1

    logger.debug(f"Activated {rendered} diagram(s)")
    return rendered
