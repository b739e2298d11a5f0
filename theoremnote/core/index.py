"""
Reference index: theorem name -> document path.

Saving a document harvests every ``<theorem name="...">`` it contains and
records it in ``<root>/.theorem-note/theorems.json``. The completion provider
reads the same file through ``FileReferenceIndex``.
"""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Dict, Protocol

logger = logging.getLogger(__name__)

PROJECT_DATA_DIR = '.theorem-note'
THEOREMS_FILE_NAME = 'theorems.json'

THEOREM_NAME_RE = re.compile(r'<theorem name="([^"]+)">')


class ReferenceLookup(Protocol):
    async def lookup_references(self, root: str) -> Dict[str, str]:
        ...


def get_index_path(root: str) -> Path:
    if not root:
        raise ValueError("Project root is required for the reference index")
    return Path(root) / PROJECT_DATA_DIR / THEOREMS_FILE_NAME


def extract_theorem_names(content: str) -> list:
    return THEOREM_NAME_RE.findall(content)


def load_reference_index(root: str) -> Dict[str, str]:
    """Read the index; a missing root or file yields an empty mapping."""
    if not root:
        return {}
    path = get_index_path(root)
    if not path.exists():
        return {}
    data = path.read_text(encoding='utf-8')
    if not data.strip():
        return {}
    index = json.loads(data)
    if not isinstance(index, dict):
        raise ValueError(f"Reference index {path} is not a JSON object")
    return {str(k): str(v) for k, v in index.items()}


def update_reference_index(path: str, content: str, root: str) -> Dict[str, str]:
    """
    Record the theorems declared in ``content`` as living in ``path``.
    Entries previously pointing at ``path`` are dropped first.
    """
    if not root:
        logger.warning(f"No project root; reference index not updated for {path}")
        return {}

    names = extract_theorem_names(content)
    existing = load_reference_index(root)
    index = {name: target for name, target in existing.items() if target != path}
    if not names and len(index) == len(existing):
        return existing
    for name in names:
        index[name] = path

    index_path = get_index_path(root)
    index_path.parent.mkdir(parents=True, exist_ok=True)
    index_path.write_text(json.dumps(index, indent=2, ensure_ascii=False), encoding='utf-8')
    logger.info(f"Saved {len(names)} theorem(s) from {path} to {index_path}")
    return index


class FileReferenceIndex:
    """Async lookup over the on-disk index; file I/O runs off the event loop."""

    async def lookup_references(self, root: str) -> Dict[str, str]:
        return await asyncio.to_thread(load_reference_index, root)
