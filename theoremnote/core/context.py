"""
Project root state and the per-render context.

The project root is written once per opened project and read by every render
and every completion lookup. Renders receive it through a RenderContext so a
single render never observes a root change halfway through.
"""

import logging
import threading
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

IMAGE_PREFIX = '/_images/'
MAX_NESTED_DEPTH = 2

_root_lock = threading.Lock()
_project_root = ''


def normalize_root(root: str) -> str:
    """Normalize path separators to forward slashes."""
    return root.replace('\\', '/')


def set_project_root(root: str) -> None:
    global _project_root
    if not root:
        logger.warning("Project root is not set. Using default empty string.")
        return
    normalized = normalize_root(root)
    with _root_lock:
        _project_root = normalized
    logger.info(f"Project root set to: {normalized}")


def get_project_root() -> str:
    with _root_lock:
        return _project_root


@dataclass(frozen=True)
class RenderContext:
    """Configuration threaded through one render call."""
    root: str = ''
    depth: int = 0
    max_depth: int = MAX_NESTED_DEPTH

    @classmethod
    def from_project_root(cls) -> "RenderContext":
        root = get_project_root()
        if not root:
            logger.warning("Rendering without a project root; embedded assets resolve against ''.")
        return cls(root=root)

    @classmethod
    def for_root(cls, root: str) -> "RenderContext":
        return cls(root=normalize_root(root or ''))

    def nested(self) -> "RenderContext":
        return replace(self, depth=self.depth + 1)

    @property
    def image_base(self) -> str:
        return f"{self.root}{IMAGE_PREFIX}"
