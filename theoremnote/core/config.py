"""
Persisted settings.

* Global: the last opened project, in the user's config directory.
* Per project: font settings in ``<root>/.theorem-note/config.json``.
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from theoremnote.core.index import PROJECT_DATA_DIR

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_DIR_NAME = 'theorem-note'
GLOBAL_CONFIG_FILE_NAME = 'global_config.json'
PROJECT_CONFIG_FILE_NAME = 'config.json'

DEFAULT_EDITOR_FONT_FAMILY = "Consolas, Monaco, 'Courier New', monospace"
DEFAULT_PREVIEW_FONT_FAMILY = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif"
DEFAULT_FONT_SIZE = 14


@dataclass
class FontSettings:
    editor_font_family: str = DEFAULT_EDITOR_FONT_FAMILY
    editor_font_size: int = DEFAULT_FONT_SIZE
    preview_font_family: str = DEFAULT_PREVIEW_FONT_FAMILY
    preview_font_size: int = DEFAULT_FONT_SIZE

    @classmethod
    def from_dict(cls, data: dict) -> "FontSettings":
        defaults = cls()
        return cls(
            editor_font_family=str(data.get('editor_font_family') or defaults.editor_font_family),
            editor_font_size=int(data.get('editor_font_size') or defaults.editor_font_size),
            preview_font_family=str(data.get('preview_font_family') or defaults.preview_font_family),
            preview_font_size=int(data.get('preview_font_size') or defaults.preview_font_size),
        )

    def editor_style(self) -> dict:
        """Style patch understood by the editing surface."""
        return {
            'fontFamily': self.editor_font_family,
            'fontSize': f"{self.editor_font_size}px",
        }


@dataclass
class ProjectConfig:
    font_settings: FontSettings = field(default_factory=FontSettings)

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        return cls(font_settings=FontSettings.from_dict(data.get('font_settings') or {}))

    def to_dict(self) -> dict:
        return asdict(self)


def get_project_config_path(root: str) -> Path:
    if not root:
        raise ValueError("Project root is required for project configuration")
    return Path(root) / PROJECT_DATA_DIR / PROJECT_CONFIG_FILE_NAME


def load_project_config(root: str) -> ProjectConfig:
    """Load project settings; defaults when the root is empty or the file is missing or corrupt."""
    if not root:
        return ProjectConfig()

    path = get_project_config_path(root)
    if not path.exists():
        return ProjectConfig()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return ProjectConfig.from_dict(json.load(f))
    except (OSError, ValueError, TypeError) as e:
        logger.warning(f"Failed to load project config {path}, using defaults: {e}")
        return ProjectConfig()


def save_project_config(root: str, config: ProjectConfig) -> Path:
    path = get_project_config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.info(f"Project config saved: {path}")
    return path


def user_config_dir() -> Path:
    if sys.platform == 'win32':
        base = os.environ.get('APPDATA') or str(Path.home() / 'AppData' / 'Roaming')
    elif sys.platform == 'darwin':
        base = str(Path.home() / 'Library' / 'Application Support')
    else:
        base = os.environ.get('XDG_CONFIG_HOME') or str(Path.home() / '.config')
    return Path(base) / GLOBAL_CONFIG_DIR_NAME


class GlobalConfig:
    """Application-wide settings (currently the last opened project)."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or user_config_dir() / GLOBAL_CONFIG_FILE_NAME
        self.last_opened_path = ''
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            self.last_opened_path = str(data.get('last_opened_path') or '')
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Global config {self.path} unreadable, using defaults: {e}")

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'last_opened_path': self.last_opened_path}, f, indent=2)

    def get_last_opened(self) -> str:
        return self.last_opened_path

    def set_last_opened(self, path: str) -> None:
        self.last_opened_path = path
        self.save()
