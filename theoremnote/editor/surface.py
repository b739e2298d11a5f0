"""
Editing surface adapter.

The text-editing widget itself is supplied by the host (browser editor,
Qt widget, ...). This module configures it for the extended Markdown dialect,
wires change notification and ``[[`` completion, and wraps it in an
``EditorHandle`` with the operations the application needs.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from theoremnote.core.config import DEFAULT_EDITOR_FONT_FAMILY, DEFAULT_FONT_SIZE, FontSettings
from theoremnote.core.context import get_project_root, normalize_root
from theoremnote.core.index import FileReferenceIndex, ReferenceLookup
from theoremnote.editor.completion import CompletionContext, CompletionProvider, CompletionResult

logger = logging.getLogger(__name__)

SYNTAX_MODE = 'markdown'
SYNTAX_EXTENSIONS = ['gfm', 'wikilink', 'embed', 'theorem', 'math', 'mermaid', 'cardlink']
STYLE_KEYS = ('fontFamily', 'fontSize')

THEMES = {
    'light': {
        'background': '#ffffff',
        'foreground': '#24292e',
        'caret': '#24292e',
        'selection': '#c8e1ff',
    },
    'dark': {
        'background': '#282c34',
        'foreground': '#abb2bf',
        'caret': '#528bff',
        'selection': '#3e4451',
    },
}


class EditorWidget(Protocol):
    def get_content(self) -> str: ...

    def replace_content(self, content: str) -> None: ...

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]: ...

    def apply_style(self, style: Dict[str, str]) -> None: ...

    def destroy(self) -> None: ...


WidgetFactory = Callable[[str, dict], EditorWidget]


@dataclass
class EditorConfig:
    font_family: str = DEFAULT_EDITOR_FONT_FAMILY
    font_size: str = f"{DEFAULT_FONT_SIZE}px"
    theme: str = 'light'
    syntax_extensions: List[str] = field(default_factory=lambda: list(SYNTAX_EXTENSIONS))
    completion_source: Optional[CompletionProvider] = None

    def to_options(self) -> dict:
        return {
            'fontFamily': self.font_family,
            'fontSize': self.font_size,
            'theme': self.theme,
            'themeColors': dict(THEMES[self.theme]),
            'syntaxMode': SYNTAX_MODE,
            'syntaxExtensions': list(self.syntax_extensions),
            'completionSource': self.completion_source,
        }


class EditorHandle:
    """Owns one widget instance from mount to teardown."""

    def __init__(self, widget: EditorWidget, config: EditorConfig, unsubscribe: Callable[[], None]):
        self._widget = widget
        self.config = config
        self._unsubscribe = unsubscribe
        self._destroyed = False
        self._last_completion: Optional[CompletionResult] = None

    @property
    def widget(self) -> EditorWidget:
        return self._widget

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def update_content(self, content: str) -> bool:
        """
        Push external content into the widget. Identical content is a no-op so
        the cursor, selection and undo history survive redundant updates.
        """
        if self._widget.get_content() == content:
            return False
        self._widget.replace_content(content)
        return True

    def get_content(self) -> str:
        return self._widget.get_content()

    def set_editor_style(self, style: Dict[str, str]) -> None:
        patch = {key: value for key, value in style.items() if key in STYLE_KEYS and value}
        if not patch:
            return
        self._widget.apply_style(patch)
        if 'fontFamily' in patch:
            self.config.font_family = patch['fontFamily']
        if 'fontSize' in patch:
            self.config.font_size = patch['fontSize']

    async def request_completion(self, pos: int) -> Optional[CompletionResult]:
        """
        Suggestions for the cursor at ``pos``. While the cursor stays in the
        region of the previous result and the typed name only narrows, the
        previous options are filtered again instead of querying the index.
        """
        source = self.config.completion_source
        if source is None:
            return None
        context = CompletionContext(self.get_content(), pos)

        last = self._last_completion
        if last is not None and last.covers(context):
            return CompletionResult(
                from_pos=last.from_pos,
                options=last.filtered(context),
                partial=context.text[last.from_pos:pos],
            )

        result = await source.complete(context)
        self._last_completion = result
        return result

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._unsubscribe()
        self._widget.destroy()
        logger.debug("Editor destroyed")


def create_editor(
    widget_factory: WidgetFactory,
    initial_content: str,
    on_change: Callable[[str], None],
    is_dark_theme: bool = False,
    project_root: str = '',
    index: Optional[ReferenceLookup] = None,
    font_settings: Optional[FontSettings] = None,
) -> EditorHandle:
    fonts = font_settings or FontSettings()
    root = normalize_root(project_root) if project_root else ''
    provider = CompletionProvider(
        index or FileReferenceIndex(),
        root_getter=(lambda: root) if root else get_project_root,
    )
    config = EditorConfig(
        font_family=fonts.editor_font_family,
        font_size=f"{fonts.editor_font_size}px",
        theme='dark' if is_dark_theme else 'light',
        completion_source=provider,
    )

    widget = widget_factory(initial_content, config.to_options())
    unsubscribe = widget.subscribe(on_change)
    logger.debug(f"Editor created (theme={config.theme}, {len(initial_content)} chars)")
    return EditorHandle(widget, config, unsubscribe)


class MemoryEditorWidget:
    """Headless widget: a text buffer with a cursor and change listeners."""

    def __init__(self, content: str = '', options: Optional[dict] = None):
        self.content = content
        self.options = dict(options or {})
        self.style: Dict[str, str] = {
            key: self.options[key] for key in STYLE_KEYS if key in self.options
        }
        self.cursor = len(content)
        self.destroyed = False
        self._listeners: List[Callable[[str], None]] = []

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.content)

    def get_content(self) -> str:
        return self.content

    def replace_content(self, content: str) -> None:
        self.content = content
        self.cursor = min(self.cursor, len(content))
        self._notify()

    def type_text(self, text: str) -> None:
        """Insert text at the cursor, as a keystroke would."""
        self.content = self.content[:self.cursor] + text + self.content[self.cursor:]
        self.cursor += len(text)
        self._notify()

    def move_cursor(self, pos: int) -> None:
        self.cursor = max(0, min(pos, len(self.content)))

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def apply_style(self, style: Dict[str, str]) -> None:
        self.style.update(style)

    def destroy(self) -> None:
        self._listeners.clear()
        self.destroyed = True
