"""
``[[`` reference completion for the editing surface.

Typing ``[[pig`` triggers a lookup against the reference index for the
current project root. Lookups are slow and never cancelled; instead every
trigger takes a request token, and a result whose token is no longer the
latest is dropped when it arrives.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Pattern

from theoremnote.core.context import get_project_root
from theoremnote.core.index import ReferenceLookup

logger = logging.getLogger(__name__)

TRIGGER_RE = re.compile(r'\[\[([^\[\]|\n]*)$')
# Text typed after ``[[`` for which the current options stay valid
VALID_FOR_RE = re.compile(r'^[^\[\]|\n]*$')


class SuggestionKind(Enum):
    REFERENCE = 'reference'


@dataclass(frozen=True)
class Suggestion:
    label: str
    insert_text: str
    kind: SuggestionKind = SuggestionKind.REFERENCE


@dataclass
class CompletionContext:
    """Editor state at the moment completion was requested."""
    text: str
    pos: int

    def text_before(self) -> str:
        return self.text[self.line_start:self.pos]

    def match_before(self, pattern: Pattern) -> Optional[re.Match]:
        return pattern.search(self.text_before())

    @property
    def line_start(self) -> int:
        return self.text.rfind('\n', 0, self.pos) + 1


@dataclass
class CompletionResult:
    from_pos: int
    options: List[Suggestion] = field(default_factory=list)
    valid_for: Pattern = VALID_FOR_RE
    # Text typed after ``[[`` when the options were produced
    partial: str = ''

    def is_valid_for(self, context: CompletionContext) -> bool:
        """True while the cursor stays inside the ``[[`` region this result was built for."""
        if context.pos < self.from_pos:
            return False
        typed = context.text[self.from_pos:context.pos]
        return bool(self.valid_for.match(typed)) and context.text[self.from_pos - 2:self.from_pos] == '[['

    def filtered(self, context: CompletionContext) -> List[Suggestion]:
        """Re-filter the options for newer input without a new lookup."""
        if not self.is_valid_for(context):
            return []
        partial = context.text[self.from_pos:context.pos]
        return [s for s in self.options if matches(s.label, partial)]

    def covers(self, context: CompletionContext) -> bool:
        """True when newer input only narrows the partial, so filtering is enough."""
        if not self.is_valid_for(context):
            return False
        return matches(context.text[self.from_pos:context.pos], self.partial)


def matches(name: str, partial: str) -> bool:
    return partial.lower() in name.lower()


def encode_reference(path: str, name: str) -> str:
    """Inserted text: path and display label joined by ``|``."""
    return f"{path}|{name}"


class CompletionProvider:
    def __init__(self, index: ReferenceLookup, root_getter: Callable[[], str] = get_project_root):
        self._index = index
        self._root_getter = root_getter
        self._latest_token = 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def _next_token(self) -> int:
        self._latest_token += 1
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    async def complete(self, context: CompletionContext) -> Optional[CompletionResult]:
        """
        Return suggestions for the ``[[`` prefix before the cursor, or None
        when there is no trigger, the lookup failed, or the result went stale.
        """
        # Every request, triggering or not, supersedes those still in flight
        token = self._next_token()
        match = context.match_before(TRIGGER_RE)
        if match is None:
            return None

        root = self._root_getter()
        partial = match.group(1)
        logger.debug(f"Completion #{token}: looking up '{partial}' under '{root}'")

        try:
            references = await self._index.lookup_references(root)
        except Exception as e:
            logger.warning(f"Reference lookup failed: {e}")
            return None

        if not self.is_current(token):
            logger.debug(f"Completion #{token} is stale (latest #{self._latest_token}); discarded")
            return None

        options = [
            Suggestion(label=name, insert_text=encode_reference(path, name))
            for name, path in sorted(references.items())
            if matches(name, partial)
        ]
        return CompletionResult(from_pos=context.line_start + match.start(1), options=options, partial=partial)
