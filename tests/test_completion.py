import asyncio
import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from theoremnote.editor.completion import CompletionContext, CompletionProvider, CompletionResult, Suggestion

REFERENCES = {
    'Pigeonhole': 'combinatorics.md',
    'Pigeon Lemma': 'birds.md',
    'Cauchy-Schwarz': 'analysis.md',
}


class StaticIndex:
    def __init__(self, references=None):
        self.references = references if references is not None else dict(REFERENCES)
        self.roots = []

    async def lookup_references(self, root):
        self.roots.append(root)
        return dict(self.references)


class GatedIndex:
    """Holds each lookup until its gate is opened."""

    def __init__(self):
        self.gates = {}

    async def lookup_references(self, root):
        gate = asyncio.Event()
        self.gates[len(self.gates)] = gate
        await gate.wait()
        return dict(REFERENCES)


class BrokenIndex:
    async def lookup_references(self, root):
        raise OSError("index unreadable")


def at_end(text):
    return CompletionContext(text, len(text))


class TestCompletionProvider(unittest.IsolatedAsyncioTestCase):
    async def test_trigger_returns_matching_references(self):
        provider = CompletionProvider(StaticIndex(), root_getter=lambda: '/notes')
        result = await provider.complete(at_end("See [[pig"))

        self.assertEqual([s.label for s in result.options], ['Pigeon Lemma', 'Pigeonhole'])
        self.assertEqual(result.options[1].insert_text, 'combinatorics.md|Pigeonhole')
        self.assertEqual(result.from_pos, len("See [["))

    async def test_match_is_case_insensitive_substring(self):
        provider = CompletionProvider(StaticIndex(), root_getter=lambda: '/notes')
        result = await provider.complete(at_end("[[SCHWARZ"))
        self.assertEqual([s.label for s in result.options], ['Cauchy-Schwarz'])

    async def test_empty_partial_lists_everything(self):
        provider = CompletionProvider(StaticIndex(), root_getter=lambda: '/notes')
        result = await provider.complete(at_end("[["))
        self.assertEqual(len(result.options), 3)

    async def test_no_trigger_returns_none(self):
        provider = CompletionProvider(StaticIndex(), root_getter=lambda: '/notes')
        self.assertIsNone(await provider.complete(at_end("plain text")))
        self.assertIsNone(await provider.complete(at_end("[[done]] after")))

    async def test_trigger_on_later_line(self):
        text = "first line\n[[Cau"
        provider = CompletionProvider(StaticIndex(), root_getter=lambda: '/notes')
        result = await provider.complete(at_end(text))
        self.assertEqual(result.from_pos, text.index('Cau'))

    async def test_lookup_uses_current_root(self):
        index = StaticIndex()
        provider = CompletionProvider(index, root_getter=lambda: '/projects/math')
        await provider.complete(at_end("[[p"))
        self.assertEqual(index.roots, ['/projects/math'])

    async def test_lookup_failure_yields_none(self):
        provider = CompletionProvider(BrokenIndex(), root_getter=lambda: '/notes')
        with self.assertLogs('theoremnote.editor.completion', level='WARNING'):
            self.assertIsNone(await provider.complete(at_end("[[pig")))

    async def test_stale_result_is_discarded(self):
        """The slow first lookup resolves after the second request and is dropped."""
        index = GatedIndex()
        provider = CompletionProvider(index, root_getter=lambda: '/notes')

        first = asyncio.ensure_future(provider.complete(at_end("[[pig")))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(provider.complete(at_end("[[pigeonh")))
        await asyncio.sleep(0)

        index.gates[1].set()
        latest = await second
        index.gates[0].set()
        stale = await first

        self.assertIsNone(stale)
        self.assertEqual([s.label for s in latest.options], ['Pigeonhole'])

    async def test_non_trigger_keystroke_invalidates_pending_lookup(self):
        index = GatedIndex()
        provider = CompletionProvider(index, root_getter=lambda: '/notes')

        pending = asyncio.ensure_future(provider.complete(at_end("[[pig")))
        await asyncio.sleep(0)
        self.assertIsNone(await provider.complete(at_end("[[pig]] ")))

        index.gates[0].set()
        self.assertIsNone(await pending)


class TestCompletionResult(unittest.TestCase):
    def setUp(self):
        self.result = CompletionResult(from_pos=2, options=[])

    def test_valid_while_typing_a_name(self):
        self.assertTrue(self.result.is_valid_for(at_end("[[Pigeon")))

    def test_invalid_after_separator_or_close(self):
        self.assertFalse(self.result.is_valid_for(at_end("[[Pigeon|")))
        self.assertFalse(self.result.is_valid_for(at_end("[[Pigeon]")))

    def test_invalid_before_region(self):
        self.assertFalse(self.result.is_valid_for(CompletionContext("[[Pigeon", 1)))


class TestNarrowing(unittest.TestCase):
    def setUp(self):
        options = [
            Suggestion(label=name, insert_text=f"{path}|{name}")
            for name, path in sorted(REFERENCES.items())
        ]
        self.result = CompletionResult(from_pos=2, options=options, partial='pig')

    def test_filtered_narrows_options(self):
        labels = [s.label for s in self.result.filtered(at_end("[[pigeonh"))]
        self.assertEqual(labels, ['Pigeonhole'])

    def test_filtered_outside_region_is_empty(self):
        self.assertEqual(self.result.filtered(at_end("[[pig]")), [])

    def test_covers_longer_partial(self):
        self.assertTrue(self.result.covers(at_end("[[pigeo")))

    def test_does_not_cover_widened_partial(self):
        self.assertFalse(self.result.covers(at_end("[[pi")))
        self.assertFalse(self.result.covers(at_end("[[cau")))


if __name__ == '__main__':
    unittest.main()
