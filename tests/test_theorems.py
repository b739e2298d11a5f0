import unittest
import sys
from pathlib import Path

from bs4 import BeautifulSoup

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from theoremnote.core.context import RenderContext
from theoremnote.core.exceptions import NestedRenderError
from theoremnote.core.renderer import render_nested
from theoremnote.core.theorems import escape_theorem_bodies, resolve_theorems, theorem_source


async def echo_render(text, context):
    soup = BeautifulSoup(f'<p>{text}</p>', 'html.parser')
    return [node.extract() for node in list(soup.contents)]


async def failing_render(text, context):
    raise NestedRenderError("refused")


class TestTheoremSource(unittest.TestCase):
    def test_source_ignores_element_boundaries(self):
        soup = BeautifulSoup('<theorem name="T">\n  a <b>b</b> c\n</theorem>', 'html.parser')
        self.assertEqual(theorem_source(soup.theorem), 'a b c')


class TestEscapeBodies(unittest.TestCase):
    def test_less_than_in_body_is_escaped(self):
        text = 'a<b <theorem name="T">$a<b$</theorem> c<d'
        self.assertEqual(
            escape_theorem_bodies(text),
            'a<b <theorem name="T">$a&lt;b$</theorem> c<d',
        )

    def test_nested_theorem_tags_are_kept(self):
        text = '<theorem name="A">x<y <theorem name="B">z</theorem></theorem>'
        escaped = escape_theorem_bodies(text)
        self.assertIn('x&lt;y <theorem name="B">z</theorem></theorem>', escaped)

    def test_unclosed_theorem_is_untouched(self):
        text = '<theorem name="T">a<b'
        self.assertEqual(escape_theorem_bodies(text), text)


class TestResolveTheorems(unittest.IsolatedAsyncioTestCase):
    async def test_theorem_becomes_titled_callout(self):
        soup = BeautifulSoup('<theorem name="Pigeonhole">body</theorem>', 'html.parser')
        await resolve_theorems(soup, RenderContext(), echo_render)

        self.assertIsNone(soup.find('theorem'))
        self.assertEqual(soup.select_one('div.theorem > div.theorem-title').get_text(), 'Pigeonhole')
        self.assertEqual(soup.select_one('div.theorem > div.theorem-content > p').get_text(), 'body')

    async def test_missing_name_uses_default_title(self):
        soup = BeautifulSoup('<theorem>body</theorem>', 'html.parser')
        await resolve_theorems(soup, RenderContext(), echo_render)
        self.assertEqual(soup.select_one('.theorem-title').get_text(), 'Theorem')

    async def test_empty_theorem_warns_and_still_renders(self):
        soup = BeautifulSoup('<theorem name="Empty"></theorem>', 'html.parser')
        with self.assertLogs('theoremnote.core.theorems', level='WARNING'):
            await resolve_theorems(soup, RenderContext(), echo_render)
        self.assertIsNotNone(soup.select_one('div.theorem'))

    async def test_nested_failure_falls_back_to_plain_text(self):
        soup = BeautifulSoup('<theorem name="T">$x$ **y**</theorem>', 'html.parser')
        with self.assertLogs('theoremnote.core.theorems', level='WARNING'):
            await resolve_theorems(soup, RenderContext(), failing_render)
        content = soup.select_one('.theorem-content')
        self.assertEqual(content.get_text(), '$x$ **y**')
        self.assertIsNone(content.find('strong'))

    async def test_inner_theorem_is_consumed_by_outer(self):
        soup = BeautifulSoup(
            '<theorem name="Outer">a <theorem name="Inner">b</theorem></theorem>', 'html.parser'
        )
        await resolve_theorems(soup, RenderContext(), echo_render)
        self.assertEqual(len(soup.select('div.theorem')), 1)
        self.assertIsNone(soup.find('theorem'))

    async def test_paragraph_wrapper_is_replaced(self):
        soup = BeautifulSoup('<p><theorem name="T">x</theorem></p>', 'html.parser')
        await resolve_theorems(soup, RenderContext(), echo_render)
        self.assertEqual(soup.contents[0].name, 'div')

    async def test_inline_theorem_splits_paragraph(self):
        soup = BeautifulSoup('<p>See <theorem name="T">x</theorem> here</p>', 'html.parser')
        await resolve_theorems(soup, RenderContext(), echo_render)

        self.assertEqual([node.name for node in soup.contents], ['p', 'div', 'p'])
        self.assertEqual(soup.contents[0].get_text(), 'See ')
        self.assertEqual(soup.contents[2].get_text(), ' here')
        self.assertIsNone(soup.select_one('p div.theorem'))


class TestNestedRender(unittest.IsolatedAsyncioTestCase):
    async def test_body_markdown_and_math_are_rendered(self):
        nodes = await render_nested("Holds for $n$ and **all** cases.", RenderContext().nested())
        html = ''.join(str(node) for node in nodes)
        self.assertIn('<strong>all</strong>', html)
        self.assertIn('math-inline', html)

    async def test_depth_bound_is_enforced(self):
        context = RenderContext(depth=3, max_depth=2)
        with self.assertRaises(NestedRenderError):
            await render_nested("x", context)

    async def test_nested_render_does_not_resolve_references(self):
        nodes = await render_nested("[[a.md|A]]", RenderContext().nested())
        html = ''.join(str(node) for node in nodes)
        self.assertNotIn('internal-link', html)


if __name__ == '__main__':
    unittest.main()
