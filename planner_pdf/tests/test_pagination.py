"""Tests for the second-pass pagination resolver."""
import unittest

from planner_pdf import config
from planner_pdf.blocks import Title, render_title
from planner_pdf.config import DEFAULT_BRANDING
from planner_pdf.cursor import ContentFlowCursor
from planner_pdf.errors import (
    LayoutSealedError,
    PageLockedError,
    ResolverStateError,
    TocOverflowError,
)
from planner_pdf.pagination import (
    PaginationResolver,
    ResolverState,
    draw_footer,
    footer_label,
    toc_pages_needed,
    toc_rows_per_page,
    truncate_to_width,
)
from planner_pdf.surface import PageSurface
from planner_pdf.toc import TocRecorder


def make_run(titles, owner=None):
    """Cover, one TOC page, then one page per title."""
    surface = PageSurface()
    surface.add_page()
    toc_page = surface.add_page()
    cursor = ContentFlowCursor(
        surface, on_new_page=lambda index: draw_footer(surface, index, None, DEFAULT_BRANDING)
    )
    cursor.fill_page()
    toc = TocRecorder()
    for number in range(titles):
        cursor.start_section()
        render_title(Title(f'Section {number}'), cursor, toc)
    return PaginationResolver(surface, cursor, toc, [toc_page], toc_page + 1, owner=owner)


class PaginationResolverTest(unittest.TestCase):
    def test_states_must_run_in_order(self):
        resolver = make_run(2)
        with self.assertRaises(ResolverStateError):
            resolver.backfill()
        with self.assertRaises(ResolverStateError):
            resolver.finish()
        resolver.seal()
        self.assertEqual(resolver.state, ResolverState.TOTALS_KNOWN)
        with self.assertRaises(ResolverStateError):
            resolver.seal()
        with self.assertRaises(ResolverStateError):
            resolver.finish()

    def test_seal_freezes_the_layout(self):
        resolver = make_run(2)
        self.assertEqual(resolver.seal(), 4)
        with self.assertRaises(LayoutSealedError):
            resolver.cursor.place(10)
        with self.assertRaises(PageLockedError):
            resolver.surface.add_page()

    def test_footers_carry_final_total(self):
        resolver = make_run(3)
        resolver.seal()
        resolver.backfill()
        surface = resolver.surface
        self.assertEqual(resolver.total_pages, 5)
        for index in range(2, 5):
            texts = surface.page_texts(index)
            self.assertIn(f'Page {index + 1} of 5', texts)
            self.assertNotIn(f'Page {index + 1}', texts)
            self.assertIn(DEFAULT_BRANDING.footer_caption, texts)
        for index in (0, 1):
            self.assertFalse(any(t.startswith('Page ') for t in surface.page_texts(index)))

    def test_footers_name_the_plan_owner(self):
        resolver = make_run(2, owner='Margaret \u201cPeggy\u201d Lane')
        resolver.resolve()
        labels = [t for t in resolver.surface.page_texts(3) if t.startswith('Page ')]
        self.assertEqual(labels, ['Page 4 of 4 (Margaret "Peggy" Lane)'])

    def test_long_owner_name_is_cut_to_width(self):
        resolver = make_run(1, owner='Bartholomew ' * 30)
        resolver.resolve()
        surface = resolver.surface
        label = [t for t in surface.page_texts(2) if t.startswith('Page 3 of 3 (')][0]
        self.assertTrue(label.endswith('...'))
        self.assertLessEqual(surface.measure_text_width(label, config.FOOTER_PAGE), config.CONTENT_W)

    def test_footer_label(self):
        self.assertEqual(footer_label(0), 'Page 1')
        self.assertEqual(footer_label(2, 9), 'Page 3 of 9')
        self.assertEqual(footer_label(2, 9, 'Ann Lee'), 'Page 3 of 9 (Ann Lee)')
        self.assertEqual(footer_label(2, None, 'Ann Lee'), 'Page 3 (Ann Lee)')

    def test_backfill_is_idempotent(self):
        resolver = make_run(3)
        resolver.seal()
        resolver.backfill()
        first = [list(resolver.surface.page(i).ops) for i in range(resolver.total_pages)]
        resolver.backfill()
        second = [list(resolver.surface.page(i).ops) for i in range(resolver.total_pages)]
        self.assertEqual(first, second)

    def test_toc_rows_have_dot_leaders_and_page_numbers(self):
        resolver = make_run(3)
        resolver.seal()
        resolver.backfill()
        self.assertFalse(resolver.compact_toc)
        texts = resolver.surface.page_texts(1)
        self.assertEqual(texts.count('Section 0'), 1)
        self.assertIn('3', texts)
        self.assertIn('5', texts)
        leaders = [t for t in texts if set(t) == {'.'}]
        self.assertEqual(len(leaders), 3)

    def test_number_is_right_aligned_at_margin(self):
        resolver = make_run(1)
        resolver.seal()
        resolver.backfill()
        numbers = [op for op in resolver.surface.page(1).ops if op.kind == 'text' and op.params[0] == '3']
        self.assertEqual(len(numbers), 1)
        _, x, _, align, _ = numbers[0].params
        self.assertEqual(align, 'right')
        self.assertEqual(x, config.MARGIN + config.CONTENT_W)

    def test_toc_falls_back_to_compact_list(self):
        resolver = make_run(toc_rows_per_page() + 5)
        resolver.seal()
        with self.assertLogs('planner_pdf.pagination', level='WARNING'):
            resolver.backfill()
        self.assertTrue(resolver.compact_toc)
        texts = resolver.surface.page_texts(1)
        self.assertIn('Section 0 - page 3', texts)
        self.assertFalse(any(set(t) == {'.'} for t in texts))

    def test_toc_overflow_is_structural(self):
        resolver = make_run(toc_rows_per_page(compact=True) + 1)
        resolver.seal()
        with self.assertRaises(TocOverflowError):
            resolver.backfill()

    def test_finish_encodes_once(self):
        resolver = make_run(2)
        data = resolver.resolve()
        self.assertTrue(data.startswith(b'%PDF'))
        self.assertEqual(resolver.state, ResolverState.DONE)
        self.assertTrue(resolver.surface.sealed)
        with self.assertRaises(ResolverStateError):
            resolver.backfill()


class TocSizingTest(unittest.TestCase):
    def test_pages_needed(self):
        rows = toc_rows_per_page()
        self.assertEqual(toc_pages_needed(0), 1)
        self.assertEqual(toc_pages_needed(rows), 1)
        self.assertEqual(toc_pages_needed(rows + 1), 2)

    def test_compact_rows_outnumber_full_rows(self):
        self.assertGreater(toc_rows_per_page(compact=True), toc_rows_per_page())

    def test_truncate_to_width(self):
        surface = PageSurface()
        self.assertEqual(truncate_to_width(surface, 'Short', 200, config.TOC_ENTRY), 'Short')
        text = truncate_to_width(surface, 'A very long section title ' * 10, 120, config.TOC_ENTRY)
        self.assertTrue(text.endswith('...'))
        self.assertLessEqual(surface.measure_text_width(text, config.TOC_ENTRY), 120)


if __name__ == '__main__':
    unittest.main()
