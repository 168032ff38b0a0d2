"""Tests for content block renderers."""
import base64
import io
import unittest

from PIL import Image

from planner_pdf import config
from planner_pdf.blocks import (
    NONE_PROVIDED,
    NOT_PROVIDED,
    Checklist,
    ChecklistItem,
    Field,
    ImageEmbed,
    Paragraph,
    Section,
    Table,
    Title,
    WritingLines,
    fit_box,
    image_bytes,
    probe_image,
    render_block,
)
from planner_pdf.config import BOX_GAP, BOX_PADDING, CONTENT_TOP, CONTENT_W, MARGIN, TABLE_ROW_PADDING
from planner_pdf.cursor import ContentFlowCursor, measure_text
from planner_pdf.errors import ImageEmbedError
from planner_pdf.sanitizer import sanitize
from planner_pdf.surface import PageSurface
from planner_pdf.toc import TocRecorder


def png_bytes(size=(4, 2)):
    buffer = io.BytesIO()
    Image.new('RGB', size, (10, 90, 90)).save(buffer, format='PNG')
    return buffer.getvalue()


class BlockRendererTest(unittest.TestCase):
    def setUp(self):
        self.surface = PageSurface()
        self.cursor = ContentFlowCursor(self.surface)
        self.toc = TocRecorder()

    def render(self, block):
        return render_block(block, self.cursor, self.toc)

    def all_texts(self):
        texts = []
        for index in range(self.surface.page_count):
            texts.extend(self.surface.page_texts(index))
        return texts

    # ─── TITLE ───

    def test_title_records_toc_entry(self):
        self.render(Title('Funeral Wishes \U0001F54A'))
        self.assertEqual(len(self.toc), 1)
        entry = self.toc.entries[0]
        self.assertEqual(entry.page_index, 0)
        self.assertIn(sanitize(entry.title), self.surface.page_texts(0))
        self.assertEqual(self.cursor.y, CONTENT_TOP + config.TITLE_HEIGHT)

    def test_title_entry_uses_page_of_drawing(self):
        self.surface.add_page()
        self.cursor.y = self.cursor.bottom - 10
        self.render(Title('Pet Care'))
        self.assertEqual(self.toc.entries[0].page_index, 1)
        self.assertIn('Pet Care', self.surface.page_texts(1))

    def test_title_outside_toc(self):
        self.render(Title('Appendix', in_toc=False))
        self.assertEqual(len(self.toc), 0)
        self.assertIn('Appendix', self.surface.page_texts(0))

    def test_title_underline_matches_text_width(self):
        self.render(Title('Insurance'))
        line = [op for op in self.surface.page(0).ops if op.kind == 'line'][0]
        x1, _, x2, _ = line.params
        self.assertAlmostEqual(x2 - x1, self.surface.measure_text_width('Insurance', config.TITLE))

    # ─── SECTION & FIELD ───

    def test_empty_section_draws_placeholder(self):
        self.render(Section('Music', '   '))
        self.assertIn(NONE_PROVIDED, self.surface.page_texts(0))
        self.assertEqual(
            self.cursor.y,
            CONTENT_TOP + config.SUBHEADING_HEIGHT + config.EMPTY_BOX_HEIGHT + BOX_GAP,
        )

    def test_section_advance_matches_measured_height(self):
        body = 'The quick brown fox jumps over the lazy dog. ' * 8
        lines, height = measure_text(self.surface, sanitize(body), CONTENT_W - 2 * BOX_PADDING, config.BODY)
        self.render(Section('Life Story', body))
        expected = CONTENT_TOP + config.SUBHEADING_HEIGHT + height + 2 * BOX_PADDING + BOX_GAP
        self.assertAlmostEqual(self.cursor.y, expected)
        texts = self.surface.page_texts(0)
        for line in lines:
            self.assertIn(line, texts)

    def test_long_section_continues_on_next_page(self):
        self.render(Section('Notes', 'lorem ipsum dolor ' * 1500))
        self.assertGreater(self.surface.page_count, 1)
        self.assertIn('Notes', self.surface.page_texts(0))
        self.assertIn('Notes (continued)', self.surface.page_texts(1))

    def test_empty_field_draws_not_provided(self):
        self.render(Field('Religion', None))
        self.assertEqual(self.surface.page_texts(0), ['Religion', NOT_PROVIDED])

    def test_inline_field_keeps_first_line(self):
        value = 'Long address line that keeps going ' * 6
        self.render(Field('Address', value))
        lines = self.surface.wrap_text(sanitize(value), CONTENT_W - 10, config.BODY)
        self.assertGreater(len(lines), 1)
        self.assertEqual(self.surface.page_texts(0), ['Address', lines[0]])

    def test_stacked_field_keeps_all_lines(self):
        value = 'Long address line that keeps going ' * 6
        self.render(Field('Address', value, mode='stacked'))
        lines = self.surface.wrap_text(sanitize(value), CONTENT_W - 10, config.BODY)
        self.assertEqual(self.surface.page_texts(0), ['Address'] + lines)

    # ─── TABLE ───

    def test_empty_table_draws_blank_rows(self):
        self.render(Table(('Name', 'Relationship', 'Contact')))
        texts = self.surface.page_texts(0)
        self.assertEqual(texts[:3], ['Name', 'Relationship', 'Contact'])
        blanks = [t for t in texts if t.startswith('_')]
        self.assertEqual(len(blanks), 3 * config.DEFAULT_EMPTY_TABLE_ROWS)

    def test_empty_table_without_blank_rows(self):
        self.render(Table(('Item',), min_empty_rows=0))
        self.assertEqual(self.surface.page_texts(0), ['Item'])

    def test_table_cells_show_first_wrapped_line(self):
        notes = 'Call before noon and ask for the after-hours line ' * 4
        self.render(Table(('Name', 'Notes'), (('Jane', notes),)))
        width = CONTENT_W / 2 - 2 * TABLE_ROW_PADDING
        first = self.surface.wrap_text(sanitize(notes), width, config.TABLE_CELL)[0]
        texts = self.surface.page_texts(0)
        self.assertIn('Jane', texts)
        self.assertIn(first, texts)
        self.assertNotIn(sanitize(notes), texts)

    def test_short_rows_are_padded(self):
        self.render(Table(('A', 'B', 'C'), (('only',),)))
        self.assertEqual(self.surface.page_texts(0), ['A', 'B', 'C', 'only'])

    def test_table_header_repeats_on_continuation_pages(self):
        rows = tuple((f'row {i}', 'x') for i in range(120))
        self.render(Table(('Name', 'Value'), rows))
        self.assertGreater(self.surface.page_count, 1)
        self.assertIn('Name', self.surface.page_texts(1))
        self.assertIn('row 119', self.all_texts())

    # ─── CHECKLIST ───

    def test_checked_items_use_filled_box(self):
        self.render(Checklist((ChecklistItem('Burial', True), ChecklistItem('Cremation'))))
        rects = [op for op in self.surface.page(0).ops if op.kind == 'rect']
        self.assertEqual([op.style for op in rects], [config.CHECKBOX_FILLED, config.CHECKBOX])
        self.assertEqual(self.surface.page_texts(0), ['Burial', 'Cremation'])

    def test_empty_checklist_draws_placeholder(self):
        self.render(Checklist((ChecklistItem('  '),), heading='Reminders'))
        self.assertEqual(self.surface.page_texts(0), ['Reminders', NONE_PROVIDED])

    def test_checklist_continuation_line_breaks_page(self):
        text = 'alpha beta gamma delta ' * 12
        self.surface.add_page()
        self.cursor.y = self.cursor.bottom - config.CHECKLIST_TEXT.leading
        self.render(Checklist((ChecklistItem(text),)))
        lines = self.surface.wrap_text(sanitize(text), CONTENT_W - config.CHECKBOX_INDENT,
                                       config.CHECKLIST_TEXT)
        self.assertGreater(len(lines), 1)
        self.assertEqual(self.surface.page_texts(0), [lines[0]])
        self.assertEqual(self.surface.page_texts(1), lines[1:])

    # ─── IMAGE ───

    def test_image_is_fitted_preserving_aspect_ratio(self):
        result = self.render(ImageEmbed(png_bytes((4, 2)), max_width=200, max_height=120))
        self.assertTrue(result.ok)
        image = self.surface.page(0).images()[0]
        self.assertEqual(image.params[3:], (200, 100))

    def test_data_url_image(self):
        source = 'data:image/png;base64,' + base64.b64encode(png_bytes()).decode('ascii')
        result = self.render(ImageEmbed(source))
        self.assertTrue(result.ok)
        self.assertEqual(len(self.surface.page(0).images()), 1)

    def test_corrupt_image_falls_back_to_note(self):
        with self.assertLogs('planner_pdf.blocks', level='WARNING'):
            result = self.render(ImageEmbed(b'\x89PNG broken', label='Signature'))
        self.assertFalse(result.ok)
        self.assertEqual(self.surface.page_texts(0), ['(Signature could not be displayed)'])
        self.assertEqual(self.surface.page(0).images(), [])

    def test_linked_image_is_not_fetched(self):
        with self.assertLogs('planner_pdf.blocks', level='WARNING'):
            result = self.render(ImageEmbed('https://example.com/photo.png'))
        self.assertFalse(result.ok)
        self.assertIn('(Image could not be displayed)', self.surface.page_texts(0))

    def test_probe_image_never_raises(self):
        self.assertFalse(probe_image(None).ok)
        self.assertFalse(probe_image('data:image/png;base64,@@@').ok)
        self.assertEqual(probe_image(png_bytes((3, 5))).size, (3, 5))

    def test_image_bytes_rejects_plain_data_url(self):
        with self.assertRaises(ImageEmbedError):
            image_bytes('data:text/plain,hello')

    def test_fit_box(self):
        self.assertEqual(fit_box((100, 100), 50, 20), (20, 20))
        self.assertEqual(fit_box((0, 0), 50, 20), (50, 20))

    # ─── LONG HEADINGS ───

    def text_right_edges(self):
        edges = []
        for index in range(self.surface.page_count):
            for op in self.surface.page(index).ops:
                if op.kind == 'text':
                    text, x = op.params[:2]
                    edges.append((text, x + self.surface.measure_text_width(text, op.style)))
        return edges

    def assert_inside_margin(self):
        right = MARGIN + CONTENT_W + 0.01
        self.assertEqual([(t, e) for t, e in self.text_right_edges() if e > right], [])

    def test_long_section_heading_is_cut_to_width(self):
        heading = 'To ' + ', '.join(f'Grandchild Number {n}' for n in range(12))
        self.render(Section(heading, 'Be kind to each other.'))
        drawn = self.surface.page_texts(0)[0]
        self.assertTrue(drawn.startswith('To Grandchild Number 0'))
        self.assertTrue(drawn.endswith('...'))
        self.assert_inside_margin()

    def test_continued_heading_keeps_its_suffix(self):
        self.render(Section('Care for ' + 'Biscuit ' * 40, 'lorem ipsum dolor ' * 1500))
        continued = self.surface.page_texts(1)[0]
        self.assertTrue(continued.endswith('... (continued)'))
        self.assert_inside_margin()

    def test_long_captions_labels_and_checklist_headings(self):
        self.render(Table(('Item',), min_empty_rows=0, caption='Items ' * 60))
        self.render(Checklist((ChecklistItem('Deed'),), heading='What I Own ' * 40))
        self.render(Field('Label ' * 60, None))
        self.render(Field('Label ' * 60, 'value'))
        self.render(ImageEmbed(b'broken', label='Heirloom clock ' * 30))
        self.assert_inside_margin()

    def test_short_headings_are_untouched(self):
        self.render(Section('Music', 'Amazing Grace'))
        self.assertEqual(self.surface.page_texts(0), ['Music', 'Amazing Grace'])

    # ─── OTHER BLOCKS ───

    def test_paragraph_flows_line_by_line(self):
        text = 'Words that wrap across several lines of the page. ' * 200
        self.render(Paragraph(text))
        lines = self.surface.wrap_text(sanitize(text), CONTENT_W, config.BODY)
        self.assertEqual(self.all_texts(), lines)
        self.assertGreater(self.surface.page_count, 1)

    def test_writing_lines(self):
        self.render(WritingLines(('Signature:', 'Date:')))
        self.assertEqual(self.surface.page_texts(0), ['Signature:', 'Date:'])
        lines = [op for op in self.surface.page(0).ops if op.kind == 'line']
        self.assertEqual(len(lines), 2)

    def test_unknown_block_type(self):
        with self.assertRaises(TypeError):
            self.render('not a block')


if __name__ == '__main__':
    unittest.main()
