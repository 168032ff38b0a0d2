"""Tests for the recording page surface."""
import io
import unittest

from PIL import Image
from reportlab.pdfbase import pdfmetrics

from planner_pdf import config
from planner_pdf.errors import ImageEmbedError, PageLockedError
from planner_pdf.surface import PageSurface, decode_image


def png_bytes(size=(4, 2), color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


class PageSurfaceTest(unittest.TestCase):
    def setUp(self):
        self.surface = PageSurface()

    def test_pages_are_indexed_in_order(self):
        self.assertEqual(self.surface.add_page(), 0)
        self.assertEqual(self.surface.add_page(), 1)
        self.assertEqual(self.surface.page_count, 2)
        self.assertEqual(self.surface.current_page, 1)
        self.surface.jump_to_page(0)
        self.assertEqual(self.surface.current_page, 0)
        with self.assertRaises(IndexError):
            self.surface.jump_to_page(5)

    def test_default_page_size_is_letter(self):
        self.assertEqual((self.surface.width, self.surface.height), (612, 792))

    def test_locked_pages_still_accept_drawing(self):
        self.surface.add_page()
        self.surface.lock_pages()
        with self.assertRaises(PageLockedError):
            self.surface.add_page()
        self.surface.draw_text('still fine', 50, 100, config.BODY)
        self.assertEqual(self.surface.page_texts(0), ['still fine'])

    def test_sealed_surface_refuses_drawing(self):
        self.surface.add_page()
        self.surface.seal()
        self.assertTrue(self.surface.sealed)
        with self.assertRaises(PageLockedError):
            self.surface.draw_text('late', 50, 100, config.BODY)
        with self.assertRaises(PageLockedError):
            self.surface.clear_region('footer')

    def test_measure_matches_font_metrics(self):
        width = self.surface.measure_text_width('Hello', config.BODY)
        self.assertEqual(width, pdfmetrics.stringWidth('Hello', config.BODY.font, config.BODY.size))

    def test_wrap_text_respects_width(self):
        text = 'The quick brown fox jumps over the lazy dog ' * 10
        lines = self.surface.wrap_text(text, 150, config.BODY)
        self.assertGreater(len(lines), 1)
        for line in lines:
            self.assertLessEqual(self.surface.measure_text_width(line, config.BODY), 150)
        self.assertEqual(' '.join(lines), ' '.join(text.split()))

    def test_wrap_text_splits_overlong_words(self):
        lines = self.surface.wrap_text('x' * 200, 50, config.BODY)
        self.assertGreater(len(lines), 1)
        self.assertEqual(''.join(lines), 'x' * 200)
        for line in lines:
            self.assertLessEqual(self.surface.measure_text_width(line, config.BODY), 50)

    def test_wrap_empty_text(self):
        self.assertEqual(self.surface.wrap_text('', 100, config.BODY), [])

    def test_clear_region_only_touches_tagged_ops_on_current_page(self):
        self.surface.add_page()
        self.surface.draw_text('body', 50, 100, config.BODY)
        self.surface.draw_text('Page 1', 306, 772, config.FOOTER_PAGE, tag='footer')
        self.surface.add_page()
        self.surface.draw_text('Page 2', 306, 772, config.FOOTER_PAGE, tag='footer')

        self.surface.jump_to_page(0)
        self.surface.clear_region('footer')
        self.assertEqual(self.surface.page_texts(0), ['body'])
        self.assertEqual(self.surface.page_texts(1), ['Page 2'])

    def test_embed_image(self):
        self.surface.add_page()
        self.surface.embed_image(png_bytes(), 50, 100, 40, 20)
        self.assertEqual(len(self.surface.page(0).images()), 1)

    def test_embed_invalid_image_raises(self):
        self.surface.add_page()
        with self.assertRaises(ImageEmbedError):
            self.surface.embed_image(b'definitely not an image', 50, 100, 40, 20)
        self.assertEqual(self.surface.page(0).images(), [])

    def test_decode_image_converts_palette_images(self):
        buffer = io.BytesIO()
        Image.new('P', (3, 3)).save(buffer, format='PNG')
        self.assertEqual(decode_image(buffer.getvalue()).mode, 'RGB')
        with self.assertRaises(ImageEmbedError):
            decode_image(b'')

    def test_render_produces_pdf_bytes(self):
        self.surface.add_page()
        self.surface.draw_text('Hello', 50, 100, config.TITLE)
        self.surface.draw_rect(50, 120, 100, 40, config.SECTION_BOX)
        self.surface.draw_line(50, 170, 150, 170, config.HAIRLINE)
        self.surface.add_page()
        self.surface.embed_image(png_bytes(), 50, 100, 40, 20)
        data = self.surface.render()
        self.assertTrue(data.startswith(b'%PDF'))
        self.assertIn(b'%%EOF', data[-16:])

    def test_render_is_deterministic(self):
        self.surface.add_page()
        self.surface.draw_text('Same every time', 50, 100, config.BODY, align='center', angle=45)
        self.assertEqual(self.surface.render(), self.surface.render())


if __name__ == '__main__':
    unittest.main()
