"""
Recording page surface backed by ReportLab.

Drawing calls are recorded per page in top-down coordinates so that any page
can be revisited and partially redrawn before the document is encoded. The
recorded operations are replayed onto a ReportLab canvas by ``render``.
"""

import io
from dataclasses import dataclass
from typing import Any, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from planner_pdf.config import PAGE_H, PAGE_W
from planner_pdf.errors import ImageEmbedError, PageLockedError
from planner_pdf.log import get_logger

LOGGER = get_logger(__name__)

_IMAGE_MODES = ('RGB', 'RGBA', 'L')


def decode_image(data):
    """Decode raw image bytes with Pillow, raising ImageEmbedError on failure."""
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise ImageEmbedError('image data is empty or not bytes')
    try:
        image = Image.open(io.BytesIO(bytes(data)))
        image.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise ImageEmbedError(f'image could not be decoded: {exc}') from exc
    if image.mode not in _IMAGE_MODES:
        image = image.convert('RGB')
    return image


@dataclass(frozen=True)
class DrawOp:
    kind: str
    params: tuple
    style: Any = None
    tag: Optional[str] = None


class PageRecord:
    """Operations drawn on one page, in drawing order."""

    def __init__(self, index):
        self.index = index
        self.ops = []

    def texts(self):
        return [op.params[0] for op in self.ops if op.kind == 'text']

    def images(self):
        return [op for op in self.ops if op.kind == 'image']


class PageSurface:
    """Fixed-size pages with text, rules, boxes and images."""

    def __init__(self, page_size=(PAGE_W, PAGE_H), title=None, author=None):
        self.width, self.height = page_size
        self.title = title
        self.author = author
        self._pages = []
        self._current = None
        self._pages_locked = False
        self._sealed = False

    # ─── PAGES ───

    @property
    def page_count(self):
        return len(self._pages)

    @property
    def current_page(self):
        return self._current

    def add_page(self):
        """Append a blank page and make it current; returns its index."""
        if self._pages_locked:
            raise PageLockedError('page count is fixed; no pages may be added')
        page = PageRecord(len(self._pages))
        self._pages.append(page)
        self._current = page.index
        return page.index

    def jump_to_page(self, index):
        if not 0 <= index < len(self._pages):
            raise IndexError(f'page {index} does not exist ({len(self._pages)} pages)')
        self._current = index

    def lock_pages(self):
        """Forbid new pages; existing pages may still be redrawn."""
        self._pages_locked = True

    def seal(self):
        """Forbid any further drawing."""
        self._pages_locked = True
        self._sealed = True

    @property
    def sealed(self):
        return self._sealed

    def page(self, index):
        return self._pages[index]

    def page_texts(self, index):
        return self._pages[index].texts()

    # ─── MEASUREMENT ───

    def measure_text_width(self, text, style):
        return pdfmetrics.stringWidth(text, style.font, style.size)

    def wrap_text(self, text, max_width, style):
        """Break ``text`` into lines no wider than ``max_width``.

        Words wider than the column are split between characters so that no
        line ever exceeds the width it was measured against.
        """
        lines = []
        current = ''
        for word in text.split():
            candidate = f'{current} {word}' if current else word
            if self.measure_text_width(candidate, style) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            pieces = self._split_word(word, max_width, style)
            lines.extend(pieces[:-1])
            current = pieces[-1]
        if current:
            lines.append(current)
        return lines

    def _split_word(self, word, max_width, style):
        if self.measure_text_width(word, style) <= max_width:
            return [word]
        pieces = []
        chunk = ''
        for char in word:
            if chunk and self.measure_text_width(chunk + char, style) > max_width:
                pieces.append(chunk)
                chunk = char
            else:
                chunk += char
        pieces.append(chunk)
        return pieces

    # ─── DRAWING PRIMITIVES ───

    def _record(self, op):
        if self._sealed:
            raise PageLockedError('surface is sealed; drawing is no longer permitted')
        if self._current is None:
            raise IndexError('no page has been added')
        self._pages[self._current].ops.append(op)

    def draw_text(self, text, x, y, style, align='left', angle=0, tag=None):
        """Draw a single line with its baseline at ``y`` (top-down)."""
        if not text:
            return
        self._record(DrawOp('text', (text, x, y, align, angle), style, tag))

    def draw_rect(self, x, y, w, h, style, tag=None):
        """Draw a rectangle whose top-left corner is at (x, y)."""
        self._record(DrawOp('rect', (x, y, w, h), style, tag))

    def draw_line(self, x1, y1, x2, y2, style, tag=None):
        self._record(DrawOp('line', (x1, y1, x2, y2), style, tag))

    def embed_image(self, data, x, y, w, h, tag=None):
        """Place an image in the box with top-left corner (x, y).

        Raises ImageEmbedError when the bytes cannot be decoded.
        """
        image = decode_image(data)
        self._record(DrawOp('image', (ImageReader(image), x, y, w, h), None, tag))

    def clear_region(self, tag):
        """Remove everything drawn with ``tag`` on the current page."""
        if self._sealed:
            raise PageLockedError('surface is sealed; drawing is no longer permitted')
        page = self._pages[self._current]
        page.ops = [op for op in page.ops if op.tag != tag]

    # ─── OUTPUT ───

    def render(self):
        """Encode all pages into PDF bytes."""
        with io.BytesIO() as buffer:
            c = canvas.Canvas(buffer, pagesize=(self.width, self.height), invariant=1)
            if self.title:
                c.setTitle(self.title)
            if self.author:
                c.setAuthor(self.author)
            for page in self._pages:
                for op in page.ops:
                    self._replay(c, op)
                c.showPage()
            c.save()
            data = buffer.getvalue()
        LOGGER.debug('Encoded %d pages into %d bytes', len(self._pages), len(data))
        return data

    def _replay(self, c, op):
        if op.kind == 'text':
            self._replay_text(c, op)
        elif op.kind == 'rect':
            x, y, w, h = op.params
            style = op.style
            c.saveState()
            if style.fill is not None:
                c.setFillColor(style.fill)
            if style.stroke is not None:
                c.setStrokeColor(style.stroke)
                c.setLineWidth(style.stroke_width)
            c.rect(x, self.height - y - h, w, h,
                   fill=1 if style.fill is not None else 0,
                   stroke=1 if style.stroke is not None else 0)
            c.restoreState()
        elif op.kind == 'line':
            x1, y1, x2, y2 = op.params
            c.saveState()
            c.setStrokeColor(op.style.color)
            c.setLineWidth(op.style.width)
            c.line(x1, self.height - y1, x2, self.height - y2)
            c.restoreState()
        elif op.kind == 'image':
            reader, x, y, w, h = op.params
            c.drawImage(reader, x, self.height - y - h, width=w, height=h, mask='auto')

    def _replay_text(self, c, op):
        text, x, y, align, angle = op.params
        style = op.style
        c.saveState()
        c.setFont(style.font, style.size)
        c.setFillColor(style.color)
        c.translate(x, self.height - y)
        if angle:
            c.rotate(angle)
        if align == 'center':
            c.drawCentredString(0, 0, text)
        elif align == 'right':
            c.drawRightString(0, 0, text)
        else:
            c.drawString(0, 0, text)
        c.restoreState()
