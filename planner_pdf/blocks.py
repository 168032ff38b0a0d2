"""
Content blocks and their renderers.

A block is plain data until ``render_block`` draws it through a
ContentFlowCursor. Every user-facing string is sanitized once, then the same
string is measured and drawn with the same style.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from planner_pdf import config
from planner_pdf.config import (
    BOX_GAP,
    BOX_PADDING,
    CHECKBOX_INDENT,
    CHECKBOX_SIZE,
    CHECKLIST_ITEM_GAP,
    CONTENT_W,
    EMPTY_BOX_HEIGHT,
    FIELD_GAP,
    FIELD_LABEL_HEIGHT,
    IMAGE_GAP,
    MARGIN,
    SUBHEADING_HEIGHT,
    TABLE_GAP,
    TABLE_ROW_PADDING,
    TITLE_HEIGHT,
    TITLE_UNDERLINE_GAP,
)
from planner_pdf.cursor import measure_text, truncate_to_width
from planner_pdf.errors import ImageEmbedError
from planner_pdf.log import get_logger
from planner_pdf.sanitizer import sanitize
from planner_pdf.surface import decode_image

LOGGER = get_logger(__name__)

NONE_PROVIDED = '(none provided)'
NOT_PROVIDED = '(not provided)'
CONTINUED_SUFFIX = ' (continued)'
FIELD_PADDING = 5

# Split a long box only when at least this many lines fit where it starts
MIN_SPLIT_LINES = 3


# ─── BLOCK TYPES ───

@dataclass(frozen=True)
class Title:
    text: str
    in_toc: bool = True


@dataclass(frozen=True)
class Section:
    heading: str
    body: Optional[str] = None
    placeholder: str = NONE_PROVIDED


@dataclass(frozen=True)
class Field:
    label: str
    value: Any = None
    mode: str = 'inline'  # 'inline' or 'stacked'


@dataclass(frozen=True)
class Table:
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...] = ()
    widths: Optional[Tuple[float, ...]] = None
    min_empty_rows: int = config.DEFAULT_EMPTY_TABLE_ROWS
    caption: Optional[str] = None


@dataclass(frozen=True)
class ChecklistItem:
    text: str
    checked: bool = False


@dataclass(frozen=True)
class Checklist:
    items: Tuple[ChecklistItem, ...]
    heading: Optional[str] = None


@dataclass(frozen=True)
class ImageEmbed:
    source: Any
    max_width: float = 200
    max_height: float = 120
    x_offset: float = 0
    label: str = 'Image'


@dataclass(frozen=True)
class Paragraph:
    text: str
    style: config.TextStyle = config.BODY


@dataclass(frozen=True)
class WritingLines:
    labels: Tuple[str, ...]
    line_width: float = CONTENT_W - 110


@dataclass(frozen=True)
class ImageResult:
    """Outcome of decoding an image source before it is placed."""

    ok: bool
    data: bytes = b''
    size: Tuple[int, int] = (0, 0)
    reason: str = ''

    @classmethod
    def success(cls, data, size):
        return cls(True, data=data, size=size)

    @classmethod
    def failure(cls, reason):
        return cls(False, reason=reason)


# ─── HELPERS ───

def image_bytes(source):
    """Return raw bytes for ``source`` (bytes or a base64 ``data:`` URL)."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, str) and source.startswith('data:'):
        header, _, payload = source.partition(',')
        if ';base64' not in header:
            raise ImageEmbedError('data URL is not base64 encoded')
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageEmbedError(f'invalid base64 image payload: {exc}') from exc
    raise ImageEmbedError('image is not embedded in the plan')


def probe_image(source):
    """Decode ``source`` without drawing; never raises."""
    try:
        data = image_bytes(source)
        image = decode_image(data)
    except ImageEmbedError as exc:
        return ImageResult.failure(str(exc))
    return ImageResult.success(data, image.size)


def fit_box(size, max_width, max_height):
    """Scale ``size`` to fit the box while keeping its aspect ratio."""
    width, height = size
    if width <= 0 or height <= 0:
        return max_width, max_height
    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def keep_together(cursor, height):
    """Break before a group that would otherwise split across pages."""
    if not cursor.fits(height) and not cursor.at_page_top:
        cursor.advance_page()


def fit_line(surface, text, style, width=CONTENT_W):
    """Single-line text such as a heading, cut with an ellipsis to ``width``."""
    return truncate_to_width(surface, text, width, style)


def _lines_fitting(space, style):
    if space <= 0:
        return 0
    return int(space // style.leading)


def _draw_lines(surface, lines, x, top, style):
    for i, line in enumerate(lines):
        surface.draw_text(line, x, top + i * style.leading + style.baseline, style)


def _render_boxed_lines(cursor, heading, heading_style, heading_height, lines,
                        text_style, box_style, padding):
    """Draw ``heading`` over a bordered box of ``lines``, splitting across pages."""
    surface = cursor.surface
    remaining = list(lines)
    first = True
    while remaining:
        overhead = heading_height + 2 * padding
        capacity = _lines_fitting(cursor.remaining - overhead, text_style)
        if capacity < min(len(remaining), MIN_SPLIT_LINES):
            capacity = _lines_fitting(cursor.usable_height - overhead, text_style)
        capacity = max(capacity, 1)
        chunk, remaining = remaining[:capacity], remaining[capacity:]

        box_height = len(chunk) * text_style.leading + 2 * padding
        y = cursor.place(heading_height + box_height)
        if first:
            label = fit_line(surface, heading, heading_style)
        else:
            room = CONTENT_W - surface.measure_text_width(CONTINUED_SUFFIX, heading_style)
            label = fit_line(surface, heading, heading_style, room) + CONTINUED_SUFFIX
        surface.draw_text(label, MARGIN, y + heading_style.baseline, heading_style)
        box_top = y + heading_height
        surface.draw_rect(MARGIN, box_top, CONTENT_W, box_height, box_style)
        _draw_lines(surface, chunk, MARGIN + padding, box_top + padding, text_style)
        first = False


def _render_empty_box(cursor, heading, heading_style, heading_height, placeholder,
                      box_height, box_style, padding):
    surface = cursor.surface
    y = cursor.place(heading_height + box_height)
    surface.draw_text(fit_line(surface, heading, heading_style), MARGIN, y + heading_style.baseline,
                      heading_style)
    box_top = y + heading_height
    surface.draw_rect(MARGIN, box_top, CONTENT_W, box_height, box_style)
    text_top = box_top + (box_height - config.PLACEHOLDER.leading) / 2
    surface.draw_text(placeholder, MARGIN + padding, text_top + config.PLACEHOLDER.baseline,
                      config.PLACEHOLDER)


# ─── RENDERERS ───

def render_title(block, cursor, toc=None):
    """Section title with a measured underline; records a TOC entry."""
    surface = cursor.surface
    text = sanitize(block.text)
    y = cursor.place(TITLE_HEIGHT)
    baseline = y + config.TITLE.baseline
    line = fit_line(surface, text, config.TITLE)
    surface.draw_text(line, MARGIN, baseline, config.TITLE)
    width = surface.measure_text_width(line, config.TITLE)
    rule_y = baseline + TITLE_UNDERLINE_GAP
    surface.draw_line(MARGIN, rule_y, MARGIN + width, rule_y, config.TITLE_RULE)
    if toc is not None and block.in_toc:
        toc.record(block.text, cursor.page_index)
    return y


def render_section(block, cursor, toc=None):
    """Subheading over a box of wrapped text, or a placeholder box."""
    surface = cursor.surface
    heading = sanitize(block.heading)
    body = sanitize(block.body)
    if not body:
        _render_empty_box(cursor, heading, config.SUBHEADING, SUBHEADING_HEIGHT,
                          sanitize(block.placeholder), EMPTY_BOX_HEIGHT,
                          config.SECTION_BOX, BOX_PADDING)
    else:
        lines, _ = measure_text(surface, body, CONTENT_W - 2 * BOX_PADDING, config.BODY)
        _render_boxed_lines(cursor, heading, config.SUBHEADING, SUBHEADING_HEIGHT, lines,
                            config.BODY, config.SECTION_BOX, BOX_PADDING)
    cursor.skip(BOX_GAP)


def render_field(block, cursor, toc=None):
    """Label above a single-line (inline) or wrapped (stacked) value box."""
    surface = cursor.surface
    label = sanitize(block.label)
    value = sanitize(block.value)
    style = config.BODY
    if not value:
        _render_empty_box(cursor, label, config.LABEL, FIELD_LABEL_HEIGHT, NOT_PROVIDED,
                          config.PLACEHOLDER.leading + 2 * FIELD_PADDING,
                          config.FIELD_BOX, FIELD_PADDING)
    else:
        lines, _ = measure_text(surface, value, CONTENT_W - 2 * FIELD_PADDING, style)
        if block.mode == 'inline':
            lines = lines[:1]
        _render_boxed_lines(cursor, label, config.LABEL, FIELD_LABEL_HEIGHT, lines,
                            style, config.FIELD_BOX, FIELD_PADDING)
    cursor.skip(FIELD_GAP)


def _column_widths(block):
    count = len(block.headers)
    if block.widths and len(block.widths) == count:
        total = float(sum(block.widths))
        return [CONTENT_W * w / total for w in block.widths]
    return [CONTENT_W / count] * count


def _normalize_row(row, count):
    cells = [sanitize(cell) for cell in row][:count]
    return cells + [''] * (count - len(cells))


def _draw_table_header(surface, headers, widths, y, height):
    surface.draw_rect(MARGIN, y, CONTENT_W, height, config.TABLE_HEADER_BOX)
    x = MARGIN
    for header, width in zip(headers, widths):
        lines = surface.wrap_text(header, width - 2 * TABLE_ROW_PADDING, config.TABLE_HEADER)
        if lines:
            surface.draw_text(lines[0], x + TABLE_ROW_PADDING,
                              y + TABLE_ROW_PADDING + config.TABLE_HEADER.baseline,
                              config.TABLE_HEADER)
        x += width


def _draw_table_row(surface, cells, widths, y, height, style):
    x = MARGIN
    for cell, width in zip(cells, widths):
        # Cells show only their first wrapped line so every row is one line tall
        lines = surface.wrap_text(cell, width - 2 * TABLE_ROW_PADDING, style)
        if lines:
            surface.draw_text(lines[0], x + TABLE_ROW_PADDING,
                              y + TABLE_ROW_PADDING + style.baseline, style)
        x += width
    surface.draw_line(MARGIN, y + height, MARGIN + CONTENT_W, y + height, config.HAIRLINE)


def _blank_cells(surface, widths):
    underscore = surface.measure_text_width('_', config.TABLE_BLANK)
    return ['_' * int((width - 2 * TABLE_ROW_PADDING) // underscore) for width in widths]


def render_table(block, cursor, toc=None):
    """Bold header row, then one-line data rows or blank handwriting rows."""
    surface = cursor.surface
    headers = [sanitize(h) for h in block.headers]
    if not headers:
        return
    widths = _column_widths(block)
    header_height = config.TABLE_HEADER.leading + 2 * TABLE_ROW_PADDING
    row_height = config.TABLE_CELL.leading + 2 * TABLE_ROW_PADDING
    caption = sanitize(block.caption)
    caption_height = SUBHEADING_HEIGHT if caption else 0

    rows = [(_normalize_row(row, len(headers)), config.TABLE_CELL) for row in block.rows]
    if not rows:
        blank = _blank_cells(surface, widths)
        rows = [(blank, config.TABLE_BLANK)] * max(block.min_empty_rows, 0)

    first_row = row_height if rows else 0
    y = cursor.place(caption_height + header_height + first_row)
    if caption:
        surface.draw_text(fit_line(surface, caption, config.SUBHEADING), MARGIN,
                          y + config.SUBHEADING.baseline, config.SUBHEADING)
    _draw_table_header(surface, headers, widths, y + caption_height, header_height)
    if rows:
        cells, style = rows[0]
        _draw_table_row(surface, cells, widths, y + caption_height + header_height,
                        row_height, style)

    for cells, style in rows[1:]:
        if not cursor.fits(row_height):
            cursor.advance_page()
            header_y = cursor.place(header_height)
            _draw_table_header(surface, headers, widths, header_y, header_height)
        row_y = cursor.place(row_height)
        _draw_table_row(surface, cells, widths, row_y, row_height, style)
    cursor.skip(TABLE_GAP)


def render_checklist(block, cursor, toc=None):
    """Checkbox glyph per item; every wrapped line is placed on its own."""
    surface = cursor.surface
    style = config.CHECKLIST_TEXT
    items = [(sanitize(item.text), item.checked) for item in block.items]
    items = [(text, checked) for text, checked in items if text]
    heading = sanitize(block.heading)
    if heading:
        keep_together(cursor, SUBHEADING_HEIGHT + style.leading)
        y = cursor.place(SUBHEADING_HEIGHT)
        surface.draw_text(fit_line(surface, heading, config.SUBHEADING), MARGIN,
                          y + config.SUBHEADING.baseline, config.SUBHEADING)
    if not items:
        y = cursor.place(config.PLACEHOLDER.leading)
        surface.draw_text(NONE_PROVIDED, MARGIN, y + config.PLACEHOLDER.baseline,
                          config.PLACEHOLDER)
        cursor.skip(BOX_GAP)
        return

    text_x = MARGIN + CHECKBOX_INDENT
    for text, checked in items:
        lines = surface.wrap_text(text, CONTENT_W - CHECKBOX_INDENT, style)
        y = cursor.place(style.leading)
        box_style = config.CHECKBOX_FILLED if checked else config.CHECKBOX
        box_top = y + style.baseline - CHECKBOX_SIZE
        surface.draw_rect(MARGIN, box_top, CHECKBOX_SIZE, CHECKBOX_SIZE, box_style)
        surface.draw_text(lines[0], text_x, y + style.baseline, style)
        for line in lines[1:]:
            y = cursor.place(style.leading)
            surface.draw_text(line, text_x, y + style.baseline, style)
        cursor.skip(CHECKLIST_ITEM_GAP)
    cursor.skip(BOX_GAP - CHECKLIST_ITEM_GAP)


def render_image(block, cursor, toc=None):
    """Embed an image; a bad image becomes a one-line italic note."""
    surface = cursor.surface
    x = MARGIN + block.x_offset
    result = probe_image(block.source)
    if result.ok:
        width, height = fit_box(result.size, block.max_width, block.max_height)
        y = cursor.place(height + IMAGE_GAP)
        try:
            surface.embed_image(result.data, x, y, width, height)
            return result
        except ImageEmbedError as exc:
            result = ImageResult.failure(str(exc))
    else:
        y = cursor.place(config.PLACEHOLDER.leading + IMAGE_GAP)

    LOGGER.warning('%s could not be displayed: %s', block.label, result.reason)
    message = f'({sanitize(block.label)} could not be displayed)'
    message = fit_line(surface, message, config.PLACEHOLDER, CONTENT_W - block.x_offset)
    surface.draw_text(message, x, y + config.PLACEHOLDER.baseline, config.PLACEHOLDER)
    return result


def render_paragraph(block, cursor, toc=None):
    """Wrapped text flowing line by line across pages."""
    surface = cursor.surface
    lines, _ = measure_text(surface, sanitize(block.text), CONTENT_W, block.style)
    for line in lines:
        y = cursor.place(block.style.leading)
        surface.draw_text(line, MARGIN, y + block.style.baseline, block.style)
    if lines:
        cursor.skip(FIELD_GAP)


def render_writing_lines(block, cursor, toc=None):
    """Labelled blank lines for handwriting."""
    surface = cursor.surface
    row_height = 36
    for label in block.labels:
        y = cursor.place(row_height)
        baseline = y + row_height - 10
        surface.draw_text(sanitize(label), MARGIN, baseline, config.BODY_BOLD)
        surface.draw_line(MARGIN + 110, baseline, MARGIN + 110 + block.line_width, baseline,
                          config.WRITING_LINE)
    cursor.skip(FIELD_GAP)


RENDERERS = {
    Title: render_title,
    Section: render_section,
    Field: render_field,
    Table: render_table,
    Checklist: render_checklist,
    ImageEmbed: render_image,
    Paragraph: render_paragraph,
    WritingLines: render_writing_lines,
}


def render_block(block, cursor, toc=None):
    renderer = RENDERERS.get(type(block))
    if renderer is None:
        raise TypeError(f'no renderer for {type(block).__name__}')
    return renderer(block, cursor, toc)
