"""
Second pass: stamps table of contents rows and final page totals.

Pass 1 leaves the reserved TOC pages blank and draws provisional footers
tagged ``footer``. Once the page count is frozen, the resolver jumps back to
those pages, clears the tagged regions and draws the final values. Clearing
before drawing makes every redraw idempotent.
"""

from enum import Enum

from planner_pdf import config
from planner_pdf.config import (
    BOTTOM_MARGIN,
    CONTENT_W,
    FOOTER_CAPTION_Y,
    FOOTER_PAGE_Y,
    FOOTER_RULE_Y,
    MARGIN,
    TOC_COMPACT_ROW_HEIGHT,
    TOC_DOT_GAP,
    TOC_FIRST_ROW_Y,
    TOC_ROW_HEIGHT,
)
from planner_pdf.cursor import truncate_to_width
from planner_pdf.errors import ResolverStateError, StructuralLayoutError, TocOverflowError
from planner_pdf.log import get_logger
from planner_pdf.sanitizer import sanitize

LOGGER = get_logger(__name__)

FOOTER_TAG = 'footer'
TOC_TAG = 'toc'


class ResolverState(Enum):
    DRAFTING = 1
    TOTALS_KNOWN = 2
    BACKFILLING = 3
    DONE = 4


def toc_rows_per_page(compact=False, page_height=config.PAGE_H):
    row_height = TOC_COMPACT_ROW_HEIGHT if compact else TOC_ROW_HEIGHT
    return max(int((page_height - BOTTOM_MARGIN - TOC_FIRST_ROW_Y) // row_height), 1)


def toc_pages_needed(entry_count):
    """Pages to reserve so ``entry_count`` rows fit with dot leaders."""
    rows = toc_rows_per_page()
    return max(-(-entry_count // rows), 1)


def footer_label(page_index, total=None, owner=None):
    """Page label, with the total once known and the plan owner when named."""
    label = f'Page {page_index + 1} of {total}' if total else f'Page {page_index + 1}'
    return f'{label} ({owner})' if owner else label


def draw_footer(surface, page_index, total, branding, owner=None, tag=FOOTER_TAG):
    """Divider, "provided by" caption and page label on the current page."""
    center = surface.width / 2
    surface.draw_line(MARGIN, FOOTER_RULE_Y, surface.width - MARGIN, FOOTER_RULE_Y,
                      config.FOOTER_RULE, tag=tag)
    surface.draw_text(sanitize(branding.footer_caption), center, FOOTER_CAPTION_Y,
                      config.FOOTER_CAPTION, align='center', tag=tag)
    label = truncate_to_width(surface, footer_label(page_index, total, sanitize(owner)),
                              CONTENT_W, config.FOOTER_PAGE)
    surface.draw_text(label, center, FOOTER_PAGE_Y, config.FOOTER_PAGE, align='center', tag=tag)


class PaginationResolver:
    """Drives a finished layout through seal, backfill and encoding."""

    def __init__(self, surface, cursor, toc, toc_pages, content_start,
                 branding=config.DEFAULT_BRANDING, owner=None):
        self.surface = surface
        self.cursor = cursor
        self.toc = toc
        self.toc_pages = list(toc_pages)
        self.content_start = content_start
        self.branding = branding
        self.owner = owner
        self.state = ResolverState.DRAFTING
        self.total_pages = None
        self.compact_toc = False

    def _require(self, *expected):
        if self.state not in expected:
            raise ResolverStateError(self.state, expected[0])

    # ─── STATE TRANSITIONS ───

    def seal(self):
        """Freeze the page count; no block may be placed afterwards."""
        self._require(ResolverState.DRAFTING)
        self.cursor.lock()
        self.surface.lock_pages()
        self.total_pages = self.surface.page_count
        for entry in self.toc.entries:
            if not 0 <= entry.page_index < self.total_pages:
                raise StructuralLayoutError(
                    f'TOC entry {entry.title!r} points at missing page {entry.page_index + 1}'
                )
        self.state = ResolverState.TOTALS_KNOWN
        LOGGER.info('Layout sealed at %d pages with %d TOC entries',
                    self.total_pages, len(self.toc))
        return self.total_pages

    def backfill(self):
        """Write the TOC and final footers; safe to repeat before ``finish``."""
        self._require(ResolverState.TOTALS_KNOWN, ResolverState.BACKFILLING)
        self.state = ResolverState.BACKFILLING
        self._write_toc()
        self._write_footers()

    def finish(self):
        """Seal the surface and encode it."""
        self._require(ResolverState.BACKFILLING)
        self.surface.seal()
        data = self.surface.render()
        self.state = ResolverState.DONE
        return data

    def resolve(self):
        self.seal()
        self.backfill()
        return self.finish()

    # ─── TABLE OF CONTENTS ───

    def _write_toc(self):
        entries = self.toc.entries
        pages = len(self.toc_pages)
        full_rows = toc_rows_per_page(page_height=self.surface.height)
        compact_rows = toc_rows_per_page(compact=True, page_height=self.surface.height)

        if len(entries) <= pages * full_rows:
            self.compact_toc = False
            per_page, row_height, draw = full_rows, TOC_ROW_HEIGHT, self._draw_entry
        elif len(entries) <= pages * compact_rows:
            LOGGER.warning('%d TOC entries exceed %d reserved rows; using the compact list',
                           len(entries), pages * full_rows)
            self.compact_toc = True
            per_page, row_height, draw = compact_rows, TOC_COMPACT_ROW_HEIGHT, self._draw_compact_entry
        else:
            raise TocOverflowError(len(entries), pages * compact_rows)

        for number, page_index in enumerate(self.toc_pages):
            self.surface.jump_to_page(page_index)
            self.surface.clear_region(TOC_TAG)
            chunk = entries[number * per_page:(number + 1) * per_page]
            for row, entry in enumerate(chunk):
                y = TOC_FIRST_ROW_Y + row * row_height
                draw(entry, y)
        LOGGER.debug('Wrote %d TOC entries onto %d page(s)', len(entries), pages)

    def _draw_entry(self, entry, y):
        surface = self.surface
        style = config.TOC_ENTRY
        right = MARGIN + CONTENT_W
        number = str(entry.page_number)
        number_w = surface.measure_text_width(number, style)
        dot_w = surface.measure_text_width('.', config.TOC_DOTS)

        room = CONTENT_W - number_w - 2 * TOC_DOT_GAP - 3 * dot_w
        title = truncate_to_width(surface, sanitize(entry.title), room, style)
        surface.draw_text(title, MARGIN, y, style, tag=TOC_TAG)

        start = MARGIN + surface.measure_text_width(title, style) + TOC_DOT_GAP
        end = right - number_w - TOC_DOT_GAP
        count = int((end - start) // dot_w) if dot_w else 0
        if count > 0:
            surface.draw_text('.' * count, start, y, config.TOC_DOTS, tag=TOC_TAG)
        surface.draw_text(number, right, y, style, align='right', tag=TOC_TAG)

    def _draw_compact_entry(self, entry, y):
        style = config.TOC_COMPACT
        suffix = f' - page {entry.page_number}'
        room = CONTENT_W - self.surface.measure_text_width(suffix, style)
        title = truncate_to_width(self.surface, sanitize(entry.title), room, style)
        self.surface.draw_text(title + suffix, MARGIN, y, style, tag=TOC_TAG)

    # ─── FOOTERS ───

    def _write_footers(self):
        for index in range(self.content_start, self.total_pages):
            self.surface.jump_to_page(index)
            self.surface.clear_region(FOOTER_TAG)
            draw_footer(self.surface, index, self.total_pages, self.branding, self.owner)
        LOGGER.debug('Stamped footers on pages %d-%d of %d',
                     self.content_start + 1, self.total_pages, self.total_pages)
