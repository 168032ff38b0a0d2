"""
Vertical flow cursor: tracks the write position and breaks pages.
"""

from planner_pdf.config import BOTTOM_MARGIN, CONTENT_TOP
from planner_pdf.errors import LayoutSealedError
from planner_pdf.log import get_logger

LOGGER = get_logger(__name__)

ELLIPSIS = '...'


def measure_text(surface, text, width, style):
    """Wrap ``text`` to ``width`` and return ``(lines, height)``.

    Renderers call this both to size a block and to obtain the lines they
    draw, so the reserved height always equals the drawn height.
    """
    lines = surface.wrap_text(text, width, style) if text else []
    return lines, len(lines) * style.leading


def truncate_to_width(surface, text, max_width, style):
    """Shorten ``text`` with a trailing ellipsis until it fits ``max_width``."""
    if surface.measure_text_width(text, style) <= max_width:
        return text
    while text and surface.measure_text_width(text + ELLIPSIS, style) > max_width:
        text = text[:-1]
    return text.rstrip() + ELLIPSIS


class ContentFlowCursor:
    """Write position ``(page_index, y)`` on a PageSurface."""

    def __init__(self, surface, top=CONTENT_TOP, bottom_margin=BOTTOM_MARGIN, on_new_page=None):
        self.surface = surface
        self.top = top
        self.bottom = surface.height - bottom_margin
        self.on_new_page = on_new_page
        self.y = top
        self.locked = False

    @property
    def page_index(self):
        return self.surface.current_page

    @property
    def usable_height(self):
        return self.bottom - self.top

    @property
    def remaining(self):
        return self.bottom - self.y

    @property
    def at_page_top(self):
        return self.y <= self.top

    def lock(self):
        self.locked = True

    def advance_page(self):
        """Start a new page and reset the write position to the top margin."""
        if self.locked:
            raise LayoutSealedError('layout is sealed; no pages may be started')
        index = self.surface.add_page()
        self.y = self.top
        if self.on_new_page is not None:
            self.on_new_page(index)
        LOGGER.debug('Started page %d', index + 1)
        return index

    def fill_page(self):
        """Mark the current page as full so the next placement starts a new one."""
        self.y = self.bottom

    def start_section(self):
        """Begin a section on a fresh page unless the current one is still empty."""
        if self.page_index is None or not self.at_page_top:
            self.advance_page()

    def fits(self, height):
        return self.y + height <= self.bottom

    def place(self, height):
        """Reserve ``height`` points and return the top of the reserved band.

        Breaks to a new page first when the block would cross the bottom
        margin. A block taller than a whole page is put at the top of a fresh
        page and left to overflow.
        """
        if self.locked:
            raise LayoutSealedError('layout is sealed; blocks can no longer be placed')
        if self.page_index is None:
            self.advance_page()
        if not self.fits(height):
            if not self.at_page_top:
                self.advance_page()
            if height > self.usable_height:
                LOGGER.warning(
                    'Block of %.1fpt exceeds the %.1fpt usable page height; it will overflow page %d',
                    height, self.usable_height, self.page_index + 1,
                )
        y_start = self.y
        self.y += height
        return y_start

    def skip(self, height):
        """Add vertical space without breaking; clamps at the bottom margin."""
        self.y = min(self.y + height, self.bottom)
