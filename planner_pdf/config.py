"""
Page geometry, palette and text styles for the planner document.
"""

from dataclasses import dataclass
from typing import Optional

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import LETTER

# ─── FONTS ───
# Base-14 fonts only; everything drawn must survive WinAnsi encoding.
FONT_REGULAR = 'Helvetica'
FONT_BOLD = 'Helvetica-Bold'
FONT_ITALIC = 'Helvetica-Oblique'

# ─── COLOR PALETTE ───
HEADER_NAVY = HexColor('#1F2F4F')
BRAND_TEAL = HexColor('#336666')
BODY_GRAY = HexColor('#262626')
MUTED_GRAY = HexColor('#808080')
LIGHT_GRAY = HexColor('#B3B3B3')
RULE_GRAY = HexColor('#D9D9D9')
BOX_FILL = HexColor('#F7F9F9')
WATERMARK_GRAY = HexColor('#EBEBEB')

# ─── PAGE GEOMETRY ───
PAGE_W, PAGE_H = LETTER  # 612 x 792
MARGIN = 50
CONTENT_W = PAGE_W - 2 * MARGIN

# y grows downward from the top edge of the page
HEADER_RULE_Y = 35
CONTENT_TOP = 70
BOTTOM_MARGIN = 70

FOOTER_RULE_Y = PAGE_H - 48
FOOTER_CAPTION_Y = PAGE_H - 34
FOOTER_PAGE_Y = PAGE_H - 20

# ─── BLOCK METRICS ───
TITLE_HEIGHT = 40
TITLE_UNDERLINE_GAP = 5
SUBHEADING_HEIGHT = 20
BOX_PADDING = 8
BOX_GAP = 12
EMPTY_BOX_HEIGHT = 32
FIELD_LABEL_HEIGHT = 15
FIELD_GAP = 8
TABLE_ROW_PADDING = 6
TABLE_GAP = 14
DEFAULT_EMPTY_TABLE_ROWS = 3
CHECKBOX_SIZE = 9
CHECKBOX_INDENT = 18
CHECKLIST_ITEM_GAP = 6
IMAGE_GAP = 10

# ─── TABLE OF CONTENTS ───
TOC_HEADING_Y = CONTENT_TOP + 10
TOC_FIRST_ROW_Y = CONTENT_TOP + 60
TOC_ROW_HEIGHT = 24
TOC_COMPACT_ROW_HEIGHT = 14
TOC_DOT_GAP = 8


@dataclass(frozen=True)
class TextStyle:
    font: str = FONT_REGULAR
    size: float = 10
    color: Color = BODY_GRAY
    leading: float = 14

    @property
    def baseline(self):
        """Offset from the top of a line box to its text baseline."""
        return self.size


@dataclass(frozen=True)
class LineStyle:
    color: Color = RULE_GRAY
    width: float = 0.5


@dataclass(frozen=True)
class BoxStyle:
    stroke: Optional[Color] = RULE_GRAY
    fill: Optional[Color] = None
    stroke_width: float = 0.75


# ─── TEXT STYLES ───
COVER_BRAND = TextStyle(FONT_BOLD, 16, BRAND_TEAL, 20)
COVER_TAGLINE = TextStyle(FONT_REGULAR, 11, MUTED_GRAY, 14)
COVER_TITLE = TextStyle(FONT_BOLD, 32, HEADER_NAVY, 38)
COVER_SUBTITLE = TextStyle(FONT_REGULAR, 14, BODY_GRAY, 18)
COVER_NAME = TextStyle(FONT_BOLD, 18, BODY_GRAY, 22)
COVER_META = TextStyle(FONT_REGULAR, 11, MUTED_GRAY, 14)
COVER_CONTACT = TextStyle(FONT_REGULAR, 9, BODY_GRAY, 12)

TITLE = TextStyle(FONT_BOLD, 18, HEADER_NAVY, 22)
SUBHEADING = TextStyle(FONT_BOLD, 12, BODY_GRAY, 16)
BODY = TextStyle(FONT_REGULAR, 10, BODY_GRAY, 14)
BODY_BOLD = TextStyle(FONT_BOLD, 10, BODY_GRAY, 14)
PLACEHOLDER = TextStyle(FONT_ITALIC, 10, MUTED_GRAY, 14)
LABEL = TextStyle(FONT_BOLD, 9, BODY_GRAY, 12)
TABLE_HEADER = TextStyle(FONT_BOLD, 9, HEADER_NAVY, 12)
TABLE_CELL = TextStyle(FONT_REGULAR, 9, BODY_GRAY, 12)
TABLE_BLANK = TextStyle(FONT_REGULAR, 9, LIGHT_GRAY, 12)
CHECKLIST_TEXT = TextStyle(FONT_REGULAR, 10, BODY_GRAY, 14)

TOC_HEADING = TextStyle(FONT_BOLD, 22, HEADER_NAVY, 26)
TOC_ENTRY = TextStyle(FONT_REGULAR, 12, BODY_GRAY, 16)
TOC_DOTS = TextStyle(FONT_REGULAR, 12, LIGHT_GRAY, 16)
TOC_COMPACT = TextStyle(FONT_REGULAR, 10, BODY_GRAY, 13)

HEADER_CAPTION = TextStyle(FONT_REGULAR, 8, BRAND_TEAL, 10)
FOOTER_CAPTION = TextStyle(FONT_REGULAR, 8, MUTED_GRAY, 10)
FOOTER_PAGE = TextStyle(FONT_BOLD, 9, BODY_GRAY, 11)
WATERMARK = TextStyle(FONT_BOLD, 72, WATERMARK_GRAY, 80)

# ─── LINE AND BOX STYLES ───
HAIRLINE = LineStyle(RULE_GRAY, 0.5)
TITLE_RULE = LineStyle(BRAND_TEAL, 1.5)
FOOTER_RULE = LineStyle(BRAND_TEAL, 0.5)
COVER_RULE = LineStyle(BRAND_TEAL, 1.5)
WRITING_LINE = LineStyle(LIGHT_GRAY, 0.5)
SECTION_BOX = BoxStyle(RULE_GRAY, BOX_FILL, 0.75)
FIELD_BOX = BoxStyle(RULE_GRAY, None, 0.5)
TABLE_HEADER_BOX = BoxStyle(None, HexColor('#E8EEEE'), 0)
CHECKBOX = BoxStyle(BODY_GRAY, None, 0.75)
CHECKBOX_FILLED = BoxStyle(BODY_GRAY, BRAND_TEAL, 0.75)
COVER_BAR = BoxStyle(None, BRAND_TEAL, 0)


@dataclass(frozen=True)
class Branding:
    """Static organization assets; shared read-only across runs."""

    name: str = 'Everlasting Funeral Advisors'
    tagline: str = 'Helping Families Plan with Peace and Clarity'
    phone: str = '(323) 863-5804'
    email: str = 'info@everlastingfuneraladvisors.com'
    website: str = 'everlastingfuneraladvisors.com'
    product: str = 'My Final Wishes Planner'
    logo: Optional[bytes] = None

    @property
    def footer_caption(self):
        return f'provided by {self.name} - {self.product}'

    def contact_lines(self):
        lines = []
        if self.phone:
            lines.append(f'Phone: {self.phone}')
        if self.email:
            lines.append(f'Email: {self.email}')
        if self.website:
            lines.append(f'Website: {self.website}')
        return lines


DEFAULT_BRANDING = Branding()
