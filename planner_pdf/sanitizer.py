"""
Text sanitization for user-supplied plan content.

Every string is passed through ``sanitize`` before it is measured or drawn,
so wrapped line counts always match what ends up on the page.
"""

import re
import unicodedata

# Smart punctuation folded to the ASCII glyphs every base font carries
PUNCTUATION = {
    '‘': "'",      # Left single quotation mark
    '’': "'",      # Right single quotation mark
    '‚': "'",      # Single low-9 quotation mark
    '‛': "'",      # Single high-reversed-9 quotation mark
    '′': "'",      # Prime
    '“': '"',      # Left double quotation mark
    '”': '"',      # Right double quotation mark
    '„': '"',      # Double low-9 quotation mark
    '‟': '"',      # Double high-reversed-9 quotation mark
    '″': '"',      # Double prime
    '‐': '-',      # Hyphen
    '‑': '-',      # Non-breaking hyphen
    '‒': '-',      # Figure dash
    '–': '-',      # En dash
    '—': '-',      # Em dash
    '―': '-',      # Horizontal bar
    '−': '-',      # Minus sign
    '…': '...',    # Horizontal ellipsis
}

_PUNCTUATION_TABLE = str.maketrans(PUNCTUATION)

# Pictographs, dingbats and misc symbols the base fonts cannot render
SYMBOL_RANGES = (
    (0x1F000, 0x1FAFF),   # Mahjong .. Symbols and Pictographs Extended-A
    (0x2600, 0x26FF),     # Miscellaneous Symbols
    (0x2700, 0x27BF),     # Dingbats
    (0x2B00, 0x2BFF),     # Miscellaneous Symbols and Arrows
    (0xFE00, 0xFE0F),     # Variation selectors
)

# Control, format, surrogate, private-use and unassigned code points
STRIPPED_CATEGORIES = frozenset(('Cc', 'Cf', 'Cs', 'Co', 'Cn'))

TARGET_ENCODING = 'cp1252'

WHITESPACE_PATTERN = re.compile(r'\s+')


def _is_symbol(code):
    for low, high in SYMBOL_RANGES:
        if low <= code <= high:
            return True
    return False


def _encodable(char):
    try:
        char.encode(TARGET_ENCODING)
    except UnicodeEncodeError:
        return False
    return True


def _clean_char(char):
    if char.isspace():
        return ' '
    if unicodedata.category(char) in STRIPPED_CATEGORIES:
        return ''
    if _is_symbol(ord(char)):
        return ''
    if not _encodable(char):
        return ''
    return char


def sanitize(text):
    """Return ``text`` reduced to the glyph subset the document fonts can draw.

    Accepts any value; ``None`` becomes an empty string and other non-string
    values are converted with ``str``. The result has no leading, trailing or
    repeated whitespace, and ``sanitize(sanitize(x)) == sanitize(x)``.
    """
    if text is None:
        return ''
    if not isinstance(text, str):
        text = str(text)
    if not text:
        return ''

    folded = text.translate(_PUNCTUATION_TABLE)
    cleaned = ''.join(_clean_char(char) for char in folded)
    return WHITESPACE_PATTERN.sub(' ', cleaned).strip()


def is_blank(value):
    """True when ``value`` has nothing printable once sanitized."""
    return not sanitize(value)
