"""
Context-aware OCR character repair.

OCR engines confuse glyphs that look alike: O and 0, I and 1, S and 5, B and 8.
Which reading is right depends only on what the position is supposed to hold,
so every substitution here is driven by an explicit context:

    normalize("85O1O1", OCRContext.NUMERIC)  → "850101"
    normalize("PE6J", OCRContext.ALPHA)      → "PEGJ"

Input is upper-cased before any substitution, so lower-case look-alikes
(o, l, s, b, g, q) are handled through their upper-case forms.
"""

from __future__ import annotations

import re

from .models import OCRContext

# ─── Constants ───────────────────────────────────────────────────────

ILLEGIBLE_MARKER = "***"
ILLEGIBLE_GLYPH = "*"

_NOISE_RE = re.compile(r"[\s\-_.,:;'\"]")

# Letter-like glyphs read where a digit belongs
_TO_DIGIT = str.maketrans({
    "O": "0", "Q": "0", "D": "0",
    "I": "1", "L": "1", "|": "1", "!": "1",
    "Z": "2",
    "S": "5", "$": "5",
    "G": "6",
    "B": "8",
})

# Digit-like glyphs read where a letter belongs
_TO_LETTER = str.maketrans({
    "0": "O",
    "1": "I",
    "2": "Z",
    "5": "S",
    "6": "G",
    "8": "B",
    "9": "G",
})


# ─── Public API ──────────────────────────────────────────────────────


def normalize(value: str, context: OCRContext = OCRContext.ALPHANUMERIC) -> str:
    """Upper-case, strip OCR noise and map look-alike glyphs for `context`.

    Empty input is returned unchanged.
    """
    if not value:
        return value

    result = _NOISE_RE.sub("", value.upper())

    if context == OCRContext.NUMERIC:
        return result.translate(_TO_DIGIT)
    if context == OCRContext.ALPHA:
        return result.translate(_TO_LETTER)
    return result


def is_illegible(value: str) -> bool:
    """True when the extractor marked all or part of the value unreadable."""
    return value == ILLEGIBLE_MARKER or ILLEGIBLE_GLYPH in value


def normalize_ocr_text(text: str) -> str:
    """Clean a full OCR page before it is interpreted field by field.

    Collapses whitespace, repairs pipe/bang glyphs that stand for a capital I,
    straightens typographic quotes and drops control characters.
    """
    text = re.sub(r"\s+", " ", text)
    text = text.replace("|", "I")
    text = re.sub(r"!(?=[A-Z])", "I", text)
    text = re.sub(r"[“”]", '"', text)
    text = re.sub(r"[‘’]", "'", text)
    text = re.sub(r"[\x00-\x1f\x7f]", "", text)
    return text.strip()
