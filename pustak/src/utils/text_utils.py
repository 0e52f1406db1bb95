"""
Pustak - Text Utilities
========================
Normalisation applied to chunk text before it is embedded.

The corpus mixes Tamil, Hindi, Telugu and Malayalam (combining vowel
signs), German (precomposed umlauts) and English.  Without canonical
normalisation the same word can reach the embedding model as two
different code-point sequences.
"""

from __future__ import annotations

import re
import unicodedata

# Control characters (C0/C1, except \n \r \t), BOM, soft hyphen and the
# directional marks.  ZWJ / ZWNJ (U+200D / U+200C) are kept: Indic scripts
# use them to select conjunct forms.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200e\u200f\u00ad\u2060\ufffe]")

_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def clean_text(text: str) -> str:
    """
    Sanitise chunk text for embedding.

    Steps:
        1. Unicode NFC normalisation.
        2. Strip non-printable / zero-width formatting characters.
        3. Collapse horizontal whitespace runs, preserving newlines.
        4. Strip every line; collapse 3+ newlines to 2.

    Returns:
        The cleaned text (may be empty if *text* held only whitespace).
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = _HORIZONTAL_WS_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.splitlines())
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def preview(text: str, width: int = 60) -> str:
    """Single-line prefix of *text* for log messages."""
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 1] + "…"
