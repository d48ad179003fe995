"""Canonicalize full-width input before any pattern matching."""

from __future__ import annotations

from typing import Optional

# Full-width 0-9, A-Z, a-z map onto ASCII by a fixed offset
_FULLWIDTH_OFFSET = 0xFEE0
_FULLWIDTH_RANGES = (
    (ord("０"), ord("９")),
    (ord("Ａ"), ord("Ｚ")),
    (ord("ａ"), ord("ｚ")),
)
IDEOGRAPHIC_SPACE = "　"


def _build_table() -> dict[int, str]:
    table = {ord(IDEOGRAPHIC_SPACE): " "}
    for start, end in _FULLWIDTH_RANGES:
        for code in range(start, end + 1):
            table[code] = chr(code - _FULLWIDTH_OFFSET)
    return table


_HALFWIDTH_TABLE = _build_table()


def normalize(text: Optional[str]) -> str:
    """
    Convert full-width alphanumerics and the ideographic space to half-width,
    then trim surrounding whitespace.

    Idempotent: normalize(normalize(x)) == normalize(x).
    """
    if not text:
        return ""
    return text.translate(_HALFWIDTH_TABLE).strip()
