"""Classify normalized chat input into typed commands.

Matchers run in a fixed order and the first match wins:

    default  ->  comment  ->  direct link / skip  ->  search query

The order lives in ``MATCHERS`` so it can be inspected and tested.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .normalizer import normalize
from .url_parser import contains_video_link

COMMENT_MARKER = "#"
SKIP_TOKENS = ("skip", "スキップ")

# Bracket form is tried before the spaced form: "default [x]" is a bracket match
_DEFAULT_BRACKET_RE = re.compile(r"^default\s*\[\s*(.+?)\s*\]$", re.IGNORECASE | re.DOTALL)
_DEFAULT_SPACED_RE = re.compile(r"^default\s+(.+)$", re.IGNORECASE | re.DOTALL)


class CommandKind(str, Enum):
    DEFAULT = "default"
    COMMENT = "comment"
    DIRECT = "direct"
    SEARCH = "search"


@dataclass(frozen=True)
class Command:
    """Classified input. ``payload`` depends on ``kind``."""

    kind: CommandKind
    payload: str


Matcher = Callable[[str, str], Optional[Command]]


def match_default(normalized: str, original: str) -> Optional[Command]:
    for pattern in (_DEFAULT_BRACKET_RE, _DEFAULT_SPACED_RE):
        m = pattern.match(normalized)
        if m:
            argument = m.group(1).strip()
            if argument:
                return Command(CommandKind.DEFAULT, argument)
    return None


def match_comment(normalized: str, original: str) -> Optional[Command]:
    if normalized.startswith(COMMENT_MARKER):
        return Command(CommandKind.COMMENT, normalized)
    return None


def match_direct(normalized: str, original: str) -> Optional[Command]:
    if contains_video_link(normalized) or normalized.lower() in SKIP_TOKENS:
        return Command(CommandKind.DIRECT, normalized)
    return None


def match_search(normalized: str, original: str) -> Optional[Command]:
    # Search keeps the caller's casing and script for provider relevance
    return Command(CommandKind.SEARCH, (original or "").strip())


MATCHERS: tuple[Matcher, ...] = (
    match_default,
    match_comment,
    match_direct,
    match_search,
)


def classify(text: Optional[str]) -> Command:
    """Classify raw input text. Normalization happens here, before matching."""
    normalized = normalize(text)
    raw = text or ""
    return next(
        command
        for command in (matcher(normalized, raw) for matcher in MATCHERS)
        if command is not None
    )
