"""Recognize video links and extract the 11-character video ID."""

from __future__ import annotations

import re
from typing import Optional

VIDEO_ID_LENGTH = 11

# Domain fragments that mark text as a direct link
LINK_DOMAINS = ("youtube.com", "youtu.be")

# Short link, /v/, /u/<c>/, /embed/, watch?v= and the &v= query variant
_VIDEO_LINK_RE = re.compile(
    r"(?:youtu\.be/|/v/|/u/\w/|/embed/|watch\?v=|&v=)([^#&?/\s]*)",
    re.IGNORECASE,
)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def contains_video_link(text: str) -> bool:
    """Return True if the text mentions a supported video host."""
    lowered = (text or "").lower()
    return any(domain in lowered for domain in LINK_DOMAINS)


def extract_video_id(text: Optional[str]) -> Optional[str]:
    """
    Extract the video ID from a supported link shape.

    Returns None unless the captured segment is exactly 11 characters long.
    The ID is not checked for existence.
    """
    if not text or not isinstance(text, str):
        return None

    match = _VIDEO_LINK_RE.search(text)
    if not match:
        return None

    video_id = match.group(1)
    if len(video_id) != VIDEO_ID_LENGTH:
        return None
    return video_id


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def thumbnail_url(video_id: str) -> str:
    return THUMBNAIL_URL.format(video_id=video_id)
