"""Value types passed between the resolver, the hub and the transports."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SourceChannel(str, Enum):
    """Channel a request came in on."""

    MESSAGING = "line"
    WEB = "web"


class SelectionIntent(str, Enum):
    """Mutation a confirmed search candidate performs."""

    APPEND_QUEUE = "append_queue"
    SET_DEFAULT = "set_default"


@dataclass(frozen=True)
class PlaybackRequest:
    """A track appended to the shared queue."""

    video_id: str
    title: str
    source: SourceChannel

    def to_payload(self) -> dict:
        return {"videoId": self.video_id, "title": self.title, "source": self.source.value}


@dataclass(frozen=True)
class DefaultTrackState:
    """Fallback track played when the queue is empty."""

    video_id: str


@dataclass(frozen=True)
class SearchCandidate:
    """One search hit, in provider relevance order."""

    video_id: str
    title: str
    thumbnail_url: Optional[str] = None
