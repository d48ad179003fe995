"""Process-wide default track, published on every change."""

from __future__ import annotations

import logging

from .hub import INIT_STATE, UPDATE_DEFAULT, BroadcastHub
from .models import DefaultTrackState

logger = logging.getLogger(__name__)


class PlaybackState:
    """
    Single authoritative copy of the default track.

    ``set`` is the only mutator. It assigns and publishes under the hub lock,
    so no client can observe a default that was never broadcast.
    """

    def __init__(self, hub: BroadcastHub, initial_video_id: str):
        self._hub = hub
        self._current = DefaultTrackState(video_id=initial_video_id)

    def get(self) -> DefaultTrackState:
        return self._current

    def set(self, video_id: str) -> None:
        with self._hub.lock:
            self._current = DefaultTrackState(video_id=video_id)
            self._hub.publish(UPDATE_DEFAULT, {"videoId": video_id})
        logger.info("Default track changed to %s", video_id)

    def snapshot(self) -> tuple[str, dict]:
        """The init-state event a newly connected client receives."""
        return INIT_STATE, {"defaultId": self._current.video_id}
