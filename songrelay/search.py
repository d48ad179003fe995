"""YouTube Data API keyword search."""

from __future__ import annotations

import html
import logging
from typing import Any, Optional

import httpx

from .errors import ConfigurationError, ProviderError
from .models import SearchCandidate

logger = logging.getLogger(__name__)

SEARCH_API_URL = "https://www.googleapis.com/youtube/v3/search"


def _pick_thumbnail(snippet: dict[str, Any]) -> Optional[str]:
    thumbnails = snippet.get("thumbnails")
    if not isinstance(thumbnails, dict):
        return None
    for size in ("high", "medium", "default"):
        thumb = thumbnails.get(size)
        url = thumb.get("url") if isinstance(thumb, dict) else None
        if isinstance(url, str) and url:
            return url
    return None


def _parse_item(item: Any) -> Optional[SearchCandidate]:
    """
    Turn one raw search item into a SearchCandidate, or None if it is not a video.

    Raises ProviderError when the item does not have the documented shape.
    """
    if not isinstance(item, dict) or not isinstance(item.get("id"), dict):
        raise ProviderError(f"search returned a malformed item: {str(item)[:80]!r}")
    video_id = item["id"].get("videoId")
    if not video_id:
        return None
    if not isinstance(video_id, str):
        raise ProviderError(f"search returned a malformed video id: {video_id!r}")
    snippet = item.get("snippet")
    if not isinstance(snippet, dict):
        snippet = {}
    title = snippet.get("title")
    return SearchCandidate(
        video_id=video_id,
        title=html.unescape(title if isinstance(title, str) and title else video_id),
        thumbnail_url=_pick_thumbnail(snippet),
    )


class YouTubeSearch:
    """Keyword search against the YouTube Data API v3."""

    def __init__(
        self,
        api_key: Optional[str],
        limit: int = 3,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key or None
        self.limit = limit
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def available(self) -> bool:
        return self.api_key is not None

    def search(self, query: str) -> list[SearchCandidate]:
        """
        Return up to ``limit`` candidates for ``query``, best match first.

        Raises ConfigurationError when no API key is configured and
        ProviderError when the upstream call fails. Zero hits is an empty list.
        """
        if not self.available:
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")

        params = {
            "part": "snippet",
            "type": "video",
            "maxResults": self.limit,
            "q": query,
            "key": self.api_key,
        }
        try:
            response = self._client.get(SEARCH_API_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"search returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"search request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError("search returned an invalid body") from exc

        if not isinstance(data, dict):
            raise ProviderError("search returned an invalid body")

        items = data.get("items")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ProviderError("search returned an invalid items list")

        candidates: list[SearchCandidate] = []
        for item in items:
            candidate = _parse_item(item)
            if candidate:
                candidates.append(candidate)
            if len(candidates) >= self.limit:
                break
        logger.debug("Search %r returned %d candidates", query[:60], len(candidates))
        return candidates

    def close(self) -> None:
        self._client.close()
