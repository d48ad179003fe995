"""Environment-backed application configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Default config values
DEFAULT_WEB_PORT = 3000
DEFAULT_VIDEO_ID = "jfKfPfyJRdk"
DEFAULT_SEARCH_RESULT_LIMIT = 3
# Candidate lists are a small fixed-size choice
MIN_SEARCH_RESULT_LIMIT = 1
MAX_SEARCH_RESULT_LIMIT = 3
DEFAULT_SEARCH_TIMEOUT = 5.0
DEFAULT_DEBUG_MODE = False


@dataclass
class AppConfig:
    """Application configuration."""

    web_port: int
    default_video_id: str
    youtube_api_key: Optional[str]
    line_channel_access_token: Optional[str]
    line_channel_secret: Optional[str]
    search_result_limit: int
    search_timeout: float
    debug_mode: bool

    @classmethod
    def defaults(cls) -> AppConfig:
        return cls(
            web_port=DEFAULT_WEB_PORT,
            default_video_id=DEFAULT_VIDEO_ID,
            youtube_api_key=None,
            line_channel_access_token=None,
            line_channel_secret=None,
            search_result_limit=DEFAULT_SEARCH_RESULT_LIMIT,
            search_timeout=DEFAULT_SEARCH_TIMEOUT,
            debug_mode=DEFAULT_DEBUG_MODE,
        )

    @property
    def search_enabled(self) -> bool:
        return bool(self.youtube_api_key)

    @property
    def reply_enabled(self) -> bool:
        return bool(self.line_channel_access_token)


def _number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", key, raw, default)
        return default


def _clamp(value: int, key: str, low: int, high: int) -> int:
    if value < low or value > high:
        clamped = min(max(value, low), high)
        logger.warning("%s=%d out of range %d..%d, using %d", key, value, low, high, clamped)
        return clamped
    return value


def _dict_to_config(env: Mapping[str, str]) -> AppConfig:
    return AppConfig(
        web_port=_number(env, "PORT", DEFAULT_WEB_PORT, int),
        default_video_id=env.get("DEFAULT_VIDEO_ID") or DEFAULT_VIDEO_ID,
        youtube_api_key=env.get("YOUTUBE_API_KEY") or None,
        line_channel_access_token=env.get("LINE_CHANNEL_ACCESS_TOKEN") or None,
        line_channel_secret=env.get("LINE_CHANNEL_SECRET") or None,
        search_result_limit=_clamp(
            _number(env, "SEARCH_RESULT_LIMIT", DEFAULT_SEARCH_RESULT_LIMIT, int),
            "SEARCH_RESULT_LIMIT",
            MIN_SEARCH_RESULT_LIMIT,
            MAX_SEARCH_RESULT_LIMIT,
        ),
        search_timeout=_number(env, "SEARCH_TIMEOUT", DEFAULT_SEARCH_TIMEOUT, float),
        debug_mode=env.get("DEBUG_MODE", "false").lower() in ("true", "1", "yes"),
    )


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load config from the environment (and a .env file). Missing keys use defaults."""
    if env is None:
        load_dotenv()
        env = os.environ
    return _dict_to_config(env)
