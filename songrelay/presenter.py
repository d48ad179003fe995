"""Render search candidates as a LINE Flex carousel or a web result list.

Pure projections: nothing here decides what happens to a selection. The
intent travels inside each choice so the confirming action is unambiguous.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode

from .errors import ValidationError
from .models import SearchCandidate, SelectionIntent
from .url_parser import VIDEO_ID_LENGTH, thumbnail_url

# LINE limits postback data to 300 characters
MAX_ACTION_DATA = 300
MAX_TITLE_IN_ACTION = 100


@dataclass(frozen=True)
class CardStyle:
    accent: str
    badge: str
    button_label: str


CARD_STYLES: dict[SelectionIntent, CardStyle] = {
    SelectionIntent.APPEND_QUEUE: CardStyle(
        accent="#06C755",
        badge="キューに追加",
        button_label="この曲をリクエスト",
    ),
    SelectionIntent.SET_DEFAULT: CardStyle(
        accent="#E67E22",
        badge="デフォルト曲に設定",
        button_label="デフォルトにする",
    ),
}

ALT_TEXT = {
    SelectionIntent.APPEND_QUEUE: "検索結果",
    SelectionIntent.SET_DEFAULT: "デフォルト曲の候補",
}


@dataclass(frozen=True)
class SelectionAction:
    """Decoded postback payload."""

    video_id: str
    title: str
    intent: SelectionIntent


def encode_action(candidate: SearchCandidate, intent: SelectionIntent) -> str:
    """Encode a candidate selection as an opaque postback string."""
    title = candidate.title[:MAX_TITLE_IN_ACTION]
    data = urlencode({"intent": intent.value, "v": candidate.video_id, "t": title})
    while len(data) > MAX_ACTION_DATA and title:
        title = title[:-1]
        data = urlencode({"intent": intent.value, "v": candidate.video_id, "t": title})
    return data


def decode_action(data: Optional[str]) -> SelectionAction:
    """Decode a postback string. Raises ValidationError when malformed."""
    if not data:
        raise ValidationError("empty postback data")
    qs = parse_qs(data, keep_blank_values=True)
    try:
        intent = SelectionIntent(qs["intent"][0])
        video_id = qs["v"][0]
    except (KeyError, IndexError, ValueError) as e:
        raise ValidationError(f"malformed postback data: {data[:80]!r}") from e
    if len(video_id) != VIDEO_ID_LENGTH:
        raise ValidationError(f"invalid video id in postback: {video_id!r}")
    title = (qs.get("t") or [""])[0] or video_id
    return SelectionAction(video_id=video_id, title=title, intent=intent)


def _bubble(candidate: SearchCandidate, intent: SelectionIntent) -> dict:
    style = CARD_STYLES[intent]
    return {
        "type": "bubble",
        "size": "kilo",
        "hero": {
            "type": "image",
            "url": candidate.thumbnail_url or thumbnail_url(candidate.video_id),
            "size": "full",
            "aspectRatio": "16:9",
            "aspectMode": "cover",
        },
        "body": {
            "type": "box",
            "layout": "vertical",
            "spacing": "sm",
            "contents": [
                {"type": "text", "text": style.badge, "size": "xs", "weight": "bold", "color": style.accent},
                {"type": "text", "text": candidate.title, "size": "sm", "wrap": True, "maxLines": 3},
            ],
        },
        "footer": {
            "type": "box",
            "layout": "vertical",
            "contents": [
                {
                    "type": "button",
                    "style": "primary",
                    "color": style.accent,
                    "action": {
                        "type": "postback",
                        "label": style.button_label,
                        "data": encode_action(candidate, intent),
                        "displayText": candidate.title[:MAX_TITLE_IN_ACTION],
                    },
                }
            ],
        },
    }


def present_carousel(candidates: list[SearchCandidate], intent: SelectionIntent) -> dict:
    """Build a Flex carousel message with one card per candidate."""
    return {
        "type": "flex",
        "altText": ALT_TEXT[intent],
        "contents": {
            "type": "carousel",
            "contents": [_bubble(c, intent) for c in candidates],
        },
    }


def present_web(candidates: list[SearchCandidate], intent: SelectionIntent) -> list[dict]:
    """Build the ordered result list sent to a browser client."""
    return [
        {
            "videoId": c.video_id,
            "title": c.title,
            "thumbnail": c.thumbnail_url or thumbnail_url(c.video_id),
            "intent": intent.value,
        }
        for c in candidates
    ]
