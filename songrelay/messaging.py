"""LINE Messaging API transport: webhook parsing, signatures and replies."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .errors import ValidationError
from .models import SearchCandidate, SelectionIntent, SourceChannel
from .presenter import decode_action, present_carousel
from .resolver import CommandResolver, ReplyChannel

logger = logging.getLogger(__name__)

REPLY_API_URL = "https://api.line.me/v2/bot/message/reply"
SIGNATURE_HEADER = "X-Line-Signature"

EVENT_MESSAGE = "message"
EVENT_POSTBACK = "postback"


@dataclass(frozen=True)
class WebhookEvent:
    """Inbound webhook event reduced to what the resolver needs."""

    type: str
    reply_target: str
    text: Optional[str] = None
    action_payload: Optional[str] = None


def verify_signature(channel_secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Check the X-Line-Signature header (base64 HMAC-SHA256 of the raw body)."""
    if not signature:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


def parse_webhook_body(body: bytes) -> list[Any]:
    """Return the raw event list of a webhook delivery. Raises ValidationError."""
    try:
        data = json.loads(body or b"")
    except ValueError as e:
        raise ValidationError("webhook body is not JSON") from e
    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        raise ValidationError("webhook body has no events list")
    return data["events"]


def parse_event(raw: Any) -> Optional[WebhookEvent]:
    """
    Reduce one raw event to a WebhookEvent.

    Returns None for event kinds the relay ignores (follow, non-text
    messages, ...). Raises ValidationError for malformed items.
    """
    if not isinstance(raw, dict):
        raise ValidationError("event is not an object")

    event_type = raw.get("type")
    if event_type not in (EVENT_MESSAGE, EVENT_POSTBACK):
        return None

    reply_token = raw.get("replyToken")
    if not isinstance(reply_token, str) or not reply_token:
        raise ValidationError(f"{event_type} event without replyToken")

    if event_type == EVENT_MESSAGE:
        message = raw.get("message")
        if not isinstance(message, dict):
            raise ValidationError("message event without message")
        if message.get("type") != "text":
            return None
        text = message.get("text")
        if not isinstance(text, str):
            raise ValidationError("text message without text")
        return WebhookEvent(type=EVENT_MESSAGE, reply_target=reply_token, text=text)

    postback = raw.get("postback")
    if not isinstance(postback, dict) or not isinstance(postback.get("data"), str):
        raise ValidationError("postback event without data")
    return WebhookEvent(type=EVENT_POSTBACK, reply_target=reply_token, action_payload=postback["data"])


class LineReplyClient:
    """Send reply messages through the Messaging API. A no-op without a token."""

    def __init__(
        self,
        access_token: Optional[str],
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self.access_token = access_token or None
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return self.access_token is not None

    def reply(self, reply_token: str, messages: list[dict]) -> bool:
        """Returns True if LINE accepted the reply."""
        if not self.enabled:
            logger.debug("No LINE access token, reply dropped")
            return False
        try:
            response = self._client.post(
                REPLY_API_URL,
                headers={"Authorization": f"Bearer {self.access_token}"},
                json={"replyToken": reply_token, "messages": messages},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("LINE reply failed: %s", e)
            return False
        return True

    def close(self) -> None:
        self._client.close()


class MessagingChannel(ReplyChannel):
    """Replies to the sender of one webhook event."""

    source = SourceChannel.MESSAGING

    def __init__(self, reply_client: LineReplyClient, reply_token: str):
        self._reply_client = reply_client
        self._reply_token = reply_token

    def reply_text(self, text: str) -> None:
        self._reply_client.reply(self._reply_token, [{"type": "text", "text": text}])

    def reply_selection(self, candidates: list[SearchCandidate], intent: SelectionIntent) -> None:
        self._reply_client.reply(self._reply_token, [present_carousel(candidates, intent)])


def handle_event(event: WebhookEvent, resolver: CommandResolver, reply_client: LineReplyClient) -> None:
    channel = MessagingChannel(reply_client, event.reply_target)
    if event.type == EVENT_MESSAGE:
        resolver.handle_text(event.text, channel)
        return
    action = decode_action(event.action_payload)
    resolver.confirm(action.video_id, action.title, action.intent, channel)


def handle_webhook_events(
    raw_events: list[Any],
    resolver: CommandResolver,
    reply_client: LineReplyClient,
) -> int:
    """
    Handle a webhook batch item by item.

    A failing item is logged and skipped; the rest of the batch still runs.
    Returns the number of failed items.
    """
    failed = 0
    for raw in raw_events:
        try:
            event = parse_event(raw)
            if event is None:
                continue
            handle_event(event, resolver, reply_client)
        except ValidationError as e:
            failed += 1
            logger.warning("Skipping invalid webhook event: %s", e)
        except Exception as e:
            failed += 1
            logger.exception("Webhook event failed: %s", e)
    return failed
