"""Tests for messaging module."""

import base64
import hashlib
import hmac
import json

import httpx
import pytest

from songrelay.errors import ValidationError
from songrelay.hub import ADD_QUEUE, CHAT_MESSAGE, UPDATE_DEFAULT
from songrelay.messaging import (
    REPLY_API_URL,
    LineReplyClient,
    WebhookEvent,
    handle_webhook_events,
    parse_event,
    parse_webhook_body,
    verify_signature,
)
from songrelay.models import SearchCandidate, SelectionIntent
from songrelay.presenter import encode_action
from songrelay.resolver import NOT_FOUND_MESSAGE, SEARCH_FAILED_MESSAGE, CommandResolver
from songrelay.search import YouTubeSearch
from songrelay.state import PlaybackState


def _text_event(text, token="token-1"):
    return {"type": "message", "replyToken": token, "message": {"type": "text", "id": "1", "text": text}}


def _postback_event(data, token="token-2"):
    return {"type": "postback", "replyToken": token, "postback": {"data": data}}


@pytest.fixture
def state(hub):
    return PlaybackState(hub, "jfKfPfyJRdk")


class TestParseEvent:
    def test_text_message(self):
        event = parse_event(_text_event("hello"))
        assert event == WebhookEvent(type="message", reply_target="token-1", text="hello")

    def test_postback(self):
        event = parse_event(_postback_event("intent=append_queue&v=aaaaaaaaaaa"))
        assert event.type == "postback"
        assert event.action_payload == "intent=append_queue&v=aaaaaaaaaaa"

    def test_ignored_kinds(self):
        assert parse_event({"type": "follow", "replyToken": "t"}) is None
        assert parse_event({"type": "message", "replyToken": "t", "message": {"type": "sticker"}}) is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not an object",
            {"type": "message", "message": {"type": "text", "text": "x"}},
            {"type": "message", "replyToken": "t"},
            {"type": "message", "replyToken": "t", "message": {"type": "text"}},
            {"type": "postback", "replyToken": "t", "postback": {}},
        ],
    )
    def test_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_event(raw)


def test_parse_webhook_body():
    assert parse_webhook_body(b'{"destination": "U1", "events": []}') == []
    with pytest.raises(ValidationError):
        parse_webhook_body(b"not json")
    with pytest.raises(ValidationError):
        parse_webhook_body(b'{"events": {}}')


def test_verify_signature():
    body = b'{"events": []}'
    signature = base64.b64encode(hmac.new(b"secret", body, hashlib.sha256).digest()).decode()
    assert verify_signature("secret", body, signature) is True
    assert verify_signature("other", body, signature) is False
    assert verify_signature("secret", body, None) is False


class TestHandleWebhookEvents:
    def test_direct_link_publishes_and_replies(self, hub, client, state, replies, make_search):
        resolver = CommandResolver(state, hub, make_search())
        failed = handle_webhook_events([_text_event("https://youtu.be/dQw4w9WgXcQ")], resolver, replies)
        assert failed == 0
        assert client.events == [(CHAT_MESSAGE, "https://youtu.be/dQw4w9WgXcQ")]
        assert replies.replies[0][0] == "token-1"
        assert replies.replies[0][1][0]["type"] == "text"

    def test_search_replies_with_carousel(self, hub, client, state, replies, make_search):
        resolver = CommandResolver(state, hub, make_search())
        handle_webhook_events([_text_event("夜に駆ける")], resolver, replies)
        (token, messages), = replies.replies
        assert messages[0]["type"] == "flex"
        assert len(messages[0]["contents"]["contents"]) == 3
        assert client.events == []

    def test_not_found_and_failure_texts(self, hub, state, replies, failing_search, make_search):
        handle_webhook_events([_text_event("zzz")], CommandResolver(state, hub, make_search(results=[])), replies)
        handle_webhook_events([_text_event("zzz")], CommandResolver(state, hub, failing_search), replies)
        texts = [messages[0]["text"] for _, messages in replies.replies]
        assert texts == [NOT_FOUND_MESSAGE, SEARCH_FAILED_MESSAGE]

    def test_malformed_search_body_gets_failure_reply(self, hub, client, state, replies):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"items": [{"id": "abc"}]}))
        search = YouTubeSearch("key", client=httpx.Client(transport=transport))
        failed = handle_webhook_events([_text_event("夜に駆ける")], CommandResolver(state, hub, search), replies)
        assert failed == 0
        assert replies.replies == [("token-1", [{"type": "text", "text": SEARCH_FAILED_MESSAGE}])]
        assert client.events == []

    def test_postback_confirms_selection(self, hub, client, state, replies, make_search):
        resolver = CommandResolver(state, hub, make_search())
        candidate = SearchCandidate("aaaaaaaaaaa", "First")
        events = [
            _postback_event(encode_action(candidate, SelectionIntent.APPEND_QUEUE)),
            _postback_event(encode_action(candidate, SelectionIntent.SET_DEFAULT)),
        ]
        assert handle_webhook_events(events, resolver, replies) == 0
        assert client.events == [
            (ADD_QUEUE, {"videoId": "aaaaaaaaaaa", "title": "First", "source": "line"}),
            (UPDATE_DEFAULT, {"videoId": "aaaaaaaaaaa"}),
        ]
        assert state.get().video_id == "aaaaaaaaaaa"

    def test_bad_item_does_not_stop_batch(self, hub, client, state, replies, make_search):
        resolver = CommandResolver(state, hub, make_search())
        events = [
            {"type": "message"},
            _postback_event("garbage"),
            _text_event("#still delivered"),
        ]
        assert handle_webhook_events(events, resolver, replies) == 2
        assert client.events == [("flow-comment", "#still delivered")]


class TestLineReplyClient:
    def test_posts_reply(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={})

        client = LineReplyClient("tok", client=httpx.Client(transport=httpx.MockTransport(handler)))
        assert client.reply("rt", [{"type": "text", "text": "hi"}]) is True
        assert seen["url"] == REPLY_API_URL
        assert seen["auth"] == "Bearer tok"
        assert seen["body"] == {"replyToken": "rt", "messages": [{"type": "text", "text": "hi"}]}

    def test_without_token_is_noop(self):
        def handler(request):
            raise AssertionError("should not be called")

        client = LineReplyClient(None, client=httpx.Client(transport=httpx.MockTransport(handler)))
        assert client.enabled is False
        assert client.reply("rt", []) is False

    def test_error_is_logged_not_raised(self):
        client = LineReplyClient(
            "tok",
            client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(400))),
        )
        assert client.reply("rt", []) is False
