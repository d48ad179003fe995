"""Channel-agnostic command resolution shared by the webhook and the sockets."""

from __future__ import annotations

import logging
from typing import Optional

from .classifier import Command, CommandKind, classify
from .errors import ConfigurationError, ProviderError, ValidationError
from .hub import ADD_QUEUE, CHAT_MESSAGE, FLOW_COMMENT, BroadcastHub
from .models import PlaybackRequest, SearchCandidate, SelectionIntent, SourceChannel
from .search import YouTubeSearch
from .state import PlaybackState
from .url_parser import VIDEO_ID_LENGTH, extract_video_id

logger = logging.getLogger(__name__)

DEFAULT_CHANGED_MESSAGE = "デフォルト曲を変更しました"
SENT_MESSAGE = "送信しました"
QUEUED_MESSAGE = "リクエストを受け付けました: {title}"
NOT_FOUND_MESSAGE = "見つかりませんでした"
SEARCH_FAILED_MESSAGE = "検索に失敗しました。しばらくしてからもう一度お試しください"


class ReplyChannel:
    """What the resolver may do back to the caller of one inbound event."""

    source: SourceChannel

    def reply_text(self, text: str) -> None:
        raise NotImplementedError

    def reply_selection(self, candidates: list[SearchCandidate], intent: SelectionIntent) -> None:
        raise NotImplementedError

    def reply_not_found(self, query: str, intent: SelectionIntent) -> None:
        self.reply_text(NOT_FOUND_MESSAGE)

    def reply_failure(self) -> None:
        self.reply_text(SEARCH_FAILED_MESSAGE)


class CommandResolver:
    """Turn inbound text and confirmed selections into state changes and replies."""

    def __init__(
        self,
        state: PlaybackState,
        hub: BroadcastHub,
        search: Optional[YouTubeSearch] = None,
    ):
        self.state = state
        self.hub = hub
        self.search = search

    @property
    def search_available(self) -> bool:
        return self.search is not None and self.search.available

    def handle_text(self, text: Optional[str], channel: ReplyChannel) -> Optional[Command]:
        """Classify one inbound text and act on it. Returns the command, or None for blank input."""
        if not text or not text.strip():
            return None

        command = classify(text)
        logger.debug("%s input classified as %s", channel.source.value, command.kind.value)

        if command.kind is CommandKind.DEFAULT:
            self._handle_default(command.payload, channel)
        elif command.kind is CommandKind.COMMENT:
            self.hub.publish(FLOW_COMMENT, command.payload)
        elif command.kind is CommandKind.DIRECT:
            self.hub.publish(CHAT_MESSAGE, command.payload)
            channel.reply_text(SENT_MESSAGE)
        else:
            self._search_and_present(command.payload, SelectionIntent.APPEND_QUEUE, channel)
        return command

    def confirm(
        self,
        video_id: Optional[str],
        title: Optional[str],
        intent: SelectionIntent,
        channel: ReplyChannel,
    ) -> None:
        """Apply a candidate the caller picked from an earlier selection."""
        if not video_id or len(video_id) != VIDEO_ID_LENGTH:
            raise ValidationError(f"invalid video id: {video_id!r}")

        if intent is SelectionIntent.SET_DEFAULT:
            self.state.set(video_id)
            channel.reply_text(DEFAULT_CHANGED_MESSAGE)
            return

        request = PlaybackRequest(video_id=video_id, title=title or video_id, source=channel.source)
        self.hub.publish(ADD_QUEUE, request.to_payload())
        logger.info("Queued %s from %s", video_id, request.source.value)
        channel.reply_text(QUEUED_MESSAGE.format(title=request.title))

    def _handle_default(self, argument: str, channel: ReplyChannel) -> None:
        video_id = extract_video_id(argument)
        if video_id:
            self.state.set(video_id)
            channel.reply_text(DEFAULT_CHANGED_MESSAGE)
            return
        self._search_and_present(argument, SelectionIntent.SET_DEFAULT, channel)

    def _search_and_present(self, query: str, intent: SelectionIntent, channel: ReplyChannel) -> None:
        if not self.search_available:
            logger.debug("Search unavailable, ignoring %r", query[:60])
            return

        try:
            candidates = self.search.search(query)
        except ConfigurationError as e:
            logger.debug("Search unavailable: %s", e)
            return
        except ProviderError as e:
            logger.warning("Search failed for %r: %s", query[:60], e)
            channel.reply_failure()
            return

        if not candidates:
            channel.reply_not_found(query, intent)
            return
        channel.reply_selection(candidates, intent)
