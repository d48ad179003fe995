"""Flask + Socket.IO front end: player page, LINE webhook and browser events."""

from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, abort, jsonify, render_template_string, request
from flask_socketio import SocketIO

from ..config import AppConfig, load_config
from ..errors import ValidationError
from ..hub import SEARCH_RESULTS, SEARCH_RESULTS_FOR_DEFAULT, BroadcastHub
from ..messaging import (
    SIGNATURE_HEADER,
    LineReplyClient,
    handle_webhook_events,
    parse_webhook_body,
    verify_signature,
)
from ..models import SearchCandidate, SelectionIntent, SourceChannel
from ..presenter import present_web
from ..resolver import CommandResolver, ReplyChannel
from ..search import YouTubeSearch
from ..state import PlaybackState

logger = logging.getLogger(__name__)

PLAYER_TEMPLATE = """
<!DOCTYPE html>
<html lang="ja">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>songrelay</title>
    <style>
        body { font-family: system-ui, sans-serif; max-width: 960px; margin: 2rem auto; padding: 0 1rem; }
        h1 { font-size: 1.5rem; }
        .card { background: #f5f5f5; padding: 1rem; border-radius: 8px; margin: 1rem 0; }
        .card h2 { margin-top: 0; font-size: 1rem; }
        .player { position: relative; padding-top: 56.25%; }
        .player iframe { position: absolute; inset: 0; width: 100%; height: 100%; border: 0; }
        ul { padding-left: 1.2rem; }
        .comment { color: #06c; }
        .result { display: flex; gap: 0.5rem; align-items: center; margin: 0.25rem 0; }
        .result img { width: 96px; }
        .btn { padding: 0.4rem 0.8rem; background: #333; color: white; border: none;
            border-radius: 4px; cursor: pointer; }
        .btn.default { background: #e67e22; }
        .btn.queue { background: #06c755; }
    </style>
</head>
<body>
    <h1>songrelay</h1>
    <div class="card">
        <h2>Default track: <span id="default-id">{{ default_id }}</span></h2>
        <div class="player">
            <iframe id="default-player" src="https://www.youtube.com/embed/{{ default_id }}"
                allow="autoplay; encrypted-media" allowfullscreen></iframe>
        </div>
    </div>
    <div class="card">
        <h2>Queue</h2>
        <ul id="queue"></ul>
    </div>
    <div class="card">
        <h2>Request</h2>
        <form id="input-form" style="display: flex; gap: 0.5rem;">
            <input id="input" type="text" placeholder="URL, keywords, #comment or default ..."
                style="flex: 1; padding: 0.5rem;" autocomplete="off">
            <button type="submit" class="btn">Send</button>
        </form>
        <div id="results"></div>
    </div>
    <div class="card">
        <h2>Chat</h2>
        <ul id="chat"></ul>
    </div>
    <script src="https://cdn.socket.io/4.7.5/socket.io.min.js"></script>
    <script>
        const socket = io();
        const el = (id) => document.getElementById(id);

        function setDefault(videoId) {
            el("default-id").textContent = videoId;
            el("default-player").src = "https://www.youtube.com/embed/" + videoId;
        }

        function addLine(listId, text, cls) {
            const li = document.createElement("li");
            li.textContent = text;
            if (cls) li.className = cls;
            el(listId).appendChild(li);
        }

        function showResults(results, eventName, label, cls) {
            const box = el("results");
            box.innerHTML = "";
            if (!results.length) {
                box.textContent = "見つかりませんでした";
                return;
            }
            results.forEach((r) => {
                const row = document.createElement("div");
                row.className = "result";
                const img = document.createElement("img");
                img.src = r.thumbnail;
                const title = document.createElement("span");
                title.textContent = r.title;
                const btn = document.createElement("button");
                btn.className = "btn " + cls;
                btn.textContent = label;
                btn.onclick = () => {
                    socket.emit(eventName, { videoId: r.videoId, title: r.title });
                    box.innerHTML = "";
                };
                row.append(img, title, btn);
                box.appendChild(row);
            });
        }

        socket.on("init-state", (state) => setDefault(state.defaultId));
        socket.on("update-default", (data) => setDefault(data.videoId));
        socket.on("add-queue", (req) => addLine("queue", req.title + " (" + req.source + ")"));
        socket.on("chat-message", (text) => addLine("chat", text));
        socket.on("flow-comment", (text) => addLine("chat", text, "comment"));
        socket.on("search-results", (results) =>
            showResults(results, "select-video", "リクエスト", "queue"));
        socket.on("search-results-for-default", (results) =>
            showResults(results, "select-default", "デフォルトにする", "default"));

        el("input-form").addEventListener("submit", (e) => {
            e.preventDefault();
            const text = el("input").value.trim();
            if (text) socket.emit("client-input", text);
            el("input").value = "";
        });
    </script>
</body>
</html>
"""


class WebChannel(ReplyChannel):
    """Replies to one browser client. Only selections are pushed back."""

    source = SourceChannel.WEB

    def __init__(self, hub: BroadcastHub, sid: str):
        self._hub = hub
        self._sid = sid

    def _results_event(self, intent: SelectionIntent) -> str:
        return SEARCH_RESULTS_FOR_DEFAULT if intent is SelectionIntent.SET_DEFAULT else SEARCH_RESULTS

    def reply_text(self, text: str) -> None:
        # Broadcasts already update the browser; there is no text reply channel
        logger.debug("No text reply for web client %s: %s", self._sid, text)

    def reply_selection(self, candidates: list[SearchCandidate], intent: SelectionIntent) -> None:
        self._hub.send_to(self._sid, self._results_event(intent), present_web(candidates, intent))

    def reply_not_found(self, query: str, intent: SelectionIntent) -> None:
        self._hub.send_to(self._sid, self._results_event(intent), [])

    def reply_failure(self) -> None:
        logger.debug("Search failure dropped for web client %s", self._sid)


def create_app(
    config: Optional[AppConfig] = None,
    search: Optional[YouTubeSearch] = None,
    reply_client: Optional[LineReplyClient] = None,
) -> Flask:
    """Create the Flask app with its Socket.IO server and relay services."""
    cfg = config or load_config()
    app = Flask(__name__)
    socketio = SocketIO(app, async_mode="threading")

    hub = BroadcastHub()
    state = PlaybackState(hub, cfg.default_video_id)
    if search is None:
        search = YouTubeSearch(cfg.youtube_api_key, limit=cfg.search_result_limit, timeout=cfg.search_timeout)
    if reply_client is None:
        reply_client = LineReplyClient(cfg.line_channel_access_token)
    resolver = CommandResolver(state, hub, search)
    app.extensions["songrelay"] = resolver
    app.extensions["songrelay.reply_client"] = reply_client

    if not search.available:
        logger.info("YOUTUBE_API_KEY not set, keyword search disabled")
    if not reply_client.enabled:
        logger.info("LINE_CHANNEL_ACCESS_TOKEN not set, LINE replies disabled")

    def _sender(sid: str):
        def send(event: str, payload: Any) -> None:
            socketio.emit(event, payload, to=sid)

        return send

    def _selection(data: Any) -> tuple[Optional[str], Optional[str]]:
        if not isinstance(data, dict):
            raise ValidationError(f"selection is not an object: {data!r}")
        return data.get("videoId"), data.get("title")

    @app.route("/")
    def player():
        return render_template_string(PLAYER_TEMPLATE, default_id=state.get().video_id)

    @app.route("/health")
    def health():
        return jsonify(status="ok", defaultId=state.get().video_id, clients=len(hub))

    @app.route("/webhook", methods=["POST"])
    def webhook():
        """LINE webhook endpoint. Always 200 once the batch itself is readable."""
        body = request.get_data()
        if cfg.line_channel_secret and not verify_signature(
            cfg.line_channel_secret, body, request.headers.get(SIGNATURE_HEADER)
        ):
            logger.warning("Rejected webhook with invalid signature")
            abort(400)
        try:
            raw_events = parse_webhook_body(body)
        except ValidationError as e:
            logger.warning("Rejected webhook: %s", e)
            abort(400)
        failed = handle_webhook_events(raw_events, resolver, reply_client)
        if failed:
            logger.info("Webhook batch: %d of %d events failed", failed, len(raw_events))
        return "OK", 200

    @socketio.on("connect")
    def on_connect():
        sid = request.sid
        hub.subscribe(sid, _sender(sid), state.snapshot)
        logger.info("Client connected: %s", sid)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        hub.unsubscribe(request.sid)
        logger.info("Client disconnected: %s", request.sid)

    @socketio.on("client-input")
    def on_client_input(text):
        if not isinstance(text, str):
            logger.warning("Ignoring non-text client-input from %s", request.sid)
            return
        resolver.handle_text(text, WebChannel(hub, request.sid))

    @socketio.on("select-video")
    def on_select_video(data):
        try:
            video_id, title = _selection(data)
            resolver.confirm(video_id, title, SelectionIntent.APPEND_QUEUE, WebChannel(hub, request.sid))
        except ValidationError as e:
            logger.warning("Ignoring select-video from %s: %s", request.sid, e)

    @socketio.on("select-default")
    def on_select_default(data):
        try:
            video_id, title = _selection(data)
            resolver.confirm(video_id, title, SelectionIntent.SET_DEFAULT, WebChannel(hub, request.sid))
        except ValidationError as e:
            logger.warning("Ignoring select-default from %s: %s", request.sid, e)

    @socketio.on_error_default
    def on_socket_error(e):
        logger.exception("Socket handler failed for %s: %s", request.sid, e)

    return app


def shutdown(app: Flask) -> None:
    """Stop outbox workers and close the outbound HTTP clients."""
    resolver: CommandResolver = app.extensions["songrelay"]
    resolver.hub.close()
    for client in (resolver.search, app.extensions["songrelay.reply_client"]):
        close = getattr(client, "close", None)
        if close is not None:
            close()
    logger.info("Relay services stopped")


def run_web_server(
    host: str = "0.0.0.0",
    port: Optional[int] = None,
    config: Optional[AppConfig] = None,
) -> None:
    """Run the Socket.IO server."""
    cfg = config or load_config()
    port = port or cfg.web_port
    app = create_app(cfg)
    socketio: SocketIO = app.extensions["socketio"]
    try:
        socketio.run(app, host=host, port=port, use_reloader=False, allow_unsafe_werkzeug=True)
    finally:
        shutdown(app)
