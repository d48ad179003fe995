"""Fan-out of state-change events to connected browser clients."""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

# Outbound event names
INIT_STATE = "init-state"
CHAT_MESSAGE = "chat-message"
FLOW_COMMENT = "flow-comment"
ADD_QUEUE = "add-queue"
UPDATE_DEFAULT = "update-default"
SEARCH_RESULTS = "search-results"
SEARCH_RESULTS_FOR_DEFAULT = "search-results-for-default"

Sender = Callable[[str, Any], None]
Snapshot = Callable[[], tuple[str, Any]]

_CLOSE = object()


class _Outbox:
    """Per-subscriber delivery queue drained by its own worker thread."""

    def __init__(self, handle: Hashable, send: Sender):
        self.handle = handle
        self._send = send
        self._queue: Queue = Queue()
        self._thread = threading.Thread(target=self._run, name=f"hub-outbox-{handle}", daemon=True)
        self._thread.start()

    def put(self, event: str, payload: Any) -> None:
        self._queue.put((event, payload))

    def close(self) -> None:
        self._queue.put(_CLOSE)

    def join(self) -> None:
        """Block until everything queued so far has been handed to ``send``."""
        self._queue.join()

    @property
    def finished(self) -> bool:
        return not self._thread.is_alive() and self._queue.unfinished_tasks == 0

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _CLOSE:
                    return
                event, payload = item
                try:
                    self._send(event, payload)
                except Exception as e:
                    logger.warning("Delivery of %s to %s failed: %s", event, self.handle, e)
            finally:
                self._queue.task_done()


class BroadcastHub:
    """
    Publish/subscribe registry keyed by connection handle.

    Publishing only enqueues: each subscriber has its own outbox and worker
    thread, so a slow or dead client delays nobody but itself. Enqueues are
    serialized under one lock, so every subscriber sees events in the order
    the hub received them. A subscriber whose send fails is logged and skipped.
    """

    def __init__(self) -> None:
        self._outboxes: dict[Hashable, _Outbox] = {}
        self._closing: list[_Outbox] = []
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def subscribe(self, handle: Hashable, send: Sender, snapshot: Optional[Snapshot] = None) -> None:
        """Register a client; deliver ``snapshot()`` to it alone before any later publish."""
        with self._lock:
            previous = self._outboxes.pop(handle, None)
            if previous is not None:
                self._retire(previous)
            outbox = _Outbox(handle, send)
            self._outboxes[handle] = outbox
            if snapshot is not None:
                event, payload = snapshot()
                outbox.put(event, payload)
        logger.debug("Subscriber %s joined (%d connected)", handle, len(self))

    def unsubscribe(self, handle: Hashable) -> None:
        with self._lock:
            outbox = self._outboxes.pop(handle, None)
            if outbox is not None:
                self._retire(outbox)
        logger.debug("Subscriber %s left (%d connected)", handle, len(self))

    def publish(self, event: str, payload: Any) -> None:
        """Queue an event for every connected subscriber."""
        with self._lock:
            logger.debug("Publish %s to %d subscribers", event, len(self._outboxes))
            for outbox in self._outboxes.values():
                outbox.put(event, payload)

    def send_to(self, handle: Hashable, event: str, payload: Any) -> bool:
        """Queue an event for one subscriber only. Returns False if it is gone."""
        with self._lock:
            outbox = self._outboxes.get(handle)
            if outbox is None:
                logger.debug("Dropping %s for departed subscriber %s", event, handle)
                return False
            outbox.put(event, payload)
            return True

    def drain(self, handle: Optional[Hashable] = None) -> None:
        """Wait until queued events (for one subscriber, or all) have been sent."""
        with self._lock:
            if handle is not None:
                outboxes = [self._outboxes[handle]] if handle in self._outboxes else []
            else:
                outboxes = list(self._outboxes.values()) + list(self._closing)
        for outbox in outboxes:
            outbox.join()

    def close(self) -> None:
        """Drop every subscriber and stop their workers once their outboxes empty."""
        with self._lock:
            for outbox in self._outboxes.values():
                self._retire(outbox)
            self._outboxes.clear()

    def _retire(self, outbox: _Outbox) -> None:
        # Events already queued are still sent; the worker exits after them
        outbox.close()
        self._closing = [o for o in self._closing if not o.finished]
        self._closing.append(outbox)

    def __len__(self) -> int:
        return len(self._outboxes)

    def __contains__(self, handle: Hashable) -> bool:
        return handle in self._outboxes
