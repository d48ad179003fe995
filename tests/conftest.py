"""Shared fakes for resolver, messaging and web tests."""

import pytest

from songrelay.errors import ProviderError
from songrelay.hub import BroadcastHub
from songrelay.models import SearchCandidate, SourceChannel
from songrelay.resolver import ReplyChannel

CANDIDATES = [
    SearchCandidate("aaaaaaaaaaa", "First", "https://img/1.jpg"),
    SearchCandidate("bbbbbbbbbbb", "Second"),
    SearchCandidate("ccccccccccc", "Third"),
]


class FakeSearch:
    """Stands in for YouTubeSearch; records queries."""

    def __init__(self, results=None, available=True, error=None):
        self.results = list(CANDIDATES) if results is None else results
        self.available = available
        self.error = error
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.results


class RecordingChannel(ReplyChannel):
    """Captures everything the resolver sends back to the caller."""

    def __init__(self, source=SourceChannel.MESSAGING):
        self.source = source
        self.texts = []
        self.selections = []

    def reply_text(self, text):
        self.texts.append(text)

    def reply_selection(self, candidates, intent):
        self.selections.append((candidates, intent))


class RecordingClient:
    """A connected browser client as seen by the hub. Reading events waits for delivery."""

    def __init__(self, hub=None):
        self._hub = hub
        self._events = []

    def __call__(self, event, payload):
        self._events.append((event, payload))

    @property
    def events(self):
        if self._hub is not None:
            self._hub.drain()
        return list(self._events)


@pytest.fixture
def candidates():
    return list(CANDIDATES)


@pytest.fixture
def hub():
    hub = BroadcastHub()
    yield hub
    hub.close()


@pytest.fixture
def client(hub):
    recorder = RecordingClient(hub)
    hub.subscribe("client-1", recorder)
    return recorder


@pytest.fixture
def failing_search():
    return FakeSearch(error=ProviderError("boom"))


@pytest.fixture
def make_recorder(hub):
    return lambda: RecordingClient(hub)


@pytest.fixture
def make_search():
    return FakeSearch


@pytest.fixture
def make_channel():
    return RecordingChannel


class FakeReplyClient:
    """Stands in for LineReplyClient; records replies."""

    enabled = True

    def __init__(self):
        self.replies = []

    def reply(self, reply_token, messages):
        self.replies.append((reply_token, messages))
        return True


@pytest.fixture
def replies():
    return FakeReplyClient()
