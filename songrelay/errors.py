"""Error taxonomy shared by the search client, transports and resolver."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for songrelay errors."""


class ConfigurationError(RelayError):
    """A required external credential is missing; the feature is unavailable."""


class ProviderError(RelayError):
    """The upstream search provider failed, timed out or returned garbage."""


class ValidationError(RelayError):
    """An inbound payload (webhook item, postback data) is malformed."""
