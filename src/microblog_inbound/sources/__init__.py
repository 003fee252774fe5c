"""Deduplicating poll sources and registry."""

from .base import (
    DeduplicatingPollSource,
    MarkerParseError,
    SourceState,
    UnsupportedPayloadError,
)
from .registry import (
    SourceDependencies,
    SourceRegistrationError,
    create_source,
    register_source,
    registered_source_types,
)
from .timeline_sources import DirectMessageSource, MentionsSource, TimelineUpdatesSource

__all__ = [
    "DeduplicatingPollSource",
    "DirectMessageSource",
    "MarkerParseError",
    "MentionsSource",
    "SourceDependencies",
    "SourceRegistrationError",
    "SourceState",
    "TimelineUpdatesSource",
    "UnsupportedPayloadError",
    "create_source",
    "register_source",
    "registered_source_types",
]
