from __future__ import annotations

from microblog_inbound.config import SourceSettings
from microblog_inbound.models import DirectMessage, Post

from .base import DeduplicatingPollSource
from .registry import SourceDependencies, register_source


class TimelineUpdatesSource(DeduplicatingPollSource):
    component_type = "microblog:inbound-update-channel-adapter"

    def fetch(self, since_id: int | None) -> list[Post]:
        return self.client.get_home_timeline(since_id=since_id)


class MentionsSource(DeduplicatingPollSource):
    component_type = "microblog:mentions-inbound-channel-adapter"

    def fetch(self, since_id: int | None) -> list[Post]:
        return self.client.get_mentions(since_id=since_id)


class DirectMessageSource(DeduplicatingPollSource):
    component_type = "microblog:dm-inbound-channel-adapter"

    def fetch(self, since_id: int | None) -> list[DirectMessage]:
        return self.client.get_direct_messages(since_id=since_id)


def _build(
    source_class: type[DeduplicatingPollSource],
    settings: SourceSettings,
    dependencies: SourceDependencies,
) -> DeduplicatingPollSource:
    return source_class(
        dependencies.client,
        name=settings.id,
        scheduler=dependencies.scheduler,
        metadata_store=dependencies.metadata_store,
        trigger=dependencies.build_trigger(settings),
    )


@register_source("timeline")
def _build_timeline_source(
    settings: SourceSettings, dependencies: SourceDependencies
) -> DeduplicatingPollSource:
    return _build(TimelineUpdatesSource, settings, dependencies)


@register_source("mentions")
def _build_mentions_source(
    settings: SourceSettings, dependencies: SourceDependencies
) -> DeduplicatingPollSource:
    return _build(MentionsSource, settings, dependencies)


@register_source("direct_messages")
def _build_direct_message_source(
    settings: SourceSettings, dependencies: SourceDependencies
) -> DeduplicatingPollSource:
    return _build(DirectMessageSource, settings, dependencies)
