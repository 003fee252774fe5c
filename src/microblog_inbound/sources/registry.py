from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from apscheduler.schedulers.base import BaseScheduler

from microblog_inbound.client import RemoteClient
from microblog_inbound.config import PollingSettings, SourceSettings
from microblog_inbound.store import MetadataStore
from microblog_inbound.triggers import RateLimitStatusTrigger

from .base import DeduplicatingPollSource


@dataclass(slots=True)
class SourceDependencies:
    client: RemoteClient
    scheduler: BaseScheduler | None
    metadata_store: MetadataStore | None
    polling: PollingSettings

    def build_trigger(self, settings: SourceSettings) -> RateLimitStatusTrigger:
        polling = settings.polling or self.polling
        return RateLimitStatusTrigger(
            self.client,
            min_interval=polling.min_interval_seconds,
            max_interval=polling.max_interval_seconds,
            fallback_interval=polling.fallback_interval_seconds,
        )


SourceFactory = Callable[[SourceSettings, SourceDependencies], DeduplicatingPollSource]

_REGISTRY: dict[str, SourceFactory] = {}


class SourceRegistrationError(ValueError):
    """Raised when an unknown source type is used."""


def register_source(source_type: str) -> Callable[[SourceFactory], SourceFactory]:
    def decorator(factory: SourceFactory) -> SourceFactory:
        _REGISTRY[source_type] = factory
        return factory

    return decorator


def create_source(
    settings: SourceSettings,
    dependencies: SourceDependencies,
) -> DeduplicatingPollSource:
    factory = _REGISTRY.get(settings.type)
    if factory is None:
        available = ", ".join(sorted(_REGISTRY)) or "none"
        raise SourceRegistrationError(
            f"Unknown source type '{settings.type}'. Registered source types: {available}"
        )
    return factory(settings, dependencies)


def registered_source_types() -> list[str]:
    return sorted(_REGISTRY)
