from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable

from apscheduler.job import Job
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.base import BaseTrigger

from microblog_inbound.client import RemoteClient
from microblog_inbound.config import ConfigError
from microblog_inbound.models import RemoteItem
from microblog_inbound.store import MetadataStore, SimpleMetadataStore
from microblog_inbound.triggers import RateLimitStatusTrigger
from microblog_inbound.utils.datetime_utils import to_utc

logger = logging.getLogger(__name__)


class UnsupportedPayloadError(ValueError):
    """Raised when a fetched object is not a recognized remote item."""


class MarkerParseError(ValueError):
    """Raised when the persisted marker value is not an integer."""


class SourceState(str, Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"


class DeduplicatingPollSource(ABC):
    """Polls a remote feed and queues only items newer than the stored marker.

    The marker is the id of the last forwarded item. It lives in a
    ``MetadataStore`` under ``<component_type>.<name>.<profile_id>`` so a
    restarted source resumes where it left off. Restart safety is only as
    good as the injected store; the in-memory fallback is process-local.
    """

    component_type: str = "microblog:inbound-adapter"

    def __init__(
        self,
        client: RemoteClient | None,
        *,
        name: str | None = None,
        scheduler: BaseScheduler | None = None,
        metadata_store: MetadataStore | None = None,
        trigger: BaseTrigger | None = None,
    ) -> None:
        self.client = client
        self.name = name
        self.scheduler = scheduler
        self.metadata_store = metadata_store
        self.trigger = trigger
        self.metadata_key: str | None = None
        self.marker_id = -1
        self.state = SourceState.CREATED

        self._pending: queue.Queue[RemoteItem] = queue.Queue()
        self._marker_guard = threading.Lock()
        self._interrupted = threading.Event()
        self._poll_job: Job | None = None

    def has_marked_item(self) -> bool:
        return self.marker_id > -1

    def initialize(self) -> None:
        if self.scheduler is None:
            raise ConfigError(
                f"{self._display_name()} requires a scheduler; none was provided"
            )
        if self.client is None:
            raise ConfigError(f"{self._display_name()} requires a remote client")

        if self.metadata_store is None:
            logger.warning(
                "%s has no metadata store; using an in-memory store, "
                "markers will not survive a restart",
                self._display_name(),
            )
            self.metadata_store = SimpleMetadataStore()

        key_parts: list[str] = []
        if self.component_type:
            key_parts.append(self.component_type)
        if self.name:
            key_parts.append(self.name)
        else:
            logger.warning(
                "%s has no name. Metadata store key might not be unique.",
                self.__class__.__name__,
            )
        key_parts.append(self.client.get_profile_id())
        self.metadata_key = ".".join(key_parts)

        stored = self._read_marker()
        if stored > 0:
            self.marker_id = stored

        self.state = SourceState.INITIALIZED
        logger.info(
            "Initialized %s (key=%s, marker=%d)",
            self._display_name(),
            self.metadata_key,
            self.marker_id,
        )

    def start(self) -> None:
        if self.state is SourceState.STARTED:
            logger.warning("%s is already started", self._display_name())
            return
        if self.state is SourceState.CREATED:
            self.initialize()

        if self.trigger is None:
            self.trigger = RateLimitStatusTrigger(self.client)
        trigger = self.trigger
        # each run checks the event of the start that scheduled it
        self._interrupted = threading.Event()
        self._poll_job = self.scheduler.add_job(
            self._run_scheduled_poll,
            trigger=trigger,
            args=[self._interrupted],
            id=f"poll::{self.metadata_key}",
            name=self._display_name(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.state = SourceState.STARTED
        logger.info("Started %s with trigger %s", self._display_name(), trigger)

    def stop(self) -> None:
        if self.state is not SourceState.STARTED:
            return

        self._interrupted.set()
        if self._poll_job is not None:
            try:
                self._poll_job.remove()
            except LookupError:
                logger.debug("Poll job for %s was already removed", self._display_name())
            self._poll_job = None

        self.state = SourceState.STOPPED
        logger.info("Stopped %s", self._display_name())

    def receive(self) -> RemoteItem | None:
        try:
            return self._pending.get_nowait()
        except queue.Empty:
            return None

    def pending_count(self) -> int:
        return self._pending.qsize()

    def poll_once(self, interrupted: threading.Event | None = None) -> int:
        """Fetch one batch from the remote feed and forward what is new.

        The batch is dropped unforwarded if ``interrupted`` (by default the
        event of the current start) is set while the fetch is in flight.
        """
        if interrupted is None:
            interrupted = self._interrupted
        since_id = self.marker_id if self.has_marked_item() else None
        items = self.fetch(since_id)
        if interrupted.is_set():
            logger.info(
                "%s was stopped during fetch; discarding %d items",
                self._display_name(),
                len(items),
            )
            return 0
        return self.forward_all(items)

    def forward_all(self, items: Iterable[Any]) -> int:
        batch = list(items)
        for item in batch:
            _require_remote_item(item)
        batch.sort(key=lambda item: to_utc(item.created_at))

        forwarded = 0
        with self._marker_guard:
            for item in batch:
                if self._forward_locked(item):
                    forwarded += 1

        logger.debug(
            "%s forwarded %d of %d items (marker=%d)",
            self._display_name(),
            forwarded,
            len(batch),
            self.marker_id,
        )
        return forwarded

    def forward(self, item: Any) -> bool:
        _require_remote_item(item)
        with self._marker_guard:
            return self._forward_locked(item)

    @abstractmethod
    def fetch(self, since_id: int | None) -> list[RemoteItem]:
        """Fetch the next batch of items newer than since_id (None for latest)."""

    def _forward_locked(self, item: RemoteItem) -> bool:
        last_id = self._read_marker()
        if item.id <= last_id:
            return False

        self._pending.put(item)
        self._mark_last_id(item.id)
        return True

    def _read_marker(self) -> int:
        if self.metadata_store is None or self.metadata_key is None:
            raise ConfigError(f"{self._display_name()} has not been initialized")

        raw_value = self.metadata_store.get(self.metadata_key)
        if raw_value is None:
            return 0
        try:
            return int(raw_value)
        except (TypeError, ValueError) as exc:
            raise MarkerParseError(
                f"Stored marker for {self.metadata_key!r} is not an integer: {raw_value!r}"
            ) from exc

    def _mark_last_id(self, item_id: int) -> None:
        self.marker_id = item_id
        self.metadata_store.put(self.metadata_key, str(item_id))

    def _run_scheduled_poll(self, interrupted: threading.Event) -> None:
        try:
            forwarded = self.poll_once(interrupted)
        except Exception:
            logger.exception("Scheduled poll failed for %s", self._display_name())
            raise
        finally:
            if isinstance(self.trigger, RateLimitStatusTrigger) and not interrupted.is_set():
                self.trigger.refresh()
        if forwarded:
            logger.info("%s queued %d new items", self._display_name(), forwarded)

    def _display_name(self) -> str:
        return self.name or self.__class__.__name__


def _require_remote_item(item: Any) -> None:
    if not isinstance(item, RemoteItem):
        raise UnsupportedPayloadError(
            f"Unsupported type of remote message: {type(item).__name__}"
        )
