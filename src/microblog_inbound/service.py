from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

from microblog_inbound.models import RemoteItem
from microblog_inbound.sources import DeduplicatingPollSource

logger = logging.getLogger(__name__)

ItemHandler = Callable[[DeduplicatingPollSource, RemoteItem], None]


@dataclass(slots=True)
class DrainStats:
    received: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class PollingService:
    """Runs sources on a shared scheduler and hands queued items to a handler."""

    def __init__(
        self,
        *,
        sources: list[DeduplicatingPollSource],
        scheduler: BackgroundScheduler,
        handler: ItemHandler,
        idle_sleep_seconds: float = 1.0,
    ) -> None:
        self.sources = sources
        self.scheduler = scheduler
        self.handler = handler
        self.idle_sleep_seconds = idle_sleep_seconds
        self._shutdown = threading.Event()

    def start(self) -> None:
        for source in self.sources:
            source.start()
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Polling service started with %d sources", len(self.sources))

    def stop(self) -> None:
        self._shutdown.set()
        for source in self.sources:
            source.stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Polling service stopped")

    def drain_once(self) -> DrainStats:
        """Hand every currently pending item to the handler without blocking."""
        stats = DrainStats()
        for source in self.sources:
            while True:
                item = source.receive()
                if item is None:
                    break
                stats.received += 1
                try:
                    self.handler(source, item)
                except Exception as exc:  # noqa: BLE001
                    message = f"handler failed for {source.name} item {item.id}: {exc}"
                    logger.exception(message)
                    stats.errors.append(message)
        return stats

    def run_forever(self) -> None:
        try:
            self.start()
            while not self._shutdown.is_set():
                stats = self.drain_once()
                if stats.received == 0:
                    self._shutdown.wait(self.idle_sleep_seconds)
        finally:
            self.stop()

    def request_shutdown(self) -> None:
        self._shutdown.set()
