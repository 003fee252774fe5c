from __future__ import annotations

import time

from apscheduler.schedulers.background import BackgroundScheduler

from microblog_inbound.sources import MentionsSource, SourceState, TimelineUpdatesSource
from microblog_inbound.store import SimpleMetadataStore

from fakes import FakeClient, make_post


class SlowRateLimitClient(FakeClient):
    def get_rate_limit_status(self):
        time.sleep(2)
        return super().get_rate_limit_status()


def _wait_for(condition, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


def test_slow_rate_limit_lookup_does_not_delay_stopping_another_source() -> None:
    scheduler = BackgroundScheduler()
    slow = TimelineUpdatesSource(
        SlowRateLimitClient(),
        name="slow",
        scheduler=scheduler,
        metadata_store=SimpleMetadataStore(),
    )
    other = MentionsSource(
        FakeClient(),
        name="other",
        scheduler=scheduler,
        metadata_store=SimpleMetadataStore(),
    )
    slow.start()
    other.start()
    scheduler.start()

    try:
        time.sleep(0.5)
        started = time.monotonic()
        other.stop()
        elapsed = time.monotonic() - started
    finally:
        scheduler.shutdown(wait=False)

    assert elapsed < 1.0
    assert other.state is SourceState.STOPPED


def test_each_fire_looks_up_the_rate_limit_once() -> None:
    client = FakeClient()
    client.timeline = [make_post(1)]
    scheduler = BackgroundScheduler()
    source = TimelineUpdatesSource(
        client,
        name="home",
        scheduler=scheduler,
        metadata_store=SimpleMetadataStore(),
    )
    source.start()
    scheduler.start()

    try:
        assert _wait_for(lambda: source.trigger.last_status is not None)
        time.sleep(0.2)
    finally:
        scheduler.shutdown(wait=False)

    assert client.rate_limit_calls == 1
    assert source.receive().id == 1
