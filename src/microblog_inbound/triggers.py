"""APScheduler trigger that paces polls against the remote rate limit."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from apscheduler.triggers.base import BaseTrigger

from microblog_inbound.client import RemoteClient
from microblog_inbound.models import RateLimitStatus
from microblog_inbound.utils.datetime_utils import to_utc

logger = logging.getLogger(__name__)


def compute_poll_delay(
    status: RateLimitStatus,
    now: datetime,
    *,
    min_interval: float,
    max_interval: float,
) -> float:
    """Spread the remaining hits evenly over what is left of the window.

    With no hits left the next poll waits for the window to reset.
    """
    seconds_until_reset = max((to_utc(status.reset_time) - to_utc(now)).total_seconds(), 0.0)
    if status.remaining_hits <= 0:
        return max(seconds_until_reset, min_interval)

    delay = seconds_until_reset / status.remaining_hits
    return min(max(delay, min_interval), max_interval)


class RateLimitStatusTrigger(BaseTrigger):
    """Paces polls from the last rate-limit status seen by the poll job.

    APScheduler evaluates triggers on its main loop while holding the job
    store lock, so ``get_next_fire_time`` never calls the remote API. The
    poll job calls ``refresh`` on its worker thread instead; the schedule
    therefore follows the status observed one poll earlier.
    """

    def __init__(
        self,
        client: RemoteClient,
        *,
        min_interval: float = 15,
        max_interval: float = 900,
        fallback_interval: float = 60,
    ) -> None:
        self.client = client
        self.min_interval = min_interval
        self.max_interval = max_interval
        self.fallback_interval = fallback_interval
        self.last_status: RateLimitStatus | None = None

    def refresh(self) -> RateLimitStatus | None:
        try:
            status = self.client.get_rate_limit_status()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Rate limit status unavailable, next poll in %ss: %s",
                self.fallback_interval,
                exc,
            )
            self.last_status = None
            return None

        self.last_status = status
        logger.debug(
            "Rate limit remaining=%d/%d, resets at %s",
            status.remaining_hits,
            status.hourly_limit,
            status.reset_time.isoformat(),
        )
        return status

    def get_next_fire_time(self, previous_fire_time, now):
        if previous_fire_time is None:
            return now

        status = self.last_status
        if status is None:
            delay = self.fallback_interval
        else:
            delay = compute_poll_delay(
                status,
                now,
                min_interval=self.min_interval,
                max_interval=self.max_interval,
            )
        return now + timedelta(seconds=delay)

    def __str__(self) -> str:
        return f"rate_limit[min={self.min_interval}s, max={self.max_interval}s]"

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} (min_interval={self.min_interval}, "
            f"max_interval={self.max_interval}, fallback_interval={self.fallback_interval})>"
        )
