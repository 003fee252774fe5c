from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urljoin

import requests

from microblog_inbound.models import DirectMessage, Post, RateLimitStatus
from microblog_inbound.utils.datetime_utils import parse_datetime_utc

from .base import RemoteClient

logger = logging.getLogger(__name__)


class HttpMicroblogClient(RemoteClient):
    def __init__(self, base_url: str, token: str, timeout_seconds: int = 15) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._profile_id: str | None = None

    def get_profile_id(self) -> str:
        if self._profile_id is None:
            payload = self._get_json("account/verify_credentials.json")
            profile_id = str(payload.get("id_str") or payload.get("id") or "").strip()
            if not profile_id:
                raise RuntimeError("verify_credentials response did not include an account id")
            self._profile_id = profile_id
        return self._profile_id

    def get_rate_limit_status(self) -> RateLimitStatus:
        payload = self._get_json("account/rate_limit_status.json")
        reset_time = parse_datetime_utc(payload.get("reset_time_in_seconds")) or parse_datetime_utc(
            payload.get("reset_time")
        )
        return RateLimitStatus(
            remaining_hits=int(payload.get("remaining_hits", 0)),
            hourly_limit=int(payload.get("hourly_limit", 0)),
            reset_time=reset_time or datetime.now(timezone.utc),
        )

    def get_home_timeline(self, since_id: int | None = None) -> list[Post]:
        entries = self._get_list("statuses/home_timeline.json", since_id)
        return [_entry_to_post(entry) for entry in entries]

    def get_mentions(self, since_id: int | None = None) -> list[Post]:
        entries = self._get_list("statuses/mentions.json", since_id)
        return [_entry_to_post(entry) for entry in entries]

    def get_direct_messages(self, since_id: int | None = None) -> list[DirectMessage]:
        entries = self._get_list("direct_messages.json", since_id)
        return [_entry_to_direct_message(entry) for entry in entries]

    def _get_list(self, path: str, since_id: int | None) -> list[dict[str, Any]]:
        params = {"since_id": since_id} if since_id is not None and since_id > 0 else None
        payload = self._get_json(path, params=params)
        if not isinstance(payload, list):
            raise RuntimeError(f"Expected a JSON list from {path}, got {type(payload).__name__}")

        entries = [entry for entry in payload if isinstance(entry, dict)]
        logger.debug("Fetched %d entries from %s (since_id=%s)", len(entries), path, since_id)
        return entries

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "User-Agent": "microblog-inbound/0.1",
        }
        response = requests.get(
            urljoin(self.base_url, path),
            params=params,
            headers=headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()


def _entry_to_post(entry: dict[str, Any]) -> Post:
    user = entry.get("user")
    author = user.get("screen_name") if isinstance(user, dict) else None
    reply_to = entry.get("in_reply_to_status_id")

    return Post(
        id=_entry_id(entry),
        created_at=_entry_created_at(entry),
        raw=entry,
        text=str(entry.get("text", "")),
        author=author,
        in_reply_to_id=int(reply_to) if reply_to is not None else None,
    )


def _entry_to_direct_message(entry: dict[str, Any]) -> DirectMessage:
    return DirectMessage(
        id=_entry_id(entry),
        created_at=_entry_created_at(entry),
        raw=entry,
        text=str(entry.get("text", "")),
        sender=entry.get("sender_screen_name"),
        recipient=entry.get("recipient_screen_name"),
    )


def _entry_id(entry: dict[str, Any]) -> int:
    raw_id = entry.get("id_str") or entry.get("id")
    try:
        return int(raw_id)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Remote entry has no usable id: {raw_id!r}") from exc


def _entry_created_at(entry: dict[str, Any]) -> datetime:
    created_at = parse_datetime_utc(entry.get("created_at"))
    if created_at is None:
        raise ValueError(f"Remote entry {entry.get('id')!r} has no parseable created_at")
    return created_at
