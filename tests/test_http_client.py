from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests

from microblog_inbound.client import HttpMicroblogClient
from microblog_inbound.models import DirectMessage, Post


class _DummyResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class _Recorder:
    def __init__(self, responses: dict[str, _DummyResponse]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, dict | None]] = []

    def __call__(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        for suffix, response in self.responses.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"unexpected url {url}")


def _client() -> HttpMicroblogClient:
    return HttpMicroblogClient(base_url="https://api.example.test/1.1", token="secret")


def test_home_timeline_parses_posts(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder(
        {
            "statuses/home_timeline.json": _DummyResponse(
                [
                    {
                        "id": 12,
                        "id_str": "12",
                        "created_at": "Wed Aug 27 13:08:45 +0000 2008",
                        "text": "first post",
                        "user": {"screen_name": "alice"},
                        "in_reply_to_status_id": 7,
                    },
                    "not-an-entry",
                ]
            )
        }
    )
    monkeypatch.setattr("requests.get", recorder)

    posts = _client().get_home_timeline(since_id=10)

    assert len(posts) == 1
    post = posts[0]
    assert isinstance(post, Post)
    assert post.id == 12
    assert post.created_at == datetime(2008, 8, 27, 13, 8, 45, tzinfo=timezone.utc)
    assert post.author == "alice"
    assert post.in_reply_to_id == 7
    assert recorder.calls == [
        ("https://api.example.test/1.1/statuses/home_timeline.json", {"since_id": 10})
    ]


def test_direct_messages_without_marker_send_no_since_id(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder(
        {
            "direct_messages.json": _DummyResponse(
                [
                    {
                        "id": 3,
                        "created_at": "2026-01-01T10:00:00Z",
                        "text": "hi",
                        "sender_screen_name": "bob",
                        "recipient_screen_name": "me",
                    }
                ]
            )
        }
    )
    monkeypatch.setattr("requests.get", recorder)

    messages = _client().get_direct_messages()

    assert isinstance(messages[0], DirectMessage)
    assert messages[0].sender == "bob"
    assert recorder.calls[0][1] is None


def test_profile_id_is_fetched_once(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder(
        {"account/verify_credentials.json": _DummyResponse({"id": 4242, "id_str": "4242"})}
    )
    monkeypatch.setattr("requests.get", recorder)
    client = _client()

    assert client.get_profile_id() == "4242"
    assert client.get_profile_id() == "4242"
    assert len(recorder.calls) == 1


def test_rate_limit_status_parses_epoch_reset(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder(
        {
            "account/rate_limit_status.json": _DummyResponse(
                {"remaining_hits": 42, "hourly_limit": 150, "reset_time_in_seconds": 1767268800}
            )
        }
    )
    monkeypatch.setattr("requests.get", recorder)

    status = _client().get_rate_limit_status()

    assert status.remaining_hits == 42
    assert status.hourly_limit == 150
    assert status.reset_time == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_http_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder({"statuses/mentions.json": _DummyResponse({}, status_code=503)})
    monkeypatch.setattr("requests.get", recorder)

    with pytest.raises(requests.HTTPError):
        _client().get_mentions()


def test_entry_without_created_at_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _Recorder({"statuses/mentions.json": _DummyResponse([{"id": 1, "text": "x"}])})
    monkeypatch.setattr("requests.get", recorder)

    with pytest.raises(ValueError):
        _client().get_mentions()
