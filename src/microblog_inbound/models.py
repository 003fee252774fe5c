from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar


@dataclass(slots=True)
class RemoteItem:
    id: int
    created_at: datetime
    raw: dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "item"


@dataclass(slots=True)
class Post(RemoteItem):
    text: str = ""
    author: str | None = None
    in_reply_to_id: int | None = None

    kind: ClassVar[str] = "post"


@dataclass(slots=True)
class DirectMessage(RemoteItem):
    text: str = ""
    sender: str | None = None
    recipient: str | None = None

    kind: ClassVar[str] = "direct_message"


@dataclass(slots=True)
class RateLimitStatus:
    remaining_hits: int
    hourly_limit: int
    reset_time: datetime
