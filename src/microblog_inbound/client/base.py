from __future__ import annotations

from abc import ABC, abstractmethod

from microblog_inbound.models import DirectMessage, Post, RateLimitStatus


class RemoteClient(ABC):
    @abstractmethod
    def get_profile_id(self) -> str:
        """Return the stable identifier of the authenticated account."""

    @abstractmethod
    def get_rate_limit_status(self) -> RateLimitStatus:
        """Return the current remote rate-limit window."""

    @abstractmethod
    def get_home_timeline(self, since_id: int | None = None) -> list[Post]:
        """Fetch posts from the account's home timeline."""

    @abstractmethod
    def get_mentions(self, since_id: int | None = None) -> list[Post]:
        """Fetch posts mentioning the account."""

    @abstractmethod
    def get_direct_messages(self, since_id: int | None = None) -> list[DirectMessage]:
        """Fetch direct messages received by the account."""
