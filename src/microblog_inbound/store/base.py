from __future__ import annotations

from abc import ABC, abstractmethod


class MetadataStore(ABC):
    """Key/value persistence for source high-water markers."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value for key, or None when absent."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Create or replace the value stored under key."""
