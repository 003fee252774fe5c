from __future__ import annotations

import threading

from .base import MetadataStore


class SimpleMetadataStore(MetadataStore):
    """Process-local store. Values are lost when the process exits."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
