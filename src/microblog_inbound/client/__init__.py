"""Remote API clients."""

from .base import RemoteClient
from .http_client import HttpMicroblogClient

__all__ = ["RemoteClient", "HttpMicroblogClient"]
