"""Marker store implementations."""

from .base import MetadataStore
from .memory_store import SimpleMetadataStore
from .sqlite_store import SQLiteMetadataStore

__all__ = ["MetadataStore", "SimpleMetadataStore", "SQLiteMetadataStore"]
