"""Deduplicating inbound polling for microblogging APIs."""

__version__ = "0.1.0"
