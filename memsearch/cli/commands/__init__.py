"""CLI commands module."""

from . import analytics, data, search

__all__ = ["analytics", "data", "search"]
