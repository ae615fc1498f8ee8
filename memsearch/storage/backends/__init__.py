"""Pluggable document stores.

- **MemoryStore**: evaluates predicate trees in-process, for tests
- **SQLiteStore**: renders predicate trees to parameterised SQL

Both implement the asynchronous ``DocumentStore`` interface.
"""

from .base import MEMORIALS, SEARCH_LOGS, DocumentStore
from .memory import MemoryStore
from .sqlite import SQLiteStore

__all__ = [
    "MEMORIALS",
    "SEARCH_LOGS",
    "DocumentStore",
    "MemoryStore",
    "SQLiteStore",
]
