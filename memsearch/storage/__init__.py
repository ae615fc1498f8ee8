"""Document storage for memorial search."""

from .backends import MEMORIALS, SEARCH_LOGS, DocumentStore, MemoryStore, SQLiteStore
from .importers import DocumentImporter

__all__ = [
    "MEMORIALS",
    "SEARCH_LOGS",
    "DocumentStore",
    "MemoryStore",
    "SQLiteStore",
    "DocumentImporter",
]
