"""Core domain models for memorial search."""

from memsearch.core.models import (
    GalleryItem,
    GalleryKind,
    GuestbookMessage,
    Location,
    MemorialDocument,
    PrivacyLevel,
    TimelineEntry,
)

__all__ = [
    "GalleryItem",
    "GalleryKind",
    "GuestbookMessage",
    "Location",
    "MemorialDocument",
    "PrivacyLevel",
    "TimelineEntry",
]
