"""Memorial document models used by the search engine.

Documents are owned by the content platform. The search engine only reads
them, so every struct here is frozen and decoded straight from raw store
records with msgspec.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import msgspec


class PrivacyLevel(str, Enum):
    """Who may see a memorial page."""

    PUBLIC = "public"
    LINK_ONLY = "link-only"
    PASSWORD_PROTECTED = "password-protected"
    PRIVATE = "private"


class GalleryKind(str, Enum):
    """Kinds of gallery items attached to a memorial."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"


class Location(msgspec.Struct, frozen=True, kw_only=True):
    """Geographic location of a memorial."""

    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def display(self) -> str | None:
        """Composite "city, state" key, or None when either part is missing."""
        if self.city and self.state:
            return f"{self.city}, {self.state}"
        return None


class TimelineEntry(msgspec.Struct, frozen=True, kw_only=True):
    """A dated event in a life story."""

    title: str = ""
    description: str = ""
    date: str | None = None


class GuestbookMessage(msgspec.Struct, frozen=True, kw_only=True):
    """A visitor message left on the memorial."""

    message: str = ""
    author: str | None = None
    created_at: str | None = None


class GalleryItem(msgspec.Struct, frozen=True, kw_only=True):
    """A photo, video, audio clip or document attached to the memorial."""

    kind: GalleryKind
    url: str | None = None
    caption: str | None = None


class MemorialDocument(msgspec.Struct, frozen=True, kw_only=True):
    """A searchable memorial page.

    Dates are ISO 8601 strings (``YYYY-MM-DD``) so that lexical comparison
    matches chronological order.
    """

    # Required fields
    id: str
    full_name: str

    # Optional fields with defaults
    preferred_name: str | None = None
    slug: str | None = None
    biography: str = ""
    life_story: str = ""
    timeline: list[TimelineEntry] = msgspec.field(default_factory=list)
    guestbook: list[GuestbookMessage] = msgspec.field(default_factory=list)
    tags: list[str] = msgspec.field(default_factory=list)
    location: Location | None = None
    birth_place: Location | None = None
    date_of_birth: str | None = None
    date_of_death: str | None = None
    privacy: PrivacyLevel = PrivacyLevel.PRIVATE  # unset means hidden
    organization: str | None = None  # owning funeral home / organisation
    created_by: str | None = None
    gallery: list[GalleryItem] = msgspec.field(default_factory=list)

    @property
    def is_public(self) -> bool:
        return self.privacy == PrivacyLevel.PUBLIC

    @property
    def year_of_death(self) -> int | None:
        """Calendar year extracted from the date of death."""
        if not self.date_of_death or len(self.date_of_death) < 4:
            return None
        prefix = self.date_of_death[:4]
        return int(prefix) if prefix.isdigit() else None

    @property
    def text(self) -> str:
        """Generate searchable text from all text fields."""
        parts = [
            self.full_name,
            self.preferred_name or "",
            self.biography,
            self.life_story,
            " ".join(e.title for e in self.timeline),
            " ".join(e.description for e in self.timeline),
            " ".join(m.message for m in self.guestbook),
            " ".join(self.tags),
        ]
        return " ".join(filter(None, parts))

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> MemorialDocument:
        """Decode a raw store record, ignoring fields the engine does not use.

        Null values are treated as absent, so optional fields fall back to
        their defaults and null list items are dropped.
        """
        return msgspec.convert(_without_nulls(record), cls)

    def to_record(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for storing."""
        return msgspec.to_builtins(self)


def _without_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _without_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_without_nulls(v) for v in value if v is not None]
    return value
