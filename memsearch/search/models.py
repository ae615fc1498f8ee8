"""Request and response models for memorial search.

Request side types are msgspec structs so that untrusted filter payloads
can be decoded and validated in one step. Response side types are plain
dataclasses built by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any

import msgspec

from memsearch.core.models import MemorialDocument
from memsearch.exceptions import FilterError


DEFAULT_LIMIT = 20


class SortBy(str, Enum):
    """Sort order options for search results."""

    RELEVANCE = "relevance"
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


class MediaType(str, Enum):
    """Media presence filters."""

    PHOTOS = "photos"
    VIDEOS = "videos"
    AUDIO = "audio"
    DOCUMENTS = "documents"


class DateRange(msgspec.Struct, frozen=True, kw_only=True, omit_defaults=True):
    """Inclusive date-of-death range as ISO date strings."""

    start: str | None = None
    end: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.start and not self.end


class LocationFilter(msgspec.Struct, frozen=True, kw_only=True, omit_defaults=True):
    """Case-insensitive partial location match."""

    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.city or self.state or self.country)


class SearchFilters(msgspec.Struct, frozen=True, kw_only=True, omit_defaults=True):
    """Structured constraints applied on top of the text query."""

    date_range: DateRange | None = None
    organization: str | None = None
    location: LocationFilter | None = None
    tags: list[str] = msgspec.field(default_factory=list)
    media_type: MediaType | None = None
    sort_by: SortBy = SortBy.RELEVANCE
    limit: Annotated[int, msgspec.Meta(gt=0)] | None = None  # unset: engine default
    offset: Annotated[int, msgspec.Meta(ge=0)] = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SearchFilters:
        """Decode filters from untrusted input.

        Raises:
            FilterError: If a value has the wrong type or is out of range
        """
        if not data:
            return cls()
        try:
            return msgspec.convert(data, cls)
        except msgspec.ValidationError as e:
            raise FilterError(str(e)) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary, leaving out default values."""
        return msgspec.to_builtins(self)

    def merge(self, other: SearchFilters) -> SearchFilters:
        """Fill unset constraints of this filter set from ``other``.

        Sorting and pagination always come from ``self``.
        """
        return msgspec.structs.replace(
            self,
            date_range=self.date_range
            if self.date_range and not self.date_range.is_empty
            else other.date_range,
            organization=self.organization or other.organization,
            location=self.location
            if self.location and not self.location.is_empty
            else other.location,
            tags=list(self.tags) or list(other.tags),
            media_type=self.media_type or other.media_type,
        )

    @property
    def has_structured_filters(self) -> bool:
        """Check whether any constraint beyond the text query is set."""
        return bool(
            (self.date_range and not self.date_range.is_empty)
            or self.organization
            or (self.location and not self.location.is_empty)
            or self.tags
            or self.media_type
        )


class SearchOptions(msgspec.Struct, frozen=True, kw_only=True):
    """Natural-language processing switches for advanced search."""

    fuzzy_match: bool = False
    synonyms: bool = False
    date_nlp: bool = False
    location_nlp: bool = False


@dataclass
class Highlight:
    """Marked snippet of a matching field."""

    field: str
    snippet: str


@dataclass
class SearchResult:
    """A single scored search hit."""

    document: MemorialDocument
    score: float
    highlights: list[Highlight] = field(default_factory=list)

    def __post_init__(self):
        """Ensure score is never negative."""
        if self.score < 0:
            self.score = 0.0

    def get_highlight(self, field_name: str) -> Highlight | None:
        for highlight in self.highlights:
            if highlight.field == field_name:
                return highlight
        return None


@dataclass
class FacetValue:
    """Individual facet value with count."""

    key: Any
    count: int

    def __str__(self) -> str:
        return f"{self.key} ({self.count})"


@dataclass
class Facets:
    """Grouped counts used to build refinement filters."""

    organizations: list[FacetValue] = field(default_factory=list)
    locations: list[FacetValue] = field(default_factory=list)
    years: list[FacetValue] = field(default_factory=list)
    tags: list[FacetValue] = field(default_factory=list)

    @classmethod
    def empty(cls) -> Facets:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.organizations or self.locations or self.years or self.tags)

    def get_value_count(self, facet: str, key: Any) -> int:
        """Get count for a specific key of a facet."""
        for value in getattr(self, facet):
            if value.key == key:
                return value.count
        return 0

    def as_dict(self) -> dict[str, list[FacetValue]]:
        return {
            "organizations": self.organizations,
            "locations": self.locations,
            "years": self.years,
            "tags": self.tags,
        }


@dataclass
class SearchResponse:
    """Complete search response with results, facets and suggestions."""

    results: list[SearchResult]
    total: int
    facets: Facets = field(default_factory=Facets)
    suggestions: list[str] = field(default_factory=list)
    query: str = ""
    filters: SearchFilters = field(default_factory=SearchFilters)

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0

    @property
    def top_hit(self) -> SearchResult | None:
        """Get the first result."""
        return self.results[0] if self.results else None

    @property
    def has_more(self) -> bool:
        """Check if there are more results after this page."""
        return self.filters.offset + len(self.results) < self.total


def create_empty_response(
    query: str = "", filters: SearchFilters | None = None
) -> SearchResponse:
    """Create an empty response, used when the main fetch fails."""
    return SearchResponse(
        results=[],
        total=0,
        facets=Facets.empty(),
        suggestions=[],
        query=query,
        filters=filters or SearchFilters(),
    )
