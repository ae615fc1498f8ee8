"""Search functionality for memorial pages.

Main components:
- SearchEngine: search, advanced search and autocomplete entry points
- Query construction over a typed predicate tree
- Natural-language date and location extraction
- Relevance scoring, highlighting, facets and suggestions
- Search analytics logging
"""

from .analytics import (
    ClickedResult,
    PopularSearch,
    SearchAnalytics,
    SearchLog,
    SearchOverview,
)
from .engine import (
    SearchEngine,
    SearchEngineBuilder,
    create_engine,
    create_memory_engine,
    create_store,
)
from .facets import FacetAggregator
from .highlighting import Highlighter
from .models import (
    DateRange,
    Facets,
    FacetValue,
    Highlight,
    LocationFilter,
    MediaType,
    SearchFilters,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SortBy,
    create_empty_response,
)
from .query import NaturalLanguageProcessor, ProcessedQuery, build_search_query
from .ranking import FieldWeights, RelevanceScorer
from .suggestions import SuggestionGenerator

__all__ = [
    # Engine
    "SearchEngine",
    "SearchEngineBuilder",
    "create_engine",
    "create_memory_engine",
    "create_store",
    # Components
    "FacetAggregator",
    "FieldWeights",
    "Highlighter",
    "NaturalLanguageProcessor",
    "ProcessedQuery",
    "RelevanceScorer",
    "SuggestionGenerator",
    "build_search_query",
    # Models
    "DateRange",
    "Facets",
    "FacetValue",
    "Highlight",
    "LocationFilter",
    "MediaType",
    "SearchFilters",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
    "SortBy",
    "create_empty_response",
    # Analytics
    "ClickedResult",
    "PopularSearch",
    "SearchAnalytics",
    "SearchLog",
    "SearchOverview",
]
