"""Tests for search request and response models."""

import pytest

from memsearch.exceptions import FilterError
from memsearch.search.models import (
    DateRange,
    Facets,
    FacetValue,
    LocationFilter,
    MediaType,
    SearchFilters,
    SearchResponse,
    SearchResult,
    SortBy,
    create_empty_response,
)


class TestSearchFilters:
    """Test filter decoding and merging."""

    def test_defaults(self):
        filters = SearchFilters()

        assert filters.sort_by == SortBy.RELEVANCE
        assert filters.limit is None
        assert filters.offset == 0
        assert not filters.has_structured_filters

    def test_from_dict(self):
        filters = SearchFilters.from_dict(
            {
                "date_range": {"start": "2020-01-01"},
                "location": {"city": "Lund"},
                "tags": ["lärare"],
                "media_type": "photos",
                "sort_by": "name_asc",
                "limit": 5,
            }
        )

        assert filters.date_range == DateRange(start="2020-01-01")
        assert filters.location == LocationFilter(city="Lund")
        assert filters.media_type == MediaType.PHOTOS
        assert filters.sort_by == SortBy.NAME_ASC
        assert filters.limit == 5
        assert filters.has_structured_filters

    def test_from_empty_dict(self):
        assert SearchFilters.from_dict(None) == SearchFilters()
        assert SearchFilters.from_dict({}) == SearchFilters()

    def test_invalid_values(self):
        with pytest.raises(FilterError, match="Invalid search filters"):
            SearchFilters.from_dict({"offset": -1})
        with pytest.raises(FilterError):
            SearchFilters.from_dict({"media_type": "paintings"})
        with pytest.raises(FilterError):
            SearchFilters.from_dict({"limit": "ten"})

    def test_to_dict_omits_defaults(self):
        filters = SearchFilters(organization="org-1", sort_by=SortBy.DATE_DESC)

        assert filters.to_dict() == {"organization": "org-1", "sort_by": "date_desc"}

    def test_empty_ranges_are_not_filters(self):
        filters = SearchFilters(date_range=DateRange(), location=LocationFilter())

        assert not filters.has_structured_filters

    def test_merge_fills_unset(self):
        own = SearchFilters(tags=["lärare"], limit=5)
        extracted = SearchFilters(
            date_range=DateRange(start="2020-01-01", end="2020-12-31"),
            location=LocationFilter(city="Austin"),
            tags=["teacher"],
            limit=50,
        )

        merged = own.merge(extracted)

        assert merged.tags == ["lärare"]
        assert merged.date_range.start == "2020-01-01"
        assert merged.location.city == "Austin"
        assert merged.limit == 5

    def test_merge_keeps_own_values(self):
        own = SearchFilters(location=LocationFilter(city="Lund"))

        merged = own.merge(SearchFilters(location=LocationFilter(city="Austin")))

        assert merged.location.city == "Lund"


class TestResponseModels:
    """Test result and response helpers."""

    def test_negative_score_clamped(self, make_memorial):
        from memsearch.core.models import MemorialDocument

        document = MemorialDocument.from_record(make_memorial("a", "Anna"))

        assert SearchResult(document, -2.0).score == 0.0

    def test_facets(self):
        facets = Facets(tags=[FacetValue("lärare", 2)])

        assert not facets.is_empty
        assert facets.get_value_count("tags", "lärare") == 2
        assert facets.get_value_count("tags", "musiker") == 0
        assert Facets.empty().is_empty
        assert str(facets.tags[0]) == "lärare (2)"

    def test_has_more(self):
        response = SearchResponse(
            results=[], total=5, filters=SearchFilters(limit=2, offset=4)
        )

        assert response.has_more
        assert response.top_hit is None

    def test_empty_response(self):
        filters = SearchFilters(limit=3)

        response = create_empty_response("anna", filters)

        assert response.total == 0
        assert not response.has_results
        assert response.filters is filters
        assert response.query == "anna"
