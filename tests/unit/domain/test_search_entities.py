"""
Tests for search requests, results and paginated responses.

Testing:
- Mode and sponsorship filter parsing
- Request validation
- Pagination arithmetic
- Ranking tie-break and sponsorship post-filter
"""

import math

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from candidate_search.domain.entities.search import (
    SearchMode,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SponsorshipFilter,
    apply_sponsorship_filter,
    rank_results,
)
from candidate_search.domain.exceptions import ValidationError
from tests.fixtures.candidate_fixtures import make_snapshot


def _result(candidate_id, first, last, score, needs_sponsorship=False):
    return SearchResult(
        candidate=make_snapshot(candidate_id, first, last, needs_sponsorship=needs_sponsorship),
        score=score,
        strategy="name_match",
    )


class TestSearchMode:
    """Test search mode parsing."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("nameMatch", SearchMode.NAME_MATCH),
            ("NAMEMATCH", SearchMode.NAME_MATCH),
            ("semantic", SearchMode.SEMANTIC),
            ("Hybrid", SearchMode.HYBRID),
            ("auto", SearchMode.AUTO),
            (None, SearchMode.AUTO),
        ],
    )
    def test_parse(self, raw, expected):
        assert SearchMode.parse(raw) is expected

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            SearchMode.parse("fuzzy")

    def test_auto_is_not_concrete(self):
        assert not SearchMode.AUTO.is_concrete
        assert SearchMode.SEMANTIC.is_concrete


class TestSponsorshipFilter:
    """Test sponsorship filter semantics."""

    def test_blank_means_no_filter(self):
        assert SponsorshipFilter.parse(None) is None
        assert SponsorshipFilter.parse("  ") is None

    def test_unknown_value_rejected(self):
        with pytest.raises(ValidationError):
            SponsorshipFilter.parse("maybe")

    def test_yes_keeps_only_candidates_needing_sponsorship(self):
        assert SponsorshipFilter.YES.matches(True)
        assert not SponsorshipFilter.YES.matches(False)

    def test_no_keeps_only_candidates_not_needing_sponsorship(self):
        assert SponsorshipFilter.NO.matches(False)
        assert not SponsorshipFilter.NO.matches(True)

    def test_all_is_not_restrictive(self):
        assert not SponsorshipFilter.ALL.is_restrictive
        assert SponsorshipFilter.ALL.matches(True)
        assert SponsorshipFilter.ALL.matches(False)

    def test_apply_filter_to_results(self):
        results = [
            _result("1", "Ann", "Able", 0.9, needs_sponsorship=True),
            _result("2", "Bob", "Baker", 0.8, needs_sponsorship=False),
        ]

        assert [r.candidate_id for r in apply_sponsorship_filter(results, SponsorshipFilter.YES)] == ["1"]
        assert [r.candidate_id for r in apply_sponsorship_filter(results, SponsorshipFilter.NO)] == ["2"]
        assert len(apply_sponsorship_filter(results, SponsorshipFilter.ALL)) == 2
        assert len(apply_sponsorship_filter(results, None)) == 2


class TestSearchRequest:
    """Test request validation."""

    def test_defaults(self):
        request = SearchRequest(term="John")

        assert request.page == 1
        assert request.page_size == 20
        assert request.mode is SearchMode.AUTO
        assert request.sponsorship_filter is None
        assert request.effective_tenant_id == "GLOBAL"

    @pytest.mark.parametrize("page", [0, -1])
    def test_invalid_page(self, page):
        with pytest.raises(ValidationError):
            SearchRequest(term="x", page=page)

    @pytest.mark.parametrize("page_size", [0, -5])
    def test_invalid_page_size(self, page_size):
        with pytest.raises(ValidationError):
            SearchRequest(term="x", page_size=page_size)

    def test_invalid_filter(self):
        with pytest.raises(ValidationError):
            SearchRequest(term="x", sponsorship_filter="sometimes")

    def test_string_values_are_parsed(self):
        request = SearchRequest(term="x", mode="hybrid", sponsorship_filter="yes", tenant_id="acme")

        assert request.mode is SearchMode.HYBRID
        assert request.sponsorship_filter is SponsorshipFilter.YES
        assert request.has_restrictive_filter
        assert request.effective_tenant_id == "acme"

    def test_offset(self):
        assert SearchRequest(term="x", page=3, page_size=10).offset == 20

    def test_with_mode_keeps_other_fields(self):
        request = SearchRequest(term="x", page=2, page_size=5, sponsorship_filter="no")
        resolved = request.with_mode(SearchMode.SEMANTIC)

        assert resolved.mode is SearchMode.SEMANTIC
        assert (resolved.term, resolved.page, resolved.page_size) == ("x", 2, 5)
        assert resolved.sponsorship_filter is SponsorshipFilter.NO


class TestSearchResponse:
    """Test pagination metadata."""

    def test_middle_page(self):
        request = SearchRequest(term="x", page=2, page_size=20)
        response = SearchResponse.for_request(request, [], 45, "semantic")

        assert response.total_pages == 3
        assert response.has_next_page is True
        assert response.has_previous_page is True

    def test_empty_response(self):
        response = SearchResponse.empty(SearchRequest(term=""), "semantic")

        assert response.total_count == 0
        assert response.total_pages == 0
        assert response.has_next_page is False
        assert response.has_previous_page is False

    def test_restrictive_filter_marks_total_as_upper_bound(self):
        filtered = SearchResponse.for_request(
            SearchRequest(term="x", sponsorship_filter="yes"), [], 10, "name_match"
        )
        unfiltered = SearchResponse.for_request(
            SearchRequest(term="x", sponsorship_filter="all"), [], 10, "name_match"
        )

        assert filtered.total_is_upper_bound is True
        assert unfiltered.total_is_upper_bound is False

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        total=st.integers(min_value=0, max_value=10_000),
        page=st.integers(min_value=1, max_value=600),
        page_size=st.integers(min_value=1, max_value=200),
    )
    def test_pagination_arithmetic(self, total, page, page_size):
        request = SearchRequest(term="x", page=page, page_size=page_size)
        response = SearchResponse.for_request(request, [], total, "semantic")

        assert response.total_pages == math.ceil(total / page_size)
        assert response.has_next_page == (page < response.total_pages)
        assert response.has_previous_page == (page > 1)


class TestRanking:
    """Test result ordering."""

    def test_score_descending_then_name_tie_break(self):
        results = [
            _result("c", "Zed", "Smith", 0.5),
            _result("b", "Amy", "Smith", 0.5),
            _result("a", "Bea", "Adams", 0.5),
            _result("d", "Top", "Zulu", 0.9),
            _result("e", "Amy", "smith", 0.5),
        ]

        ranked = rank_results(results)

        assert [r.candidate_id for r in ranked] == ["d", "a", "b", "e", "c"]
