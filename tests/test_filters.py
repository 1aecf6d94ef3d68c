"""Tests for RediSearch clause construction."""

from datetime import datetime, timezone

from search_service.retrievers.filters import (
    DOCUMENT_TEXT_FIELDS,
    URL_TEXT_FIELDS,
    document_filter_expression,
    escape_value,
    fuzzy_clause,
    lexical_tokens,
    url_filter_expression,
)
from search_service.schemas import DateRange, SearchFilters


def test_fuzzy_clause_groups_tokens_per_field():
    """Test fuzzy terms are grouped per text field."""
    assert fuzzy_clause("series a", DOCUMENT_TEXT_FIELDS) == (
        "(@title:(%%series%% %%a%%)|@content:(%%series%% %%a%%))"
    )
    assert fuzzy_clause("canada", URL_TEXT_FIELDS) == "(@url:(%%canada%%)|@page_title:(%%canada%%))"


def test_fuzzy_clause_drops_punctuation():
    """Test punctuation never reaches the fuzzy clause."""
    assert lexical_tokens("Series A's (2024)!") == ["Series", "A", "s", "2024"]
    assert fuzzy_clause("!!! ???", DOCUMENT_TEXT_FIELDS) == "*"
    assert fuzzy_clause("", DOCUMENT_TEXT_FIELDS) == "*"


def test_escape_value():
    """Test RediSearch special characters are escaped."""
    assert escape_value("foo-bar") == "foo\\-bar"
    assert escape_value("a b") == "a\\ b"
    assert escape_value(" plain ") == "plain"


def test_no_filters():
    """Test absent filters produce no expression."""
    assert document_filter_expression(None) is None
    assert document_filter_expression(SearchFilters()) is None
    assert url_filter_expression(SearchFilters()) is None


def test_date_range_filter():
    """Test date ranges become publishedDate bounds."""
    filters = SearchFilters(date_range=DateRange(
        start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end=datetime(2024, 2, 1),
    ))
    assert document_filter_expression(filters) == (
        "@publishedDate:[1704067200000 +inf] @publishedDate:[-inf 1706745600000]"
    )


def test_open_ended_date_range():
    """Test one-sided date ranges."""
    filters = SearchFilters(date_range=DateRange(end=datetime(2024, 2, 1, tzinfo=timezone.utc)))
    assert document_filter_expression(filters) == "@publishedDate:[-inf 1706745600000]"


def test_classification_values_are_ored():
    """Test classification values are OR'd."""
    filters = SearchFilters(classification=["news", "blog"])
    assert document_filter_expression(filters) == "(@classification:news|@classification:blog)"


def test_excluded_terms_negate_every_field():
    """Test excluded terms are negated on every text field."""
    filters = SearchFilters(exclude_terms=["crypto", "web-3"])
    assert document_filter_expression(filters) == (
        "-@title:crypto -@content:crypto -@title:web\\-3 -@content:web\\-3"
    )


def test_combined_filters_from_camel_case_input():
    """Test filters parsed from camelCase input combine."""
    filters = SearchFilters.model_validate({
        "dateRange": {"start": "2024-01-01T00:00:00Z"},
        "classification": ["news"],
        "excludeTerms": ["crypto"],
    })
    assert document_filter_expression(filters) == (
        "@publishedDate:[1704067200000 +inf] (@classification:news) -@title:crypto -@content:crypto"
    )


def test_url_filters_only_apply_exclusions():
    """Test URL search applies exclusions only."""
    filters = SearchFilters(
        date_range=DateRange(start=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        classification=["news"],
        exclude_terms=["login"],
    )
    assert url_filter_expression(filters) == "-@url:login -@page_title:login"
