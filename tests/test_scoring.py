"""Tests for the lexical and recency scorers."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from search_service.ranking.scoring import lexical_score, parse_timestamp, recency_score

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestLexicalScore:
    """Lexical match scoring."""

    def test_empty_inputs_score_zero(self):
        """Test empty text or query scores zero."""
        assert lexical_score("", "query") == 0.0
        assert lexical_score("text", "") == 0.0
        assert lexical_score(None, "query") == 0.0

    def test_exact_match_is_case_insensitive(self):
        """Test exact matches ignore case."""
        assert lexical_score("Series A Canada", "series a canada") == 1.0

    def test_substring_match_scales_with_coverage(self):
        """Test substring score grows with query coverage."""
        text = "series a funding in canada"
        score = lexical_score(text, "series a")
        assert score == pytest.approx(0.8 + 0.2 * len("series a") / len(text))
        assert 0.8 <= score <= 1.0
        assert lexical_score("series a round", "series a") > score

    def test_partial_token_overlap(self):
        """Test share of matched tokens."""
        assert lexical_score("the quick brown fox", "quick cat") == pytest.approx(0.5)

    def test_token_overlap_is_capped(self):
        # both tokens matched with a small gap: 1.0 + boost, capped
        assert lexical_score("canada startups raised series funding", "funding canada") == 0.7

    def test_proximity_boost(self):
        # 2 of 3 tokens matched, adjacent: 0.667 + 0.18 -> capped
        assert lexical_score("a b c d", "b c z") == 0.7
        # 2 of 4 tokens matched, far apart: no boost
        text = "alpha " + "filler " * 12 + "omega"
        assert lexical_score(text, "alpha omega missing absent") == pytest.approx(0.5)

    def test_whitespace_query_scores_zero(self):
        assert lexical_score("abc", "   ") == 0.0

    def test_scores_stay_in_unit_interval(self):
        """Test scores stay within [0, 1]."""
        pairs = [
            ("Recent funding rounds", "funding"),
            ("a", "a b c d e f"),
            ("one two three", "three two one"),
            ("x", "y"),
        ]
        for text, query in pairs:
            assert 0.0 <= lexical_score(text, query) <= 1.0


class TestParseTimestamp:
    """Timestamp parsing."""

    def test_epoch_milliseconds(self):
        """Test epoch milliseconds as int or string."""
        assert parse_timestamp(1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp("1704067200000") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_iso_strings(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2024, 1, 1)).tzinfo is not None

    def test_invalid_values(self):
        """Test unparseable timestamps yield None."""
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None
        assert parse_timestamp("") is None
        assert parse_timestamp("not-a-date") is None


class TestRecencyScore:
    """Recency decay."""

    def test_zero_bias_means_no_penalty(self):
        """Test zero bias scores every date 1.0."""
        for days in (0, 30, 365, 2000):
            assert recency_score(NOW - timedelta(days=days), 0, now=NOW) == 1.0

    def test_missing_or_invalid_timestamp_is_neutral(self):
        """Test missing dates score 0.5."""
        assert recency_score(None, 0.8, now=NOW) == 0.5
        assert recency_score("garbage", 0.8, now=NOW) == 0.5
        assert recency_score(None, 0, now=NOW) == 0.5

    def test_exponential_decay(self):
        """Test exponential decay over age."""
        assert recency_score(NOW - timedelta(days=73), 0.5, now=NOW) == pytest.approx(math.exp(-0.5))
        assert recency_score(NOW - timedelta(days=365), 1.0, now=NOW) == pytest.approx(math.exp(-5))

    def test_age_is_clamped_to_one_year(self):
        """Test ages beyond a year score as one year."""
        old = recency_score(NOW - timedelta(days=365), 1.0, now=NOW)
        ancient = recency_score(NOW - timedelta(days=3650), 1.0, now=NOW)
        assert old == ancient

    def test_future_dates_score_one(self):
        """Test future dates score 1.0."""
        assert recency_score(NOW + timedelta(days=10), 1.0, now=NOW) == 1.0

    def test_epoch_millisecond_input(self):
        published = int((NOW - timedelta(days=30)).timestamp() * 1000)
        assert recency_score(published, 1.0, now=NOW) == pytest.approx(math.exp(-5 * 30 / 365))

    def test_monotonically_non_increasing_with_age(self):
        """Test older documents never score higher."""
        scores = [recency_score(NOW - timedelta(days=d), 0.7, now=NOW) for d in range(0, 500, 25)]
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))

    def test_higher_bias_penalizes_more(self):
        """Test higher bias decays faster."""
        published = NOW - timedelta(days=100)
        assert recency_score(published, 0.9, now=NOW) < recency_score(published, 0.1, now=NOW)
