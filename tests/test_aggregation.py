"""
Tests for metrics aggregation.

Tests cover:
- Trend detection (midpoint split, ±5 % threshold, degenerate halves)
- Per-row scores
- Period summaries and the metrics payload shape
- Rankings (merging, ordering, limit)
- Review totals and the reviews component of the GBP score
"""

from datetime import date, datetime, time, timedelta, timezone

from practice_connect.environments.aggregation import (
    build_metrics_payload,
    build_ranking_payload,
    build_reviews_payload,
    compute_trend,
    gbp_row,
    gsc_row,
    gsc_score,
    review_entry,
    review_score,
    summarize_ga4,
    summarize_gbp,
    summarize_gsc,
    summarize_reviews,
)
from practice_connect.environments.registry import Provider


START = date(2025, 1, 1)


def gsc_rows(clicks):
    return [
        gsc_row(START + timedelta(days=i), clicks=c, impressions=1000, ctr=0.05, position=4.0)
        for i, c in enumerate(clicks)
    ]


class TestComputeTrend:
    """Tests for compute_trend."""

    def test_upward_trend(self):
        """Should report up when the second half grows by more than 5 %."""
        assert compute_trend([10, 10, 20, 20], use_average=False) == ("up", 100.0)

    def test_downward_trend_reports_absolute_change(self):
        """Should report down with a positive changePercent."""
        assert compute_trend([20, 20, 10, 10], use_average=False) == ("down", 50.0)

    def test_small_change_is_stable(self):
        """Should stay stable within the 5 % threshold."""
        trend, change = compute_trend([100, 100, 104, 104], use_average=True)

        assert trend == "stable"
        assert change == 4.0

    def test_odd_length_uses_averages(self):
        """Should put the extra day in the second half and compare averages."""
        # first half [10], second half [10, 13] -> avg 11.5 -> +15 %
        assert compute_trend([10, 10, 13], use_average=True) == ("up", 15.0)

    def test_single_value_is_stable(self):
        """Should not compute a trend without two halves."""
        assert compute_trend([42], use_average=True) == ("stable", 0.0)
        assert compute_trend([], use_average=True) == ("stable", 0.0)

    def test_zero_first_half_is_stable(self):
        """Should not divide by zero when the first half is empty of activity."""
        assert compute_trend([0, 0, 5, 5], use_average=False) == ("stable", 0.0)


class TestScores:
    """Tests for per-row scores."""

    def test_gsc_score_is_capped(self):
        row = {"impressions": 50000, "clicks": 5000, "ctr": 1.0, "position": 1.0}
        assert gsc_score(row) == 100

    def test_gsc_score_treats_missing_position_as_worst(self):
        row = {"impressions": 0, "clicks": 0, "ctr": 0.0, "position": 0}
        assert gsc_score(row) == 0

    def test_gbp_score_counts_views_and_actions(self):
        row = gbp_row(START, views=100, phone_calls=10, website_clicks=10, direction_requests=5)
        # 25 for views + 25/50*30 for actions
        assert row["score"] == 40


class TestSummaries:
    """Tests for period summaries."""

    def test_empty_rows_summarize_to_zero(self):
        """Should return a zeroed, stable summary for every provider."""
        for summarize in (summarize_ga4, summarize_gsc, summarize_gbp):
            summary = summarize([])
            assert summary["trend"] == "stable"
            assert summary["changePercent"] == 0.0
            assert summary["calculatedScore"] == 0

    def test_gsc_summary_totals(self):
        summary = summarize_gsc(gsc_rows([10, 10, 20, 20]))

        assert summary["totalClicks"] == 60
        assert summary["totalImpressions"] == 4000
        assert summary["averageCTR"] == 5.0
        assert summary["averagePosition"] == 4.0
        assert summary["trend"] == "up"

    def test_gbp_summary_totals(self):
        rows = [
            gbp_row(START, views=100, phone_calls=1, website_clicks=2, direction_requests=3),
            gbp_row(START + timedelta(days=1), views=80, phone_calls=2, website_clicks=0, direction_requests=1),
        ]
        summary = summarize_gbp(rows)

        assert summary["totalViews"] == 180
        assert summary["phoneCallsTotal"] == 3
        assert summary["websiteClicksTotal"] == 2
        assert summary["directionRequestsTotal"] == 4
        assert summary["trend"] == "down"
        assert summary["changePercent"] == 20.0


class TestMetricsPayload:
    """Tests for build_metrics_payload."""

    def test_rows_are_sorted_by_date(self):
        rows = list(reversed(gsc_rows([1, 2, 3])))
        payload = build_metrics_payload(
            Provider.GSC, "https://example.com/", START, START + timedelta(days=2), rows
        )

        assert [row["date"] for row in payload["rows"]] == [
            "2025-01-01", "2025-01-02", "2025-01-03",
        ]
        assert payload["target"] == "https://example.com/"
        assert payload["startDate"] == "2025-01-01"
        assert payload["endDate"] == "2025-01-03"
        assert set(payload) == {"target", "startDate", "endDate", "rows", "summary"}


class TestRankingPayload:
    """Tests for build_ranking_payload."""

    def test_merges_repeated_keys_and_ranks(self):
        entries = [
            {"query": "a", "clicks": 5, "impressions": 100, "position": 2.0},
            {"query": "b", "clicks": 9, "impressions": 300, "position": 6.0},
            {"query": "a", "clicks": 7, "impressions": 100, "position": 4.0},
            {"query": "c", "clicks": 9, "impressions": 0, "position": 1.0},
        ]

        payload = build_ranking_payload("query", "https://example.com/", START, START, entries)

        assert set(payload) == {"target", "startDate", "endDate", "queries"}
        assert payload["queries"][0] == {
            "query": "a", "clicks": 12, "impressions": 200, "ctr": 0.06, "avgPosition": 3.0,
        }
        # Equal clicks fall back to key order
        assert [q["query"] for q in payload["queries"]] == ["a", "b", "c"]
        assert payload["queries"][2]["ctr"] == 0.0

    def test_limit(self):
        entries = [
            {"page": f"/p{i}", "clicks": i, "impressions": 10, "position": 1.0}
            for i in range(15)
        ]

        assert len(build_ranking_payload("page", "x", START, START, entries)["pages"]) == 10
        assert [p["page"] for p in build_ranking_payload("page", "x", START, START, entries, limit=2)["pages"]] == [
            "/p14", "/p13",
        ]


def review(day, rating, hour=12):
    return review_entry(
        f"accounts/1/locations/55/reviews/{day.isoformat()}-{hour}",
        rating=rating,
        author="Maria G.",
        comment="",
        created_at=datetime.combine(day, time(hour), tzinfo=timezone.utc),
        replied=False,
    )


class TestReviews:
    """Tests for review totals and the reviews payload."""

    def test_summary_computed_from_reviews(self):
        reviews = [
            review(START - timedelta(days=30), 5),
            review(START, 4),
            review(START + timedelta(days=6), 3),
            review(START + timedelta(days=7), 0),
        ]

        summary = summarize_reviews(reviews, START, START + timedelta(days=6))

        # The unrated review counts towards the total, not the average
        assert summary == {"averageRating": 4.0, "totalReviews": 4, "newReviews": 2}

    def test_summary_prefers_google_totals(self):
        summary = summarize_reviews([review(START, 1)], START, START, average_rating=4.666, total_reviews=80)

        assert summary == {"averageRating": 4.67, "totalReviews": 80, "newReviews": 1}

    def test_review_entry_time_is_utc(self):
        created = datetime(2025, 1, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))

        entry = review_entry("r", 5, "a", "", created, True)

        assert entry["createTime"] == "2025-01-01T07:30:00Z"

    def test_payload_newest_first_with_limit(self):
        reviews = [review(START + timedelta(days=i), 5) for i in range(5)]

        payload = build_reviews_payload("accounts/1/locations/55", START, START, reviews, limit=2)

        assert [r["createTime"][:10] for r in payload["reviews"]] == ["2025-01-05", "2025-01-04"]
        assert payload["summary"]["totalReviews"] == 5
        assert payload["summary"]["newReviews"] == 1

    def test_review_score(self):
        assert review_score(None) == 0
        assert review_score({"averageRating": 4.0, "totalReviews": 10, "newReviews": 0}) == 17
        # Volume saturates at 20 reviews
        assert review_score({"averageRating": 5.0, "totalReviews": 500, "newReviews": 0}) == 25

    def test_gbp_summary_adds_review_score(self):
        rows = [gbp_row(START, views=100, phone_calls=1, website_clicks=2, direction_requests=3)]
        reviews = {"averageRating": 4.0, "totalReviews": 10, "newReviews": 2}

        plain = summarize_gbp(rows)
        with_reviews = summarize_gbp(rows, reviews)

        assert plain["totalReviews"] == 0
        assert with_reviews["calculatedScore"] == min(plain["calculatedScore"] + 17, 100)
        assert with_reviews["averageRating"] == 4.0
        assert with_reviews["newReviews"] == 2
