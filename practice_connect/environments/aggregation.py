"""
Metrics Aggregation - provider-agnostic daily rows and period summaries.

Both the live Google clients and the synthetic fallback build their
``metrics``, ranking and review payloads through this module, so a
dashboard can never tell the two apart by shape.

Row Shapes (one row per day, ISO dates):
========================================
- ga4: date, totalUsers, newUsers, sessions, engagementRate, conversions,
       avgSessionDuration, bounceRate, pagesPerSession, score
- gsc: date, clicks, impressions, ctr, position, score
- gbp: date, views, phoneCalls, websiteClicks, directionRequests, score

The GBP summary also carries averageRating, totalReviews and newReviews.

Other Payloads:
===============
- top-queries / top-pages (gsc): {query|page, clicks, impressions, ctr, avgPosition}
- reviews (gbp): {id, rating, author, comment, createTime, replied} plus a summary

Trend Rule:
===========
Rows are split at the midpoint (first half gets the smaller share for odd
counts). ``changePercent`` is the relative change of the second half
against the first; beyond ±5 % the trend is "up"/"down", otherwise
"stable". ``changePercent`` is reported as an absolute value with one
decimal.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from practice_connect.environments.registry import Provider


TREND_THRESHOLD_PERCENT = 5.0

Row = Dict[str, Any]


def compute_trend(values: Sequence[float], use_average: bool) -> Tuple[str, float]:
    """
    Compare the first and second half of a series.

    Args:
        values: Daily values in date order
        use_average: Compare half averages (ga4, gbp) instead of sums (gsc)

    Returns:
        (trend, changePercent)
    """
    midpoint = len(values) // 2
    first_half = values[:midpoint]
    second_half = values[midpoint:]

    if not first_half or not second_half:
        return "stable", 0.0

    first = sum(first_half)
    second = sum(second_half)
    if use_average:
        first /= len(first_half)
        second /= len(second_half)

    change = ((second - first) / first) * 100 if first > 0 else 0.0

    trend = "stable"
    if change > TREND_THRESHOLD_PERCENT:
        trend = "up"
    elif change < -TREND_THRESHOLD_PERCENT:
        trend = "down"

    return trend, round(abs(change), 1)


def _mean(rows: Sequence[Row], key: str) -> float:
    return sum(row.get(key, 0) or 0 for row in rows) / len(rows)


# ---------------------------------------------------------------------------
# PER-ROW SCORES (0-100)
# ---------------------------------------------------------------------------

def ga4_score(row: Row) -> int:
    score = 0.0
    score += min(row["engagementRate"] * 100 * 0.4, 40)
    score += min(row["conversions"] * 2, 30)
    # Lower bounce rate is better
    score += max(20 - (row["bounceRate"] * 100 * 0.2), 0)
    score += min(row["pagesPerSession"] * 3, 10)
    return round(min(score, 100))


def gsc_score(row: Row) -> int:
    score = 0.0
    score += min(row["impressions"] / 1000 * 20, 20)
    score += min(row["clicks"] / 100 * 30, 30)
    score += min(row["ctr"] * 100 * 0.25, 25)
    # Lower position is better; no position counts as 100
    position = row["position"] or 100
    score += max(25 - (position - 1) * 2.5, 0)
    return round(min(score, 100))


def gbp_score(row: Row) -> int:
    # Reviews are scored once per period (review_score); photos and posts are not tracked
    score = 0.0
    score += min(row["views"] / 100 * 25, 25)
    actions = row["phoneCalls"] + row["websiteClicks"] + row["directionRequests"]
    score += min(actions / 50 * 30, 30)
    return round(min(score, 100))


# ---------------------------------------------------------------------------
# ROW BUILDERS
# ---------------------------------------------------------------------------

def ga4_row(
    day: date,
    total_users: int,
    new_users: int,
    sessions: int,
    engagement_rate: float,
    conversions: int,
    avg_session_duration: float,
    bounce_rate: float,
    pages_per_session: float,
) -> Row:
    row = {
        "date": day.isoformat(),
        "totalUsers": total_users,
        "newUsers": new_users,
        "sessions": sessions,
        "engagementRate": round(engagement_rate, 4),
        "conversions": conversions,
        "avgSessionDuration": round(avg_session_duration, 2),
        "bounceRate": round(bounce_rate, 4),
        "pagesPerSession": round(pages_per_session, 2),
    }
    row["score"] = ga4_score(row)
    return row


def gsc_row(day: date, clicks: int, impressions: int, ctr: float, position: float) -> Row:
    row = {
        "date": day.isoformat(),
        "clicks": clicks,
        "impressions": impressions,
        "ctr": round(ctr, 4),
        "position": round(position, 2),
    }
    row["score"] = gsc_score(row)
    return row


def gbp_row(
    day: date,
    views: int,
    phone_calls: int,
    website_clicks: int,
    direction_requests: int,
) -> Row:
    row = {
        "date": day.isoformat(),
        "views": views,
        "phoneCalls": phone_calls,
        "websiteClicks": website_clicks,
        "directionRequests": direction_requests,
    }
    row["score"] = gbp_score(row)
    return row


# ---------------------------------------------------------------------------
# SUMMARIES
# ---------------------------------------------------------------------------

def summarize_ga4(rows: Sequence[Row]) -> Dict[str, Any]:
    if not rows:
        return {
            "totalUsers": 0,
            "newUsers": 0,
            "sessions": 0,
            "engagementRate": 0.0,
            "conversions": 0,
            "avgSessionDuration": 0.0,
            "calculatedScore": 0,
            "trend": "stable",
            "changePercent": 0.0,
        }

    trend, change = compute_trend([row["totalUsers"] for row in rows], use_average=True)
    return {
        "totalUsers": sum(row["totalUsers"] for row in rows),
        "newUsers": sum(row["newUsers"] for row in rows),
        "sessions": sum(row["sessions"] for row in rows),
        # Percentage
        "engagementRate": round(_mean(rows, "engagementRate") * 100, 2),
        "conversions": sum(row["conversions"] for row in rows),
        "avgSessionDuration": round(_mean(rows, "avgSessionDuration"), 2),
        "calculatedScore": round(_mean(rows, "score")),
        "trend": trend,
        "changePercent": change,
    }


def summarize_gsc(rows: Sequence[Row]) -> Dict[str, Any]:
    if not rows:
        return {
            "totalImpressions": 0,
            "totalClicks": 0,
            "averageCTR": 0.0,
            "averagePosition": 0.0,
            "calculatedScore": 0,
            "trend": "stable",
            "changePercent": 0.0,
        }

    trend, change = compute_trend([row["clicks"] for row in rows], use_average=False)
    return {
        "totalImpressions": sum(row["impressions"] for row in rows),
        "totalClicks": sum(row["clicks"] for row in rows),
        "averageCTR": round(_mean(rows, "ctr") * 100, 2),
        "averagePosition": round(_mean(rows, "position"), 2),
        "calculatedScore": round(_mean(rows, "score")),
        "trend": trend,
        "changePercent": change,
    }


def review_score(review_summary: Optional[Dict[str, Any]]) -> int:
    """Reviews component of the GBP score (0-25): rating quality plus volume."""
    if not review_summary:
        return 0
    score = review_summary["averageRating"] / 5 * 15
    score += min(review_summary["totalReviews"] / 20 * 10, 10)
    return round(score)


def summarize_gbp(
    rows: Sequence[Row],
    review_summary: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    GBP period summary.

    ``review_summary`` (from summarize_reviews) adds the review totals and
    the reviews component of calculatedScore; without it they are zero.
    """
    reviews = review_summary or summarize_reviews([], None, None)

    if not rows:
        return {
            "totalViews": 0,
            "phoneCallsTotal": 0,
            "websiteClicksTotal": 0,
            "directionRequestsTotal": 0,
            **reviews,
            "calculatedScore": 0,
            "trend": "stable",
            "changePercent": 0.0,
        }

    trend, change = compute_trend([row["views"] for row in rows], use_average=True)
    return {
        "totalViews": sum(row["views"] for row in rows),
        "phoneCallsTotal": sum(row["phoneCalls"] for row in rows),
        "websiteClicksTotal": sum(row["websiteClicks"] for row in rows),
        "directionRequestsTotal": sum(row["directionRequests"] for row in rows),
        **reviews,
        "calculatedScore": min(round(_mean(rows, "score")) + review_score(review_summary), 100),
        "trend": trend,
        "changePercent": change,
    }


def build_metrics_payload(
    provider: Provider,
    target: str,
    start_date: date,
    end_date: date,
    rows: List[Row],
    review_summary: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """The ``metrics`` resource payload, identical for live and fallback data."""
    rows = sorted(rows, key=lambda row: row["date"])
    if provider == Provider.GBP:
        summary = summarize_gbp(rows, review_summary)
    elif provider == Provider.GSC:
        summary = summarize_gsc(rows)
    else:
        summary = summarize_ga4(rows)

    return {
        "target": target,
        "startDate": start_date.isoformat(),
        "endDate": end_date.isoformat(),
        "rows": rows,
        "summary": summary,
    }


# ---------------------------------------------------------------------------
# RANKINGS (GSC top-queries / top-pages)
# ---------------------------------------------------------------------------

# resource → Search Analytics dimension
RANKING_DIMENSIONS = {
    "top-queries": "query",
    "top-pages": "page",
}

# dimension → payload list key
RANKING_KEYS = {
    "query": "queries",
    "page": "pages",
}

DEFAULT_RANKING_LIMIT = 10


def build_ranking_payload(
    dimension: str,
    target: str,
    start_date: date,
    end_date: date,
    entries: Sequence[Row],
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Top entries of one dimension over a period.

    Entries carry ``{dimension, clicks, impressions, position}``. Repeated
    keys are merged (clicks and impressions summed, positions averaged),
    then ranked by clicks.

    Example output:
    {
        "target": "https://x.com/", "startDate": "...", "endDate": "...",
        "queries": [{"query": "dentist near me", "clicks": 40, "impressions": 900,
                     "ctr": 0.0444, "avgPosition": 3.2}]
    }
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        key = entry[dimension]
        if key in merged:
            merged[key]["clicks"] += entry["clicks"]
            merged[key]["impressions"] += entry["impressions"]
            merged[key]["positions"].append(entry["position"])
        else:
            merged[key] = {
                "clicks": entry["clicks"],
                "impressions": entry["impressions"],
                "positions": [entry["position"]],
            }

    ranked = [
        {
            dimension: key,
            "clicks": values["clicks"],
            "impressions": values["impressions"],
            "ctr": round(values["clicks"] / values["impressions"], 4) if values["impressions"] else 0.0,
            "avgPosition": round(sum(values["positions"]) / len(values["positions"]), 2),
        }
        for key, values in merged.items()
    ]
    # Ties broken by key so the order is stable
    ranked.sort(key=lambda row: (-row["clicks"], row[dimension]))

    return {
        "target": target,
        "startDate": start_date.isoformat(),
        "endDate": end_date.isoformat(),
        RANKING_KEYS[dimension]: ranked[:limit or DEFAULT_RANKING_LIMIT],
    }


# ---------------------------------------------------------------------------
# REVIEWS (GBP)
# ---------------------------------------------------------------------------

DEFAULT_REVIEW_LIMIT = 50


def review_entry(
    review_id: str,
    rating: int,
    author: str,
    comment: str,
    created_at: datetime,
    replied: bool,
) -> Row:
    return {
        "id": review_id,
        "rating": rating,
        "author": author,
        "comment": comment,
        "createTime": created_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        "replied": replied,
    }


def _review_time(review: Row) -> datetime:
    return datetime.fromisoformat(review["createTime"].replace("Z", "+00:00"))


def summarize_reviews(
    reviews: Sequence[Row],
    start_date: Optional[date],
    end_date: Optional[date],
    average_rating: Optional[float] = None,
    total_reviews: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Review totals for a period.

    ``average_rating`` and ``total_reviews`` come from Google when it reports
    them (they cover every review, not just the fetched pages); otherwise
    they are computed from ``reviews``. ``newReviews`` counts reviews created
    between the period dates, inclusive.
    """
    rated = [review["rating"] for review in reviews if review["rating"]]
    if average_rating is None:
        average_rating = sum(rated) / len(rated) if rated else 0.0
    if total_reviews is None:
        total_reviews = len(reviews)

    new_reviews = 0
    if start_date and end_date:
        new_reviews = sum(1 for review in reviews if start_date <= _review_time(review).date() <= end_date)

    return {
        "averageRating": round(average_rating, 2),
        "totalReviews": total_reviews,
        "newReviews": new_reviews,
    }


def build_reviews_payload(
    target: str,
    start_date: date,
    end_date: date,
    reviews: Sequence[Row],
    limit: Optional[int] = None,
    average_rating: Optional[float] = None,
    total_reviews: Optional[int] = None,
) -> Dict[str, Any]:
    """The ``reviews`` resource payload: newest reviews first, plus period totals."""
    newest_first = sorted(reviews, key=_review_time, reverse=True)
    return {
        "target": target,
        "startDate": start_date.isoformat(),
        "endDate": end_date.isoformat(),
        "reviews": newest_first[:limit or DEFAULT_REVIEW_LIMIT],
        "summary": summarize_reviews(
            reviews, start_date, end_date, average_rating, total_reviews
        ),
    }
