"""
Fallback Data Provider - deterministic synthetic data for demo and degraded mode.

Used when a client never connected a provider, or when the live call for a
connected provider failed. The output:

- depends only on (provider, request): the RNG is seeded from a SHA-256 of
  both, so a dashboard shows the same numbers on every reload
- has exactly the live shape: listing entries carry the same keys, and
  metrics, rankings and reviews go through the same aggregation builders
  as live data

Nothing here performs I/O.
"""

import hashlib
import random
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Union

from practice_connect.environments import aggregation
from practice_connect.environments.registry import Provider, get_provider, listing_resource_for
from practice_connect.schemas.provider_data import (
    REVIEWS_RESOURCE,
    DataRequest,
    parse_data_request,
)


DEMO_PRACTICE_NAMES = (
    "Bright Smile Dental",
    "Riverside Family Dentistry",
    "Oak Park Orthodontics",
)


def _rng(provider: Provider, request: DataRequest) -> random.Random:
    digest = hashlib.sha256(f"{provider.value}|{request.canonical()}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


# ---------------------------------------------------------------------------
# LISTINGS
# ---------------------------------------------------------------------------

def _demo_listing(provider: Provider, rng: random.Random) -> List[Dict[str, Any]]:
    count = rng.randint(1, len(DEMO_PRACTICE_NAMES))
    entries = []
    for name in DEMO_PRACTICE_NAMES[:count]:
        slug = name.lower().replace(" ", "-")
        if provider == Provider.GA4:
            entries.append({
                "id": str(rng.randint(100000000, 999999999)),
                "displayName": f"{name} - GA4",
                "accountName": name,
            })
        elif provider == Provider.GSC:
            entries.append({
                "id": f"https://www.{slug}.example/",
                "displayName": f"https://www.{slug}.example/",
                "permissionLevel": "siteOwner",
            })
        else:
            account = f"accounts/{rng.randint(10**17, 10**18 - 1)}"
            entries.append({
                "id": f"{account}/locations/{rng.randint(10**17, 10**18 - 1)}",
                "displayName": name,
                "accountName": account,
            })
    return entries


# ---------------------------------------------------------------------------
# METRICS
# ---------------------------------------------------------------------------

def _demo_row(provider: Provider, day, rng: random.Random) -> aggregation.Row:
    if provider == Provider.GA4:
        total_users = rng.randint(40, 220)
        sessions = int(total_users * rng.uniform(1.1, 1.6))
        return aggregation.ga4_row(
            day,
            total_users=total_users,
            new_users=int(total_users * rng.uniform(0.5, 0.8)),
            sessions=sessions,
            engagement_rate=rng.uniform(0.45, 0.75),
            conversions=rng.randint(0, 12),
            avg_session_duration=rng.uniform(60, 240),
            bounce_rate=rng.uniform(0.25, 0.55),
            pages_per_session=rng.uniform(1.5, 4.0),
        )

    if provider == Provider.GSC:
        impressions = rng.randint(300, 2500)
        ctr = rng.uniform(0.01, 0.08)
        return aggregation.gsc_row(
            day,
            clicks=int(impressions * ctr),
            impressions=impressions,
            ctr=ctr,
            position=rng.uniform(3.0, 25.0),
        )

    return aggregation.gbp_row(
        day,
        views=rng.randint(50, 400),
        phone_calls=rng.randint(0, 15),
        website_clicks=rng.randint(0, 25),
        direction_requests=rng.randint(0, 20),
    )


# ---------------------------------------------------------------------------
# RANKINGS & REVIEWS
# ---------------------------------------------------------------------------

DEMO_QUERIES = (
    "dentist near me",
    "emergency dentist",
    "teeth whitening cost",
    "invisalign consultation",
    "dental implants",
    "pediatric dentist",
    "root canal treatment",
    "dental cleaning price",
    "same day crown",
    "wisdom teeth removal",
    "cosmetic dentistry",
    "dentist open saturday",
)

DEMO_PAGES = (
    "/",
    "/services/teeth-whitening",
    "/services/dental-implants",
    "/services/invisalign",
    "/emergency-dentist",
    "/new-patients",
    "/about-us",
    "/contact",
    "/blog/how-often-should-you-see-a-dentist",
    "/insurance-and-financing",
)

DEMO_REVIEWERS = ("Maria G.", "James T.", "Priya K.", "Daniel R.", "Sophie L.", "Omar H.")

DEMO_REVIEW_COMMENTS = {
    5: ("Friendly staff and a painless cleaning.", "Best dental experience I have had."),
    4: ("Great care, the wait was a little long.", "Very thorough, would recommend."),
    3: ("Good treatment but hard to get an appointment.",),
    2: ("Billing was confusing.",),
    1: ("Appointment was rescheduled twice.",),
}

# Days before the window that demo reviews may date back to
REVIEW_HISTORY_DAYS = 180


def _site_base(target: str) -> str:
    if target.startswith("sc-domain:"):
        return f"https://{target.split(':', 1)[1]}"
    return target.rstrip("/")


def _demo_ranking(request: DataRequest, rng: random.Random) -> Dict[str, Any]:
    dimension = aggregation.RANKING_DIMENSIONS[request.resource]
    if dimension == "query":
        keys = list(DEMO_QUERIES)
    else:
        base = _site_base(request.target)
        keys = [f"{base}{path}" for path in DEMO_PAGES]

    days = (request.end_date - request.start_date).days + 1
    entries = []
    for key in keys:
        impressions = rng.randint(20, 120) * days
        entries.append({
            dimension: key,
            "clicks": int(impressions * rng.uniform(0.005, 0.09)),
            "impressions": impressions,
            "position": rng.uniform(1.5, 30.0),
        })

    return aggregation.build_ranking_payload(
        dimension, request.target, request.start_date, request.end_date, entries, request.limit
    )


def _demo_reviews(request: DataRequest, rng: random.Random) -> List[aggregation.Row]:
    first_day = request.start_date - timedelta(days=REVIEW_HISTORY_DAYS)
    span = (request.end_date - first_day).days

    reviews = []
    for _ in range(rng.randint(8, 30)):
        rating = rng.choices((5, 4, 3, 2, 1), weights=(60, 25, 8, 4, 3))[0]
        day = first_day + timedelta(days=rng.randint(0, span))
        reviews.append(aggregation.review_entry(
            f"{request.target}/reviews/{rng.getrandbits(48):012x}",
            rating=rating,
            author=rng.choice(DEMO_REVIEWERS),
            comment=rng.choice(DEMO_REVIEW_COMMENTS[rating]),
            created_at=datetime.combine(day, time(rng.randint(8, 20)), tzinfo=timezone.utc),
            replied=rng.random() < 0.6,
        ))
    return reviews


def generate(
    provider: Union[str, Provider],
    request: Union[DataRequest, Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Synthetic data for one provider request.

    Args:
        provider: Provider the data pretends to come from
        request: The request that would have gone to the live API

    Returns:
        Payload shaped exactly like the live client's ``data``

    Raises:
        UnsupportedProvider: Unknown provider
        InvalidRequest: Malformed request
    """
    provider = get_provider(provider)
    request = parse_data_request(request)
    rng = _rng(provider, request)

    if not request.is_period:
        return {listing_resource_for(provider): _demo_listing(provider, rng)}

    if request.resource in aggregation.RANKING_DIMENSIONS:
        return _demo_ranking(request, rng)

    if request.resource == REVIEWS_RESOURCE:
        return aggregation.build_reviews_payload(
            request.target,
            request.start_date,
            request.end_date,
            _demo_reviews(request, rng),
            limit=request.limit,
        )

    rows = []
    day = request.start_date
    while day <= request.end_date:
        rows.append(_demo_row(provider, day, rng))
        day += timedelta(days=1)

    review_summary = None
    if provider == Provider.GBP:
        review_summary = aggregation.summarize_reviews(
            _demo_reviews(request, rng), request.start_date, request.end_date
        )

    return aggregation.build_metrics_payload(
        provider,
        request.target,
        request.start_date,
        request.end_date,
        rows,
        review_summary=review_summary,
    )
