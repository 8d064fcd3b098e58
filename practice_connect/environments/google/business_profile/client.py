"""
Google Business Profile Client - locations, daily engagement metrics and reviews.

Resources:
==========
- locations: accounts from the Account Management API, then each account's
  locations from the Business Information API, every page of both. One
  attempt per request; any failed request fails the whole listing. Ids are
  account-qualified (accounts/{a}/locations/{l}) so they can be used for
  reviews.
- metrics: Business Profile Performance fetchMultiDailyMetricsTimeSeries
  for one location. For account-qualified targets the review totals come
  from the v4 reviews list; a bare locations/{l} target reports them as zero.
- reviews: v4 accounts.locations.reviews.list, every page, for an
  account-qualified location.

Metric Mapping:
===============
    BUSINESS_IMPRESSIONS_{DESKTOP,MOBILE}_{MAPS,SEARCH}  → views
    CALL_CLICKS                                          → phoneCalls
    WEBSITE_CLICKS                                       → websiteClicks
    BUSINESS_DIRECTION_REQUESTS                          → directionRequests
"""

import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from practice_connect.environments.aggregation import (
    Row,
    build_metrics_payload,
    build_reviews_payload,
    gbp_row,
    review_entry,
    summarize_reviews,
)
from practice_connect.environments.base import InvalidRequest
from practice_connect.environments.google.business_profile.schemas import (
    AccountsResponse,
    LocationsResponse,
    PerformanceResponse,
    ReviewsResponse,
)
from practice_connect.environments.google.data_client import GoogleDataClient
from practice_connect.environments.registry import Provider, api_base_url_for
from practice_connect.schemas.provider_data import REVIEWS_RESOURCE, DataRequest


logger = logging.getLogger("practice_connect.environments.google.business_profile")

# Accepts "locations/123" and "accounts/456/locations/123"
LOCATION_PATTERN = re.compile(r"^(accounts/[^/]+/)?(locations/\d+)$")

DAILY_METRICS = {
    "BUSINESS_IMPRESSIONS_DESKTOP_MAPS": "views",
    "BUSINESS_IMPRESSIONS_MOBILE_MAPS": "views",
    "BUSINESS_IMPRESSIONS_DESKTOP_SEARCH": "views",
    "BUSINESS_IMPRESSIONS_MOBILE_SEARCH": "views",
    "CALL_CLICKS": "phone_calls",
    "WEBSITE_CLICKS": "website_clicks",
    "BUSINESS_DIRECTION_REQUESTS": "direction_requests",
}

READ_MASK = "name,title,storefrontAddress"

# Largest page sizes each list endpoint accepts
ACCOUNTS_PAGE_SIZE = 20
LOCATIONS_PAGE_SIZE = 100
REVIEWS_PAGE_SIZE = 50


class BusinessProfileClient(GoogleDataClient):
    """GBP data client."""

    provider = Provider.GBP
    extra_resources = (REVIEWS_RESOURCE,)

    ACCOUNTS_URL = "https://mybusinessaccountmanagement.googleapis.com/v1/accounts"
    PERFORMANCE_URL = "https://businessprofileperformance.googleapis.com/v1"
    REVIEWS_URL = "https://mybusiness.googleapis.com/v4"

    @property
    def information_url(self) -> str:
        return api_base_url_for(self.provider)

    def _validate_target(self, request: DataRequest) -> None:
        match = LOCATION_PATTERN.match(request.target)
        if not match:
            raise InvalidRequest("GBP target must be a location resource name (locations/{id})")
        if request.resource == REVIEWS_RESOURCE and not match.group(1):
            raise InvalidRequest(
                "GBP reviews need an account-qualified location (accounts/{id}/locations/{id})"
            )

    async def _fetch_listing(self, access_token: str) -> List[Dict[str, Any]]:
        account_pages = await self._get_pages(
            self.ACCOUNTS_URL,
            access_token,
            AccountsResponse,
            params={"pageSize": ACCOUNTS_PAGE_SIZE},
        )
        accounts = [account for page in account_pages for account in page.accounts]

        locations = []
        for account in accounts:
            location_pages = await self._get_pages(
                f"{self.information_url}/{account.name}/locations",
                access_token,
                LocationsResponse,
                params={"readMask": READ_MASK, "pageSize": LOCATIONS_PAGE_SIZE},
            )
            for page in location_pages:
                for location in page.locations:
                    locations.append({
                        "id": f"{account.name}/{location.name}",
                        "displayName": location.title or location.name,
                        "accountName": account.account_name or account.name,
                    })

        logger.info(f"Fetched {len(locations)} GBP locations across {len(accounts)} accounts")
        return locations

    async def _fetch_metrics(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        rows = await self._fetch_metric_rows(access_token, request)

        review_summary = None
        if LOCATION_PATTERN.match(request.target).group(1):
            reviews, average_rating, total_reviews = await self._fetch_reviews(
                access_token, request.target
            )
            review_summary = summarize_reviews(
                reviews, request.start_date, request.end_date, average_rating, total_reviews
            )
        else:
            logger.debug(f"No account in {request.target}, review totals left at zero")

        return build_metrics_payload(
            self.provider,
            request.target,
            request.start_date,
            request.end_date,
            rows,
            review_summary=review_summary,
        )

    async def _fetch_metric_rows(self, access_token: str, request: DataRequest) -> List[Row]:
        location = LOCATION_PATTERN.match(request.target).group(2)
        start, end = request.start_date, request.end_date

        payload = await self._make_request(
            "GET",
            f"{self.PERFORMANCE_URL}/{location}:fetchMultiDailyMetricsTimeSeries",
            access_token,
            params={
                "dailyMetrics": list(DAILY_METRICS),
                "dailyRange.startDate.year": start.year,
                "dailyRange.startDate.month": start.month,
                "dailyRange.startDate.day": start.day,
                "dailyRange.endDate.year": end.year,
                "dailyRange.endDate.month": end.month,
                "dailyRange.endDate.day": end.day,
            },
        )
        response = self._parse(PerformanceResponse, payload)

        # date → gbp_row argument → running total
        days: Dict[Any, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for multi in response.multi_daily_metric_time_series:
            for series in multi.daily_metric_time_series:
                argument = DAILY_METRICS.get(series.daily_metric)
                if argument is None:
                    continue
                for dated in series.time_series.dated_values:
                    days[dated.date.to_date()][argument] += int(dated.value or 0)

        rows = [
            gbp_row(
                day,
                views=values["views"],
                phone_calls=values["phone_calls"],
                website_clicks=values["website_clicks"],
                direction_requests=values["direction_requests"],
            )
            for day, values in days.items()
        ]
        logger.info(f"Fetched {len(rows)} GBP daily rows for {location}")
        return rows

    async def _fetch_extra(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        reviews, average_rating, total_reviews = await self._fetch_reviews(
            access_token, request.target
        )
        return build_reviews_payload(
            request.target,
            request.start_date,
            request.end_date,
            reviews,
            limit=request.limit,
            average_rating=average_rating,
            total_reviews=total_reviews,
        )

    async def _fetch_reviews(
        self, access_token: str, location: str
    ) -> Tuple[List[Row], Optional[float], Optional[int]]:
        """
        Every review of an account-qualified location.

        Returns:
            (review entries, Google's averageRating, Google's totalReviewCount)
        """
        pages = await self._get_pages(
            f"{self.REVIEWS_URL}/{location}/reviews",
            access_token,
            ReviewsResponse,
            params={"pageSize": REVIEWS_PAGE_SIZE, "orderBy": "updateTime desc"},
        )

        reviews = [
            review_entry(
                review.name,
                rating=review.stars,
                author=review.reviewer.display_name or "Anonymous",
                comment=review.comment or "",
                created_at=review.create_time,
                replied=review.review_reply is not None,
            )
            for page in pages
            for review in page.reviews
        ]
        logger.info(f"Fetched {len(reviews)} GBP reviews for {location}")
        return reviews, pages[0].average_rating, pages[0].total_review_count
