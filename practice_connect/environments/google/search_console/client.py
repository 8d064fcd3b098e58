"""
Google Search Console Client - verified sites and daily search performance.

Resources:
==========
- sites: webmasters/v3/sites
- metrics: searchAnalytics/query grouped by date for one site
- top-queries, top-pages: searchAnalytics/query grouped by query or page,
  ranked by clicks

Site URLs are used as path segments, so they are percent-encoded in full
(``https://x.com/`` → ``https%3A%2F%2Fx.com%2F``).
"""

import logging
from datetime import date
from typing import Any, Dict, List
from urllib.parse import quote

from practice_connect.environments.aggregation import (
    DEFAULT_RANKING_LIMIT,
    RANKING_DIMENSIONS,
    Row,
    build_ranking_payload,
    gsc_row,
)
from practice_connect.environments.base import InvalidRequest
from practice_connect.environments.google.data_client import GoogleDataClient
from practice_connect.environments.google.search_console.schemas import (
    SearchAnalyticsResponse,
    SitesListResponse,
)
from practice_connect.environments.registry import Provider, api_base_url_for
from practice_connect.schemas.provider_data import (
    TOP_PAGES_RESOURCE,
    TOP_QUERIES_RESOURCE,
    DataRequest,
)


logger = logging.getLogger("practice_connect.environments.google.search_console")

SITE_PREFIXES = ("http://", "https://", "sc-domain:")

# Search Analytics returns at most 25k rows; a year of days fits easily
ROW_LIMIT = 1000


class SearchConsoleClient(GoogleDataClient):
    """GSC data client."""

    provider = Provider.GSC
    extra_resources = (TOP_QUERIES_RESOURCE, TOP_PAGES_RESOURCE)

    @property
    def base_url(self) -> str:
        return api_base_url_for(self.provider)

    def _validate_target(self, request: DataRequest) -> None:
        if not request.target.startswith(SITE_PREFIXES):
            raise InvalidRequest("GSC target must be a site URL or sc-domain property")

    async def _fetch_listing(self, access_token: str) -> List[Dict[str, Any]]:
        payload = await self._make_request("GET", f"{self.base_url}/sites", access_token)
        response = self._parse(SitesListResponse, payload)

        sites = [
            {
                "id": entry.site_url,
                "displayName": entry.site_url,
                "permissionLevel": entry.permission_level or "siteOwner",
            }
            for entry in response.site_entry
        ]
        logger.info(f"Fetched {len(sites)} GSC sites")
        return sites

    async def _query(
        self, access_token: str, request: DataRequest, dimension: str, row_limit: int
    ) -> SearchAnalyticsResponse:
        site = quote(request.target, safe="")
        payload = await self._make_request(
            "POST",
            f"{self.base_url}/sites/{site}/searchAnalytics/query",
            access_token,
            json={
                "startDate": request.start_date.isoformat(),
                "endDate": request.end_date.isoformat(),
                "dimensions": [dimension],
                "rowLimit": row_limit,
            },
        )
        return self._parse(SearchAnalyticsResponse, payload)

    async def _fetch_metric_rows(self, access_token: str, request: DataRequest) -> List[Row]:
        response = await self._query(access_token, request, "date", ROW_LIMIT)

        rows = [
            gsc_row(
                date.fromisoformat(row.keys[0]),
                clicks=int(row.clicks),
                impressions=int(row.impressions),
                ctr=row.ctr,
                position=row.position,
            )
            for row in response.rows
        ]
        logger.info(f"Fetched {len(rows)} GSC rows for {request.target}")
        return rows

    async def _fetch_extra(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        dimension = RANKING_DIMENSIONS[request.resource]
        limit = request.limit or DEFAULT_RANKING_LIMIT

        # Google orders Search Analytics rows by clicks, descending
        response = await self._query(access_token, request, dimension, limit)

        entries = [
            {
                dimension: row.keys[0],
                "clicks": int(row.clicks),
                "impressions": int(row.impressions),
                "position": row.position,
            }
            for row in response.rows
        ]
        logger.info(f"Fetched {len(entries)} GSC {dimension} rows for {request.target}")
        return build_ranking_payload(
            dimension, request.target, request.start_date, request.end_date, entries, limit
        )
