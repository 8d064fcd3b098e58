"""
Google Analytics 4 Client - properties listing and daily traffic metrics.

Resources:
==========
- properties: every GA4 property the granted account can read
  (Admin API accountSummaries, followed across pages)
- metrics: one runReport call on properties/{id} with a date dimension

``conversions`` in our rows comes from GA4's ``keyEvents`` metric, which
replaced the deprecated ``conversions`` metric in the Data API.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List

from practice_connect.environments.aggregation import Row, ga4_row
from practice_connect.environments.base import InvalidRequest
from practice_connect.environments.google.analytics.schemas import (
    AccountSummariesResponse,
    RunReportResponse,
)
from practice_connect.environments.google.data_client import GoogleDataClient
from practice_connect.environments.registry import Provider, api_base_url_for
from practice_connect.schemas.provider_data import DataRequest


logger = logging.getLogger("practice_connect.environments.google.analytics")

PROPERTY_ID_PATTERN = re.compile(r"^(properties/)?(\d+)$")

# Report metric name → argument of ga4_row
REPORT_METRICS = {
    "totalUsers": "total_users",
    "newUsers": "new_users",
    "sessions": "sessions",
    "engagementRate": "engagement_rate",
    "keyEvents": "conversions",
    "averageSessionDuration": "avg_session_duration",
    "bounceRate": "bounce_rate",
    "screenPageViewsPerSession": "pages_per_session",
}

INTEGER_METRICS = {"total_users", "new_users", "sessions", "conversions"}


class GoogleAnalyticsClient(GoogleDataClient):
    """
    GA4 data client.

    Example:
        client = GoogleAnalyticsClient(store, http_client)
        result = await client.fetch_data("c-1", {"resource": "properties"})
        result.data["properties"]  # [{"id": "123", "displayName": ..., "accountName": ...}]
    """

    provider = Provider.GA4

    ADMIN_URL = "https://analyticsadmin.googleapis.com/v1beta"

    @property
    def data_url(self) -> str:
        return api_base_url_for(self.provider)

    def _validate_target(self, request: DataRequest) -> None:
        if not PROPERTY_ID_PATTERN.match(request.target):
            raise InvalidRequest("GA4 target must be a numeric property id")

    async def _fetch_listing(self, access_token: str) -> List[Dict[str, Any]]:
        pages = await self._get_pages(
            f"{self.ADMIN_URL}/accountSummaries",
            access_token,
            AccountSummariesResponse,
            params={"pageSize": 200},
        )

        properties = []
        for page in pages:
            for account in page.account_summaries:
                for summary in account.property_summaries:
                    properties.append({
                        "id": summary.property_id,
                        "displayName": summary.display_name or summary.property_name,
                        "accountName": account.display_name or account.account,
                    })

        logger.info(f"Fetched {len(properties)} GA4 properties")
        return properties

    async def _fetch_metric_rows(self, access_token: str, request: DataRequest) -> List[Row]:
        property_id = PROPERTY_ID_PATTERN.match(request.target).group(2)

        payload = await self._make_request(
            "POST",
            f"{self.data_url}/properties/{property_id}:runReport",
            access_token,
            json={
                "dateRanges": [{
                    "startDate": request.start_date.isoformat(),
                    "endDate": request.end_date.isoformat(),
                }],
                "dimensions": [{"name": "date"}],
                "metrics": [{"name": name} for name in REPORT_METRICS],
            },
        )
        report = self._parse(RunReportResponse, payload)

        # Map by header name, not position
        names = [header.name for header in report.metric_headers]
        rows = []
        for report_row in report.rows:
            day = datetime.strptime(report_row.dimension_values[0].value, "%Y%m%d").date()
            values = {}
            for name, metric_value in zip(names, report_row.metric_values):
                argument = REPORT_METRICS.get(name)
                if argument is None:
                    continue
                number = float(metric_value.value or 0)
                values[argument] = int(number) if argument in INTEGER_METRICS else number
            for argument in REPORT_METRICS.values():
                values.setdefault(argument, 0)
            rows.append(ga4_row(day, **values))

        logger.info(f"Fetched {len(rows)} GA4 report rows for property {property_id}")
        return rows
