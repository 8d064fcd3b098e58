"""
Google Analytics 4 Schemas - Admin API account summaries and Data API reports.

Reference:
- https://developers.google.com/analytics/devguides/config/admin/v1/rest/v1beta/accountSummaries/list
- https://developers.google.com/analytics/devguides/reporting/data/v1/rest/v1beta/properties/runReport
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# ADMIN API
# ---------------------------------------------------------------------------

class PropertySummary(BaseModel):
    """
    One GA4 property inside an account summary.

    Example:
    {"property": "properties/123456789", "displayName": "Bright Smile - GA4"}
    """
    model_config = ConfigDict(populate_by_name=True)

    property_name: str = Field(..., alias="property", description="Resource name, properties/{id}")
    display_name: Optional[str] = Field(None, alias="displayName")

    @property
    def property_id(self) -> str:
        return self.property_name.split("/", 1)[-1]


class AccountSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    property_summaries: List[PropertySummary] = Field(default_factory=list, alias="propertySummaries")


class AccountSummariesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_summaries: List[AccountSummary] = Field(default_factory=list, alias="accountSummaries")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


# ---------------------------------------------------------------------------
# DATA API
# ---------------------------------------------------------------------------

class ReportHeader(BaseModel):
    name: str


class ReportValue(BaseModel):
    value: Optional[str] = None


class ReportRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dimension_values: List[ReportValue] = Field(default_factory=list, alias="dimensionValues")
    metric_values: List[ReportValue] = Field(default_factory=list, alias="metricValues")


class RunReportResponse(BaseModel):
    """
    runReport response. Google omits ``rows`` entirely when there is no data.

    Example:
    {
        "dimensionHeaders": [{"name": "date"}],
        "metricHeaders": [{"name": "totalUsers"}, ...],
        "rows": [{"dimensionValues": [{"value": "20250101"}],
                  "metricValues": [{"value": "42"}, ...]}]
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    dimension_headers: List[ReportHeader] = Field(default_factory=list, alias="dimensionHeaders")
    metric_headers: List[ReportHeader] = Field(default_factory=list, alias="metricHeaders")
    rows: List[ReportRow] = Field(default_factory=list)
