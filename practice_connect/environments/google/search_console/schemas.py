"""
Google Search Console Schemas - Webmasters v3 sites and Search Analytics.

Reference: https://developers.google.com/webmaster-tools/v1/api_reference_index
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SiteEntry(BaseModel):
    """
    A verified property in Search Console.

    Example:
    {"siteUrl": "https://www.bright-smile.com/", "permissionLevel": "siteOwner"}
    """
    model_config = ConfigDict(populate_by_name=True)

    site_url: str = Field(..., alias="siteUrl")
    permission_level: Optional[str] = Field(None, alias="permissionLevel")


class SitesListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Google omits siteEntry when the account has no sites
    site_entry: List[SiteEntry] = Field(default_factory=list, alias="siteEntry")


class SearchAnalyticsRow(BaseModel):
    """One row of a Search Analytics query, keyed by the requested dimensions."""
    keys: List[str] = Field(default_factory=list)
    clicks: float = 0
    impressions: float = 0
    ctr: float = 0
    position: float = 0


class SearchAnalyticsResponse(BaseModel):
    rows: List[SearchAnalyticsRow] = Field(default_factory=list)
