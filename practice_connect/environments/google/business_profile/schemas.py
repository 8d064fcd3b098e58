"""
Google Business Profile Schemas - accounts, locations, performance series and reviews.

Reference:
- https://developers.google.com/my-business/reference/accountmanagement/rest/v1/accounts/list
- https://developers.google.com/my-business/reference/businessinformation/rest/v1/accounts.locations/list
- https://developers.google.com/my-business/reference/performance/rest/v1/locations/fetchMultiDailyMetricsTimeSeries
- https://developers.google.com/my-business/reference/rest/v4/accounts.locations.reviews/list
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# ACCOUNTS & LOCATIONS
# ---------------------------------------------------------------------------

class Account(BaseModel):
    """
    Example:
    {"name": "accounts/1234567890", "accountName": "Bright Smile Dental"}
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    account_name: Optional[str] = Field(None, alias="accountName")


class AccountsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    accounts: List[Account] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


class Location(BaseModel):
    """
    Example (readMask=name,title,storefrontAddress):
    {"name": "locations/987654321", "title": "Bright Smile - Downtown"}
    """
    name: str
    title: Optional[str] = None


class LocationsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    locations: List[Location] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


# ---------------------------------------------------------------------------
# PERFORMANCE
# ---------------------------------------------------------------------------

class SeriesDate(BaseModel):
    year: int
    month: int
    day: int

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)


class DatedValue(BaseModel):
    date: SeriesDate
    # Omitted by Google when the value is zero
    value: Optional[str] = None


class TimeSeries(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dated_values: List[DatedValue] = Field(default_factory=list, alias="datedValues")


class DailyMetricTimeSeries(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    daily_metric: str = Field(..., alias="dailyMetric")
    time_series: TimeSeries = Field(default_factory=TimeSeries, alias="timeSeries")


class MultiDailyMetricTimeSeries(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    daily_metric_time_series: List[DailyMetricTimeSeries] = Field(
        default_factory=list, alias="dailyMetricTimeSeries"
    )


class PerformanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    multi_daily_metric_time_series: List[MultiDailyMetricTimeSeries] = Field(
        default_factory=list, alias="multiDailyMetricTimeSeries"
    )


# ---------------------------------------------------------------------------
# REVIEWS (v4)
# ---------------------------------------------------------------------------

# starRating enum → stars; STAR_RATING_UNSPECIFIED maps to 0
STAR_RATINGS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}


class Reviewer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(None, alias="displayName")
    is_anonymous: bool = Field(False, alias="isAnonymous")


class ReviewReply(BaseModel):
    comment: Optional[str] = None


class Review(BaseModel):
    """
    Example:
    {
        "name": "accounts/1/locations/55/reviews/AbCd",
        "reviewId": "AbCd",
        "reviewer": {"displayName": "Maria G."},
        "starRating": "FIVE",
        "comment": "Great cleaning, friendly staff.",
        "createTime": "2025-01-03T15:04:05.123Z",
        "reviewReply": {"comment": "Thank you!"}
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    reviewer: Reviewer = Field(default_factory=Reviewer)
    star_rating: Optional[str] = Field(None, alias="starRating")
    comment: Optional[str] = None
    create_time: datetime = Field(..., alias="createTime")
    review_reply: Optional[ReviewReply] = Field(None, alias="reviewReply")

    @property
    def stars(self) -> int:
        return STAR_RATINGS.get(self.star_rating or "", 0)


class ReviewsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reviews: List[Review] = Field(default_factory=list)
    # Both cover every review of the location, not just this page
    average_rating: Optional[float] = Field(None, alias="averageRating")
    total_review_count: Optional[int] = Field(None, alias="totalReviewCount")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
