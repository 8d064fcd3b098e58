"""
Provider data schemas - what callers ask a provider for, and what they get back.

DataRequest is validated at the boundary; ProviderResult is the single
shape every provider client returns, live or synthetic.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    model_validator,
)

from practice_connect.environments.base import InvalidRequest
from practice_connect.environments.registry import Provider


# Longest period a period request may cover (one leap year)
MAX_METRICS_SPAN_DAYS = 366

# Upper bound for ``limit`` on ranking and review requests
MAX_ENTRY_LIMIT = 100

METRICS_RESOURCE = "metrics"
TOP_QUERIES_RESOURCE = "top-queries"
TOP_PAGES_RESOURCE = "top-pages"
REVIEWS_RESOURCE = "reviews"

# Resources that describe one target over a date window
PERIOD_RESOURCES = frozenset({
    METRICS_RESOURCE,
    TOP_QUERIES_RESOURCE,
    TOP_PAGES_RESOURCE,
    REVIEWS_RESOURCE,
})


# ---------------------------------------------------------------------------
# REQUEST SCHEMAS
# ---------------------------------------------------------------------------

class DataRequest(BaseModel):
    """
    A request for one provider resource.

    Example (listing):
    {"resource": "sites"}

    Example (metrics):
    {
        "resource": "metrics",
        "target": "https://example-dental.com/",
        "startDate": "2025-01-01",
        "endDate": "2025-01-31"
    }

    Example (ranking):
    {"resource": "top-queries", "target": "sc-domain:example-dental.com",
     "startDate": "2025-01-01", "endDate": "2025-01-31", "limit": 5}
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # resource: A listing resource ("sites", "properties", "locations"), "metrics",
    # or a provider extra ("top-queries", "top-pages", "reviews")
    resource: str = Field(..., min_length=1, max_length=32)

    # target: Site URL (gsc), property id (ga4) or location name (gbp)
    target: Optional[str] = Field(None, min_length=1, max_length=512)

    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")

    # limit: Entries returned by ranking and review resources (default per resource)
    limit: Optional[int] = Field(None, ge=1, le=MAX_ENTRY_LIMIT)

    @model_validator(mode="after")
    def check_period(self) -> "DataRequest":
        if self.resource not in PERIOD_RESOURCES:
            return self
        if not self.target:
            raise ValueError(f"{self.resource} requires a target")
        if self.start_date is None or self.end_date is None:
            raise ValueError(f"{self.resource} requires startDate and endDate")
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        if (self.end_date - self.start_date).days >= MAX_METRICS_SPAN_DAYS:
            raise ValueError(f"{self.resource} period must not exceed {MAX_METRICS_SPAN_DAYS} days")
        return self

    @property
    def is_metrics(self) -> bool:
        return self.resource == METRICS_RESOURCE

    @property
    def is_period(self) -> bool:
        return self.resource in PERIOD_RESOURCES

    def canonical(self) -> str:
        """Stable text form (used to seed synthetic data)."""
        return "|".join([
            self.resource,
            self.target or "",
            self.start_date.isoformat() if self.start_date else "",
            self.end_date.isoformat() if self.end_date else "",
            str(self.limit) if self.limit else "",
        ])


# ---------------------------------------------------------------------------
# RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class DataSource(str, Enum):
    LIVE = "live"
    FALLBACK = "fallback"


class ProviderResult(BaseModel):
    """
    Uniform result of a provider data call.

    connected=False               → never connected; synthetic data
    connected=True, source=live   → real data
    connected=True, source=fallback → connected but the live call failed

    Example response:
    {
        "provider": "gsc",
        "connected": true,
        "source": "fallback",
        "degraded": true,
        "data": {"sites": [...]}
    }
    """
    provider: Provider
    connected: bool
    source: DataSource
    data: Dict[str, Any] = Field(default_factory=dict)

    @computed_field
    @property
    def degraded(self) -> bool:
        return self.connected and self.source == DataSource.FALLBACK


def parse_data_request(payload: Union[DataRequest, Dict[str, Any]]) -> DataRequest:
    """
    Validate a raw request into a DataRequest.

    Raises:
        InvalidRequest: With the first validation message
    """
    if isinstance(payload, DataRequest):
        return payload
    try:
        return DataRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "request"
        raise InvalidRequest(f"Invalid {field}: {first.get('msg', 'invalid value')}") from e
