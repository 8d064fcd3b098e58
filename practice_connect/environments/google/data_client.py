"""
Google Data Client - the shared contract behind every provider client.

Each provider client (GA4, GSC, GBP) implements how to fetch its listing
resource and its daily metric rows, plus any extra resources it offers
(GSC rankings, GBP reviews). Everything else lives here:

fetch_data(client_id, request) -> ProviderResult
================================================
1. validate_request (the only error that escapes: InvalidRequest)
2. Load the access token; none stored → synthetic data, connected=False,
   no network call
3. One authenticated call sequence with an explicit timeout
4. Success → normalized data, source=live
5. Transport error, timeout, non-2xx, unparsable payload or a stored token
   that fails decryption → warning logged, synthetic data, connected=True

No retries and no implicit token refresh happen at this layer.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from practice_connect.environments import fallback
from practice_connect.environments.aggregation import Row, build_metrics_payload
from practice_connect.environments.base import (
    CredentialCorrupted,
    CredentialNotFound,
    InvalidRequest,
    UpstreamDataFailure,
)
from practice_connect.environments.registry import Provider, listing_resource_for
from practice_connect.schemas.provider_data import (
    METRICS_RESOURCE,
    DataRequest,
    DataSource,
    ProviderResult,
    parse_data_request,
)
from practice_connect.services.credential_store import CredentialKind, CredentialStore


logger = logging.getLogger("practice_connect.environments.google.data")

ModelT = TypeVar("ModelT", bound=BaseModel)

# Safety cap on list pagination
MAX_PAGES = 10


class GoogleDataClient(ABC):
    """
    Base class for provider data clients.

    Subclasses set ``provider`` and implement ``_fetch_listing`` and
    ``_fetch_metric_rows``; those declaring ``extra_resources`` also
    implement ``_fetch_extra``.
    """

    provider: Provider

    # extra_resources: Period resources beyond "metrics" (e.g. "reviews")
    extra_resources: Tuple[str, ...] = ()

    def __init__(
        self,
        store: CredentialStore,
        http_client: httpx.AsyncClient,
        timeout: float = 15.0,
    ):
        """
        Args:
            store: Credential store the access token is read from
            http_client: Shared async client (owned by the services container)
            timeout: Per-request timeout in seconds
        """
        self.store = store
        self._http = http_client
        self.timeout = timeout

    @property
    def listing_resource(self) -> str:
        return listing_resource_for(self.provider)

    @property
    def resources(self) -> tuple:
        return (self.listing_resource, METRICS_RESOURCE) + self.extra_resources

    # -------------------------------------------------------------------------
    # PUBLIC CONTRACT
    # -------------------------------------------------------------------------

    def validate_request(self, request: Union[DataRequest, Dict[str, Any]]) -> DataRequest:
        """
        Parse a request and check it against this provider.

        Pure: no credential lookup and no network call, so callers can reject
        a malformed request before doing any work on its behalf.

        Raises:
            InvalidRequest: Malformed request or resource unknown to this provider
        """
        request = parse_data_request(request)
        if request.resource not in self.resources:
            raise InvalidRequest(
                f"Unknown {self.provider.value} resource: {request.resource}"
            )
        if request.is_period:
            self._validate_target(request)
        return request

    async def fetch_data(
        self,
        client_id: str,
        request: Union[DataRequest, Dict[str, Any]],
    ) -> ProviderResult:
        """
        Fetch one resource for a client, degrading to synthetic data.

        Args:
            client_id: Client whose stored credential is used
            request: DataRequest or its raw dict form

        Returns:
            ProviderResult (never raises for upstream problems)

        Raises:
            InvalidRequest: Malformed request or resource unknown to this provider
        """
        request = self.validate_request(request)

        log_context = {"client_id": client_id, "provider": self.provider.value}

        try:
            credential = self.store.get(client_id, self.provider, CredentialKind.ACCESS_TOKEN)
        except CredentialNotFound:
            logger.info(
                f"{self.provider.value} not connected, serving demo {request.resource}",
                extra=log_context,
            )
            return self._fallback_result(request, connected=False)
        except CredentialCorrupted:
            logger.warning(
                f"Stored {self.provider.value} token failed decryption, serving fallback",
                extra=log_context,
            )
            return self._fallback_result(request, connected=True)

        try:
            data = await self._fetch_live(credential.secret, request)
        except UpstreamDataFailure as e:
            logger.warning(
                f"{self.provider.value} {request.resource} failed "
                f"(status={e.upstream_status}): {e.message}",
                extra={**log_context, "upstream_status": e.upstream_status},
            )
            return self._fallback_result(request, connected=True)

        return ProviderResult(
            provider=self.provider,
            connected=True,
            source=DataSource.LIVE,
            data=data,
        )

    def _fallback_result(self, request: DataRequest, connected: bool) -> ProviderResult:
        return ProviderResult(
            provider=self.provider,
            connected=connected,
            source=DataSource.FALLBACK,
            data=fallback.generate(self.provider, request),
        )

    async def _fetch_live(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        try:
            if request.is_metrics:
                return await self._fetch_metrics(access_token, request)
            if request.resource == self.listing_resource:
                return {self.listing_resource: await self._fetch_listing(access_token)}
            return await self._fetch_extra(access_token, request)
        except (KeyError, IndexError, ValueError, TypeError) as e:
            raise UpstreamDataFailure(
                f"Unexpected {self.provider.value} payload: {type(e).__name__}"
            ) from e

    async def _fetch_metrics(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        rows = await self._fetch_metric_rows(access_token, request)
        return build_metrics_payload(
            self.provider, request.target, request.start_date, request.end_date, rows
        )

    # -------------------------------------------------------------------------
    # PROVIDER HOOKS
    # -------------------------------------------------------------------------

    def _validate_target(self, request: DataRequest) -> None:
        """Reject targets the provider API could never accept (InvalidRequest)."""

    @abstractmethod
    async def _fetch_listing(self, access_token: str) -> List[Dict[str, Any]]:
        """Entries of the listing resource, normalized to {id, displayName, ...}."""

    @abstractmethod
    async def _fetch_metric_rows(self, access_token: str, request: DataRequest) -> List[Row]:
        """Daily rows for ``request.target`` between the request dates."""

    async def _fetch_extra(self, access_token: str, request: DataRequest) -> Dict[str, Any]:
        """Payload for one of ``extra_resources``."""
        raise InvalidRequest(f"Unknown {self.provider.value} resource: {request.resource}")

    # -------------------------------------------------------------------------
    # HTTP HELPERS
    # -------------------------------------------------------------------------

    async def _make_request(
        self,
        method: str,
        url: str,
        access_token: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> dict:
        """
        Make one authenticated request to a Google API.

        Returns:
            Parsed JSON response

        Raises:
            UpstreamDataFailure: Transport error, timeout, non-2xx or non-JSON body
        """
        try:
            response = await self._http.request(
                method=method,
                url=url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamDataFailure(f"Timed out calling {self.provider.value} API") from e
        except httpx.HTTPError as e:
            raise UpstreamDataFailure(
                f"Network error calling {self.provider.value} API: {type(e).__name__}"
            ) from e

        if response.status_code == 401:
            raise UpstreamDataFailure(
                "Unauthorized - access token may be expired", upstream_status=401
            )

        if response.status_code == 403:
            raise UpstreamDataFailure(
                "Forbidden - scope may not be granted", upstream_status=403
            )

        if not response.is_success:
            raise UpstreamDataFailure(
                f"API request failed with status {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamDataFailure(
                "API returned a non-JSON body", upstream_status=response.status_code
            ) from e

    def _parse(self, model: Type[ModelT], payload: Any) -> ModelT:
        """Validate a response payload, treating schema mismatches as upstream failures."""
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise UpstreamDataFailure(
                f"Unexpected {self.provider.value} response shape ({e.error_count()} errors)"
            ) from e

    async def _get_pages(
        self,
        url: str,
        access_token: str,
        model: Type[ModelT],
        params: Optional[dict] = None,
    ) -> List[ModelT]:
        """
        GET every page of a list endpoint, following ``nextPageToken``.

        ``model`` must expose ``next_page_token``. Stops after MAX_PAGES
        pages; a truncated listing is logged, not raised.
        """
        pages = []
        page_token = None

        for _ in range(MAX_PAGES):
            page_params = dict(params or {})
            if page_token:
                page_params["pageToken"] = page_token

            payload = await self._make_request(
                "GET", url, access_token, params=page_params or None
            )
            page = self._parse(model, payload)
            pages.append(page)

            page_token = page.next_page_token
            if not page_token:
                break
        else:
            logger.warning(
                f"Stopped {self.provider.value} pagination after {MAX_PAGES} pages",
                extra={"provider": self.provider.value, "url": url},
            )

        return pages
