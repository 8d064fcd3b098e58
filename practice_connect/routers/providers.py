"""
Providers Router - data endpoints backed by the provider clients.

Endpoints:
==========
- GET /gsc/sites?clientId=          → verified Search Console sites
- GET /ga4/properties?clientId=     → GA4 properties
- GET /gbp/locations?clientId=      → Business Profile locations
- GET /providers/{provider}/data    → any resource as a ProviderResult
                                      (listing, metrics, top-queries,
                                      top-pages, reviews)

The three listing endpoints require a connected provider (404 otherwise).
The generic data endpoint never does: an unconnected provider answers with
demo data marked connected=false.

Before calling a provider, an expired access token is renewed with the
stored refresh token. A failed renewal is only logged; the call then
proceeds and degrades to fallback data if Google rejects it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from practice_connect.deps import Services, get_services, require_client_id
from practice_connect.environments.base import (
    CredentialCorrupted,
    CredentialNotFound,
    MissingConfiguration,
    UpstreamAuthFailure,
)
from practice_connect.environments.registry import (
    Provider,
    display_name_for,
    get_provider,
    listing_resource_for,
)
from practice_connect.schemas.provider_data import ProviderResult
from practice_connect.services.credential_store import CredentialKind


logger = logging.getLogger("practice_connect.routers.providers")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(tags=["providers"])


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


async def refresh_if_expired(services: Services, client_id: str, provider: Provider) -> None:
    """Renew an expired access token; failures are logged, never raised."""
    try:
        credential = services.store.get(client_id, provider, CredentialKind.ACCESS_TOKEN)
    except (CredentialNotFound, CredentialCorrupted):
        return

    if not credential.is_expired():
        return

    try:
        await services.handler.refresh(client_id, provider)
    except (CredentialNotFound, CredentialCorrupted, MissingConfiguration, UpstreamAuthFailure) as e:
        logger.warning(
            f"Could not refresh expired {provider.value} token: {e.message}",
            extra={"client_id": client_id, "provider": provider.value},
        )


async def _listing(services: Services, client_id: Optional[str], provider: Provider) -> dict:
    client_id = require_client_id(client_id)

    if provider not in services.store.list_connected_providers(client_id):
        raise CredentialNotFound(f"No {display_name_for(provider)} credentials found")

    await refresh_if_expired(services, client_id, provider)

    resource = listing_resource_for(provider)
    result = await services.client_for(provider).fetch_data(client_id, {"resource": resource})

    return {
        "success": True,
        resource: result.data[resource],
        "connected": result.connected,
        "degraded": result.degraded,
    }


# ---------------------------------------------------------------------------
# LISTING ENDPOINTS
# ---------------------------------------------------------------------------


@router.get("/gsc/sites")
async def gsc_sites(
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: Services = Depends(get_services),
):
    """
    List Search Console sites for a connected client.

    Example response:
    {
        "success": true,
        "sites": [{"id": "https://x.com/", "displayName": "https://x.com/", "permissionLevel": "siteOwner"}],
        "connected": true,
        "degraded": false
    }
    """
    return await _listing(services, client_id, Provider.GSC)


@router.get("/ga4/properties")
async def ga4_properties(
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: Services = Depends(get_services),
):
    """List GA4 properties for a connected client."""
    return await _listing(services, client_id, Provider.GA4)


@router.get("/gbp/locations")
async def gbp_locations(
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: Services = Depends(get_services),
):
    """List Business Profile locations for a connected client."""
    return await _listing(services, client_id, Provider.GBP)


# ---------------------------------------------------------------------------
# GENERIC DATA ENDPOINT
# ---------------------------------------------------------------------------


@router.get("/providers/{provider}/data", response_model=ProviderResult)
async def provider_data(
    provider: str,
    client_id: Optional[str] = Query(None, alias="clientId"),
    resource: Optional[str] = Query(None, description="Listing resource, 'metrics' or a provider extra"),
    target: Optional[str] = Query(None, description="Site URL, property id or location name"),
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD"),
    limit: Optional[int] = Query(None, description="Entries for top-queries, top-pages and reviews"),
    services: Services = Depends(get_services),
):
    """
    Fetch any provider resource, live or fallback.

    Errors:
        400: Unsupported provider, missing clientId, malformed request
    """
    provider = get_provider(provider)
    client_id = require_client_id(client_id)

    request = {
        "resource": resource,
        "target": target,
        "startDate": start_date,
        "endDate": end_date,
        "limit": limit,
    }

    client = services.client_for(provider)
    # Reject malformed requests before touching stored tokens
    data_request = client.validate_request(request)
    await refresh_if_expired(services, client_id, provider)
    return await client.fetch_data(client_id, data_request)
