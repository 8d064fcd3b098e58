"""
OAuth Router - connect, complete, refresh and disconnect provider access.

Endpoints:
==========
- GET  /oauth-start?provider=&clientId=      → {ok, url} consent URL for the frontend
- GET  /callback/{provider}?code=&state=     → exchange code, store tokens
- POST /oauth-refresh?provider=&clientId=    → renew the access token
- POST /oauth-disconnect?provider=&clientId= → revoke and forget credentials

OAuth Flow:
===========
1. Frontend calls GET /oauth-start and sends the user to the returned URL
2. User grants permissions at Google
3. Google redirects to /callback/{provider} with code and state
4. Backend redeems the state, exchanges the code, stores encrypted tokens
5. User is redirected to {APP_ORIGIN}/oauth/callback?provider=..&status=success

Security:
=========
- State is random, persisted, bound to (client, provider), single use and
  short-lived; the callback learns the client only from it
- Tokens are Fernet-encrypted at rest and never echoed back
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from practice_connect.deps import Services, get_services, require_client_id
from practice_connect.environments.base import InvalidCallback, InvalidRequest
from practice_connect.environments.registry import get_provider


logger = logging.getLogger("practice_connect.routers.oauth")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(tags=["oauth"])


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------


@router.get("/oauth-start")
def oauth_start(
    provider: Optional[str] = Query(None, description="Provider to connect: ga4, gsc or gbp"),
    client_id: Optional[str] = Query(None, alias="clientId", description="Client to connect it for"),
    services: Services = Depends(get_services),
):
    """
    Build the Google consent URL for one provider.

    The URL is returned as JSON rather than a redirect so single-page
    frontends can open it in a popup or the current tab.

    Returns:
        {"ok": true, "url": "https://accounts.google.com/o/oauth2/v2/auth?..."}

    Errors:
        400: Missing provider, unsupported provider, missing clientId
        500: OAuth application or redirect origin not configured
    """
    if not provider:
        raise InvalidRequest("Missing provider parameter")
    provider = get_provider(provider)
    client_id = require_client_id(client_id)

    auth_request = services.builder.build_authorization_url(
        provider, client_id, services.settings.OAUTH_REDIRECT_ORIGIN
    )
    services.state_store.save(auth_request.state, client_id, provider)

    return {"ok": True, "url": auth_request.url}


@router.get("/callback/{provider}")
async def oauth_callback(
    provider: str,
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="State issued by /oauth-start"),
    error: Optional[str] = Query(None, description="Error from Google (e.g. access_denied)"),
    services: Services = Depends(get_services),
):
    """
    Handle Google's redirect after the consent screen.

    Errors:
        400: Consent denied, missing/invalid code or state
        502: Google rejected the code exchange
    """
    if error:
        logger.warning(f"OAuth error on {provider} callback: {error}")
        raise InvalidCallback(f"Authorization failed: {error}")

    credential = await services.handler.handle_callback(provider, code, state)

    app_origin = services.settings.APP_ORIGIN
    if app_origin:
        query = urlencode({"provider": credential.provider.value, "status": "success"})
        return RedirectResponse(
            url=f"{app_origin.rstrip('/')}/oauth/callback?{query}",
            status_code=303,
        )

    return {"ok": True, "provider": credential.provider.value, "connected": True}


@router.post("/oauth-refresh")
async def oauth_refresh(
    provider: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: Services = Depends(get_services),
):
    """
    Renew a provider's access token with the stored refresh token.

    Errors:
        400: Missing/unsupported provider or missing clientId
        404: No refresh token stored
        502: Google rejected the refresh
    """
    if not provider:
        raise InvalidRequest("Missing provider parameter")
    provider = get_provider(provider)
    client_id = require_client_id(client_id)

    credential = await services.handler.refresh(client_id, provider)

    return {
        "ok": True,
        "provider": provider.value,
        "expiresAt": credential.expires_at.isoformat() if credential.expires_at else None,
    }


@router.post("/oauth-disconnect")
async def oauth_disconnect(
    provider: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: Services = Depends(get_services),
):
    """
    Disconnect a provider: revoke at Google (best effort), delete stored tokens.

    Idempotent: disconnecting a provider that is not connected succeeds.
    """
    if not provider:
        raise InvalidRequest("Missing provider parameter")
    provider = get_provider(provider)
    client_id = require_client_id(client_id)

    await services.handler.disconnect(client_id, provider)

    return {"ok": True, "provider": provider.value, "connected": False}
