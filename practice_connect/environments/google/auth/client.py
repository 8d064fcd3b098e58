"""
Google OAuth Client - token endpoint calls for the authorization code flow.

One Google OAuth application serves every data provider (GA4, GSC, GBP);
only the requested scopes differ. This client talks to Google's token and
revocation endpoints; building the consent URL is the job of
``practice_connect.services.authorization.AuthorizationRequestBuilder``.

Key Features:
=============
1. Code-to-token exchange (callback)
2. Token refresh with a stored refresh token
3. Best-effort token revocation (disconnect)

Every call goes through the shared ``httpx.AsyncClient`` injected at startup
and carries an explicit timeout. Failures surface as UpstreamAuthFailure
with the upstream HTTP status (None when the request never got a response).

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2/web-server
- Token endpoint: https://oauth2.googleapis.com/token
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from practice_connect.environments.base import (
    MissingConfiguration,
    OAuthTokens,
    UpstreamAuthFailure,
)
from practice_connect.environments.google.auth.schemas import GoogleTokenResponse


logger = logging.getLogger("practice_connect.environments.google.auth")


class GoogleAuthClient:
    """
    Google OAuth 2.0 token client.

    Example Usage:
        client = GoogleAuthClient(http_client, client_id, client_secret)

        tokens = await client.exchange_code_for_tokens(
            code="4/0Ab...",
            redirect_uri="https://api.example.com/callback/gsc",
        )
        tokens = await client.refresh_access_token(tokens.refresh_token)
    """

    # Google OAuth endpoints
    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: Optional[str],
        client_secret: Optional[str],
        timeout: float = 15.0,
    ):
        """
        Args:
            http_client: Shared async client (owned by the services container)
            client_id: Google OAuth Client ID
            client_secret: Google OAuth Client Secret
            timeout: Per-request timeout in seconds
        """
        self._http = http_client
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.timeout = timeout

    def require_configuration(self) -> None:
        if not self.client_id or not self.client_secret:
            logger.error(
                "Google OAuth not configured. Set GOOGLE_CLIENT_ID and "
                "GOOGLE_CLIENT_SECRET in environment variables."
            )
            raise MissingConfiguration("Google OAuth client is not configured")

    # -------------------------------------------------------------------------
    # TOKEN ENDPOINT
    # -------------------------------------------------------------------------

    async def _post_token(self, form: dict, action: str) -> GoogleTokenResponse:
        """POST to the token endpoint and parse the response."""
        self.require_configuration()

        try:
            response = await self._http.post(self.TOKEN_URL, data=form, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"Network error during {action}: {type(e).__name__}")
            raise UpstreamAuthFailure(f"Network error during {action}") from e

        if not response.is_success:
            # Google's error body holds an error code, never the submitted secrets
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_code = error_data.get("error", "unknown_error") if isinstance(error_data, dict) else "unknown_error"
            logger.error(
                f"{action.capitalize()} failed with status {response.status_code}: {error_code}",
                extra={"upstream_status": response.status_code},
            )
            raise UpstreamAuthFailure(
                f"{action.capitalize()} failed: {error_code}",
                upstream_status=response.status_code,
            )

        try:
            return GoogleTokenResponse(**response.json())
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Unparsable {action} response")
            raise UpstreamAuthFailure(
                f"{action.capitalize()} returned an invalid response",
                upstream_status=response.status_code,
            ) from e

    async def exchange_code_for_tokens(self, code: str, redirect_uri: str) -> OAuthTokens:
        """
        Exchange an authorization code for access and refresh tokens.

        Args:
            code: Authorization code from the Google callback
            redirect_uri: Must match the redirect_uri used in the consent URL

        Returns:
            OAuthTokens with access_token, refresh_token (if issued), expiry

        Raises:
            UpstreamAuthFailure: Google rejected the code or was unreachable
            MissingConfiguration: OAuth client id/secret not set
        """
        logger.info("Exchanging authorization code for tokens")

        token_response = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            action="token exchange",
        )

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "has_refresh_token": token_response.refresh_token is not None,
                "expires_in": token_response.expires_in,
            },
        )
        return token_response.to_oauth_tokens()

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use a refresh token to get a new access token.

        Returns:
            OAuthTokens; ``refresh_token`` is only set when Google rotated it

        Raises:
            UpstreamAuthFailure: Refresh token invalid/revoked or Google unreachable
        """
        logger.info("Refreshing access token")

        token_response = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            action="token refresh",
        )

        logger.info(
            "Successfully refreshed access token",
            extra={"expires_in": token_response.expires_in},
        )
        return token_response.to_oauth_tokens()

    # -------------------------------------------------------------------------
    # TOKEN REVOCATION
    # -------------------------------------------------------------------------

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke an access or refresh token at Google.

        Best effort: never raises, returns whether Google confirmed it.
        """
        logger.info("Revoking Google token")

        try:
            response = await self._http.post(
                self.REVOKE_URL,
                params={"token": token},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Network error during token revocation: {type(e).__name__}")
            return False

        success = response.status_code == 200
        if success:
            logger.info("Successfully revoked Google token")
        else:
            logger.warning(f"Token revocation returned status {response.status_code}")
        return success
