"""
Authorization Service - builds consent URLs and completes the OAuth flow.

Two collaborators live here:

AuthorizationRequestBuilder
    Pure: turns (provider, client) into a Google consent URL plus a fresh
    state value. Persisting the state is the caller's job.

TokenExchangeHandler
    Completes the callback (state check → code exchange → encrypted
    storage), and offers caller-triggered refresh and disconnect.

Flow:
=====
1. GET /oauth-start?provider=gsc&clientId=c-1
   → builder.build_authorization_url() → state_store.save()
2. User consents at Google
3. GET /callback/gsc?code=...&state=...
   → handler.handle_callback() → state_store.consume() → exchange → store
"""

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional, Union
from urllib.parse import urlencode

from practice_connect.environments.base import (
    CredentialCorrupted,
    CredentialNotFound,
    InvalidCallback,
    MissingConfiguration,
)
from practice_connect.environments.google.auth import GoogleAuthClient
from practice_connect.environments.registry import (
    Provider,
    callback_path_for,
    get_provider,
    is_supported,
    scopes_for,
)
from practice_connect.services.credential_store import (
    CredentialKind,
    CredentialStore,
    StoredCredential,
)
from practice_connect.services.state_store import AuthorizationStateStore


logger = logging.getLogger("practice_connect.services.authorization")


def build_redirect_uri(base_redirect_origin: str, provider: Union[str, Provider]) -> str:
    """``{origin}/callback/{provider}``, tolerating a trailing slash on the origin."""
    return f"{base_redirect_origin.rstrip('/')}{callback_path_for(provider)}"


def ungranted_scopes(provider: Union[str, Provider], granted: Optional[List[str]]) -> List[str]:
    """
    Requested scopes missing from what Google granted.

    An absent ``scope`` field in the token response means nothing can be
    checked, so it yields an empty list.
    """
    if not granted:
        return []
    return [scope for scope in scopes_for(provider) if scope not in granted]


# ---------------------------------------------------------------------------
# AUTHORIZATION REQUEST BUILDER
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorizationRequest:
    """A consent URL and the state value embedded in it."""
    url: str
    state: str
    redirect_uri: str
    provider: Provider
    client_id: str


class AuthorizationRequestBuilder:
    """
    Builds provider-specific Google consent URLs.

    Example:
        builder = AuthorizationRequestBuilder(settings.GOOGLE_CLIENT_ID)
        request = builder.build_authorization_url("gsc", "c-1", "https://api.example.com")
        request.url    # https://accounts.google.com/o/oauth2/v2/auth?client_id=...
        request.state  # random URL-safe token
    """

    def __init__(self, oauth_client_id: Optional[str]):
        self.oauth_client_id = oauth_client_id or ""

    @staticmethod
    def generate_state() -> str:
        """Cryptographically secure, URL-safe state value (43 chars)."""
        return secrets.token_urlsafe(32)

    def build_authorization_url(
        self,
        provider: Union[str, Provider],
        client_id: str,
        base_redirect_origin: Optional[str],
    ) -> AuthorizationRequest:
        """
        Build the consent URL for one provider.

        Args:
            provider: Provider identifier ("ga4", "gsc", "gbp")
            client_id: Client the resulting credential will belong to
            base_redirect_origin: Public origin of this service

        Returns:
            AuthorizationRequest with the URL and its state

        Raises:
            UnsupportedProvider: Provider not in the registry
            MissingConfiguration: OAuth client id or redirect origin missing
        """
        provider = get_provider(provider)

        if not self.oauth_client_id:
            logger.error("GOOGLE_CLIENT_ID is not set - cannot build authorization URL")
            raise MissingConfiguration("OAuth client ID is not configured")
        if not base_redirect_origin:
            logger.error("OAUTH_REDIRECT_ORIGIN is not set - cannot build authorization URL")
            raise MissingConfiguration("OAuth redirect origin is not configured")

        state = self.generate_state()
        redirect_uri = build_redirect_uri(base_redirect_origin, provider)
        scopes = scopes_for(provider)

        params = {
            "client_id": self.oauth_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
            "access_type": "offline",  # include refresh_token
            "prompt": "consent",  # always re-issue refresh_token
        }

        logger.info(
            f"Generated {provider.value} auth URL with {len(scopes)} scopes",
            extra={"client_id": client_id, "provider": provider.value},
        )

        return AuthorizationRequest(
            url=f"{GoogleAuthClient.AUTHORIZATION_URL}?{urlencode(params)}",
            state=state,
            redirect_uri=redirect_uri,
            provider=provider,
            client_id=client_id,
        )


# ---------------------------------------------------------------------------
# TOKEN EXCHANGE HANDLER
# ---------------------------------------------------------------------------


class TokenExchangeHandler:
    """
    Completes and maintains provider connections.

    Nothing is written to the credential store unless Google has returned
    tokens: a failed or cancelled exchange leaves storage untouched.
    """

    def __init__(
        self,
        auth_client: GoogleAuthClient,
        store: CredentialStore,
        state_store: AuthorizationStateStore,
        redirect_origin: Optional[str],
    ):
        self.auth_client = auth_client
        self.store = store
        self.state_store = state_store
        self.redirect_origin = redirect_origin or ""

    async def handle_callback(
        self,
        provider: Union[str, Provider, None],
        code: Optional[str],
        state: Optional[str],
    ) -> StoredCredential:
        """
        Redeem the state, exchange the code and persist the tokens.

        Returns:
            The stored access-token credential

        Raises:
            InvalidCallback: Unsupported provider, missing code/state, or a
                state that is unknown, used, expired or for another provider
            UpstreamAuthFailure: Google rejected the code or was unreachable
            MissingConfiguration: OAuth app or redirect origin not configured
        """
        if not is_supported(provider):
            raise InvalidCallback(f"Unsupported provider: {provider}")
        provider = get_provider(provider)

        if not code:
            raise InvalidCallback("Missing authorization code")
        if not state:
            raise InvalidCallback("Missing state parameter")

        if not self.redirect_origin:
            logger.error("OAUTH_REDIRECT_ORIGIN is not set - cannot complete callback")
            raise MissingConfiguration("OAuth redirect origin is not configured")
        self.auth_client.require_configuration()

        client_id = self.state_store.consume(state, provider)

        tokens = await self.auth_client.exchange_code_for_tokens(
            code=code,
            redirect_uri=build_redirect_uri(self.redirect_origin, provider),
        )

        self.store.put_tokens(client_id, provider, tokens)

        log_context = {"client_id": client_id, "provider": provider.value}
        missing_scopes = ungranted_scopes(provider, tokens.scopes)
        if missing_scopes:
            # Granular consent lets the user untick scopes; data calls will 403
            logger.warning(
                f"Connected {provider.value} without scopes: {' '.join(missing_scopes)}",
                extra={**log_context, "missing_scopes": missing_scopes},
            )
        else:
            logger.info(f"Connected {provider.value}", extra=log_context)
        return self.store.get(client_id, provider, CredentialKind.ACCESS_TOKEN)

    async def refresh(self, client_id: str, provider: Union[str, Provider]) -> StoredCredential:
        """
        Renew the access token with the stored refresh token.

        Raises:
            CredentialNotFound: No refresh token stored
            UpstreamAuthFailure: Google rejected the refresh
        """
        provider = get_provider(provider)
        refresh_credential = self.store.get(client_id, provider, CredentialKind.REFRESH_TOKEN)

        tokens = await self.auth_client.refresh_access_token(refresh_credential.secret)
        self.store.put_tokens(client_id, provider, tokens)

        logger.info(
            f"Refreshed {provider.value} access token",
            extra={"client_id": client_id, "provider": provider.value},
        )
        return self.store.get(client_id, provider, CredentialKind.ACCESS_TOKEN)

    async def disconnect(self, client_id: str, provider: Union[str, Provider]) -> int:
        """
        Revoke at Google (best effort) and delete every stored credential.

        Returns:
            Number of credential rows removed
        """
        provider = get_provider(provider)

        # Revoking the refresh token also invalidates its access tokens
        for kind in (CredentialKind.REFRESH_TOKEN, CredentialKind.ACCESS_TOKEN):
            try:
                credential = self.store.get(client_id, provider, kind)
            except CredentialNotFound:
                continue
            except (CredentialCorrupted, MissingConfiguration) as e:
                logger.warning(
                    f"Could not load {provider.value} {kind.value} for revocation: {type(e).__name__}",
                    extra={"client_id": client_id, "provider": provider.value},
                )
                continue
            if await self.auth_client.revoke_token(credential.secret):
                break

        removed = self.store.delete(client_id, provider)
        logger.info(
            f"Disconnected {provider.value}",
            extra={"client_id": client_id, "provider": provider.value},
        )
        return removed
