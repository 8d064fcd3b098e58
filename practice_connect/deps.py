"""
Dependencies module - the services container and its FastAPI dependency.

Every process-wide handle (engine, session factory, HTTP client, cipher) and
every component built on them is constructed once, in the application
lifespan, into a ``Services`` instance stored on ``app.state``. Route
handlers receive it through ``Depends(get_services)``; tests swap it with
``app.dependency_overrides[get_services]``.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import httpx
from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from practice_connect.core.config import Settings
from practice_connect.core.security import TokenCipher
from practice_connect.db.session import build_engine, build_session_factory
from practice_connect.environments.base import InvalidRequest
from practice_connect.environments.google import (
    BusinessProfileClient,
    GoogleAnalyticsClient,
    GoogleAuthClient,
    GoogleDataClient,
    SearchConsoleClient,
)
from practice_connect.environments.registry import Provider, get_provider
from practice_connect.services.authorization import (
    AuthorizationRequestBuilder,
    TokenExchangeHandler,
)
from practice_connect.services.credential_store import CredentialStore
from practice_connect.services.disconnection import DisconnectionDetector
from practice_connect.services.state_store import AuthorizationStateStore


logger = logging.getLogger("practice_connect.deps")


@dataclass
class Services:
    """Everything a request handler may need, wired once per process."""
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    http_client: httpx.AsyncClient
    cipher: TokenCipher
    store: CredentialStore
    state_store: AuthorizationStateStore
    auth_client: GoogleAuthClient
    builder: AuthorizationRequestBuilder
    handler: TokenExchangeHandler
    detector: DisconnectionDetector
    clients: Dict[Provider, GoogleDataClient] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        settings: Settings,
        engine: Optional[Engine] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "Services":
        """
        Wire all components.

        Never raises for missing OAuth or encryption configuration: those
        surface as MissingConfiguration on first use, so the service still
        starts and answers /health.

        Args:
            settings: Application settings
            engine: Existing engine (tests pass an in-memory SQLite one)
            http_client: Existing HTTP client (tests pass a mock transport)
        """
        engine = engine or build_engine(settings.DATABASE_URL)
        session_factory = build_session_factory(engine)
        http_client = http_client or httpx.AsyncClient(timeout=settings.PROVIDER_HTTP_TIMEOUT)
        timeout = settings.PROVIDER_HTTP_TIMEOUT

        cipher = TokenCipher(settings.TOKEN_ENCRYPTION_KEY)
        store = CredentialStore(session_factory, cipher)
        state_store = AuthorizationStateStore(session_factory, settings.OAUTH_STATE_TTL_SECONDS)
        auth_client = GoogleAuthClient(
            http_client,
            settings.GOOGLE_CLIENT_ID,
            settings.GOOGLE_CLIENT_SECRET,
            timeout=timeout,
        )

        if not cipher.is_configured:
            logger.warning("TOKEN_ENCRYPTION_KEY not set - connecting providers will fail")
        if not settings.GOOGLE_CLIENT_ID or not settings.OAUTH_REDIRECT_ORIGIN:
            logger.warning("Google OAuth not fully configured - /oauth-start will fail")

        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            http_client=http_client,
            cipher=cipher,
            store=store,
            state_store=state_store,
            auth_client=auth_client,
            builder=AuthorizationRequestBuilder(settings.GOOGLE_CLIENT_ID),
            handler=TokenExchangeHandler(
                auth_client, store, state_store, settings.OAUTH_REDIRECT_ORIGIN
            ),
            detector=DisconnectionDetector(store),
            clients={
                Provider.GA4: GoogleAnalyticsClient(store, http_client, timeout),
                Provider.GSC: SearchConsoleClient(store, http_client, timeout),
                Provider.GBP: BusinessProfileClient(store, http_client, timeout),
            },
        )

    def client_for(self, provider: Union[str, Provider]) -> GoogleDataClient:
        return self.clients[get_provider(provider)]

    async def aclose(self) -> None:
        """Release the HTTP client and the connection pool."""
        await self.http_client.aclose()
        self.engine.dispose()


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the container built at startup."""
    return request.app.state.services


# ---------------------------------------------------------------------------
# PARAMETER VALIDATION
# ---------------------------------------------------------------------------
# Client ids are opaque, non-empty and at most 64 characters (column width)
MAX_CLIENT_ID_LENGTH = 64


def require_client_id(client_id: Optional[str]) -> str:
    """
    Validate the clientId query parameter.

    Raises:
        InvalidRequest: Missing, blank or too long
    """
    if client_id is None or not client_id.strip():
        raise InvalidRequest("Missing clientId parameter")
    client_id = client_id.strip()
    if len(client_id) > MAX_CLIENT_ID_LENGTH:
        raise InvalidRequest(f"clientId must be at most {MAX_CLIENT_ID_LENGTH} characters")
    return client_id
