"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Google stub (httpx.MockTransport answering canned responses)
- Services container wired to both
- Test client (FastAPI TestClient) using that container
"""

import os

# Settings are read at import time; keep the module-level app off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import httpx
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

import practice_connect.models  # noqa: F401  (registers tables)
from practice_connect.core.config import Settings
from practice_connect.core.security import TokenCipher
from practice_connect.db.base import Base
from practice_connect.deps import Services, get_services
from practice_connect.environments.base import OAuthTokens
from practice_connect.environments.registry import Provider
from practice_connect.main import app
from practice_connect.services.credential_store import CredentialStore


TEST_ENCRYPTION_KEY = Fernet.generate_key().decode()

TEST_REDIRECT_ORIGIN = "https://api.practice.test"


# ---------------------------------------------------------------------------
# GOOGLE STUB
# ---------------------------------------------------------------------------

class GoogleStub:
    """
    Programmable stand-in for Google's endpoints.

    Routes match on HTTP method plus a URL fragment; the first match wins.
    Unmatched requests get a 404 so a missing stub shows up as a degraded
    result instead of a hang.

    Example:
        google.add("POST", "oauth2.googleapis.com/token", json={"access_token": "ya29.x"})
        google.add("GET", "/webmasters/v3/sites", status=500)
        google.add("GET", "/accounts", exc=httpx.ConnectTimeout("slow"))
    """

    def __init__(self):
        self.routes: List[Tuple[str, str, Dict[str, Any]]] = []
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        fragment: str,
        status: int = 200,
        json: Any = None,
        exc: Optional[Exception] = None,
    ) -> None:
        self.routes.append((method, fragment, {"status": status, "json": json, "exc": exc}))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for method, fragment, route in self.routes:
            if method == request.method and fragment in url:
                if route["exc"] is not None:
                    raise route["exc"]
                if route["json"] is None:
                    return httpx.Response(route["status"])
                return httpx.Response(route["status"], json=route["json"])
        return httpx.Response(404, json={"error": "not stubbed"})

    def calls_to(self, fragment: str) -> List[httpx.Request]:
        return [request for request in self.requests if fragment in str(request.url)]


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """
    Fresh in-memory database for each test function.

    StaticPool keeps the single connection alive across sessions and the
    TestClient's worker threads.
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


# ---------------------------------------------------------------------------
# SERVICE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        GOOGLE_CLIENT_ID="test-client.apps.googleusercontent.com",
        GOOGLE_CLIENT_SECRET="test-client-secret",
        OAUTH_REDIRECT_ORIGIN=TEST_REDIRECT_ORIGIN,
        APP_ORIGIN="",
        TOKEN_ENCRYPTION_KEY=TEST_ENCRYPTION_KEY,
        PROVIDER_HTTP_TIMEOUT=5.0,
    )


@pytest.fixture
def google() -> GoogleStub:
    return GoogleStub()


@pytest.fixture
def http_client(google: GoogleStub) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(google.handler))


@pytest.fixture
def services(settings: Settings, engine: Engine, http_client: httpx.AsyncClient) -> Services:
    return Services.build(settings, engine=engine, http_client=http_client)


@pytest.fixture
def store(services: Services) -> CredentialStore:
    return services.store


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture(scope="function")
def client(services: Services) -> Generator[TestClient, None, None]:
    """
    Create a test client using the test services container.

    Overrides the get_services dependency so no handler touches the
    container the lifespan builds from environment settings.
    """
    app.dependency_overrides[get_services] = lambda: services

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# DATA HELPERS
# ---------------------------------------------------------------------------

@pytest.fixture
def connect(store: CredentialStore) -> Callable[..., None]:
    """
    Store a connection as if the OAuth callback had completed.

    Usage:
        connect("c-1", Provider.GSC)
        connect("c-1", Provider.GA4, expires_in=-60)  # already expired
    """
    def _connect(
        client_id: str,
        provider: Provider,
        access_token: str = "ya29.stored-access",
        refresh_token: Optional[str] = "1//stored-refresh",
        expires_in: int = 3600,
    ) -> None:
        store.put_tokens(
            client_id,
            provider,
            OAuthTokens(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            ),
        )

    return _connect


@pytest.fixture
def token_payload() -> Dict[str, Any]:
    """A successful Google token endpoint response."""
    return {
        "access_token": "ya29.fresh-access",
        "token_type": "Bearer",
        "expires_in": 3599,
        "refresh_token": "1//fresh-refresh",
        "scope": "https://www.googleapis.com/auth/webmasters.readonly",
    }
