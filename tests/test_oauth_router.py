"""
Tests for the OAuth endpoints and the HTTP surface (CORS, 404, 405).

Tests cover:
- GET /oauth-start parameter handling and state persistence
- GET /callback/{provider} end to end (JSON and redirect variants)
- POST /oauth-refresh and POST /oauth-disconnect
- OPTIONS preflight, unknown paths and unsupported methods
"""

from urllib.parse import parse_qs, urlparse

from sqlalchemy import select

from practice_connect.deps import Services, get_services
from practice_connect.environments.registry import Provider
from practice_connect.main import app
from practice_connect.models.oauth_state import OAuthState


TOKEN = "oauth2.googleapis.com/token"
REVOKE = "oauth2.googleapis.com/revoke"


def stored_states(services):
    with services.session_factory() as session:
        return session.execute(select(OAuthState)).scalars().all()


def state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


class TestOAuthStart:
    """Tests for GET /oauth-start."""

    def test_returns_consent_url(self, client, services):
        """Should return the URL and persist its state for the client."""
        response = client.get("/oauth-start", params={"provider": "gsc", "clientId": "c-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["url"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")

        states = stored_states(services)
        assert len(states) == 1
        assert states[0].state == state_from(body["url"])
        assert states[0].client_id == "c-1"
        assert states[0].provider == "gsc"

    def test_unsupported_provider(self, client, services):
        """Should answer 400 and persist nothing."""
        response = client.get("/oauth-start", params={"provider": "twitter", "clientId": "c-1"})

        assert response.status_code == 400
        assert response.json() == {"ok": False, "message": "Unsupported provider: twitter"}
        assert response.headers["access-control-allow-origin"] == "*"
        assert stored_states(services) == []

    def test_missing_provider(self, client):
        response = client.get("/oauth-start", params={"clientId": "c-1"})

        assert response.status_code == 400
        assert response.json()["message"] == "Missing provider parameter"

    def test_missing_client_id(self, client):
        response = client.get("/oauth-start", params={"provider": "gsc"})

        assert response.status_code == 400
        assert response.json()["message"] == "Missing clientId parameter"

    def test_client_id_too_long(self, client):
        response = client.get("/oauth-start", params={"provider": "gsc", "clientId": "x" * 65})

        assert response.status_code == 400

    def test_missing_configuration(self, client, settings, engine, http_client):
        """Should answer 500 when the OAuth app is not configured."""
        unconfigured = Services.build(
            settings.model_copy(update={"GOOGLE_CLIENT_ID": ""}),
            engine=engine,
            http_client=http_client,
        )
        app.dependency_overrides[get_services] = lambda: unconfigured

        response = client.get("/oauth-start", params={"provider": "gsc", "clientId": "c-1"})

        assert response.status_code == 500
        assert response.json()["ok"] is False
        assert stored_states(unconfigured) == []


class TestCallback:
    """Tests for GET /callback/{provider}."""

    def test_full_flow(self, client, services, google, token_payload):
        """Should connect the provider for the client that started the flow."""
        start = client.get("/oauth-start", params={"provider": "gsc", "clientId": "c-1"})
        google.add("POST", TOKEN, json=token_payload)

        response = client.get(
            "/callback/gsc",
            params={"code": "4/auth-code", "state": state_from(start.json()["url"])},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "provider": "gsc", "connected": True}
        assert services.store.list_connected_providers("c-1") == {Provider.GSC}
        assert stored_states(services) == []
        assert "ya29" not in response.text

    def test_redirects_to_app(self, client, settings, engine, http_client, google, token_payload):
        """Should send the browser back to the frontend when APP_ORIGIN is set."""
        with_app = Services.build(
            settings.model_copy(update={"APP_ORIGIN": "https://app.practice.test/"}),
            engine=engine,
            http_client=http_client,
        )
        app.dependency_overrides[get_services] = lambda: with_app
        with_app.state_store.save("state-1", "c-1", Provider.GA4)
        google.add("POST", TOKEN, json=token_payload)

        response = client.get(
            "/callback/ga4",
            params={"code": "4/auth-code", "state": "state-1"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == (
            "https://app.practice.test/oauth/callback?provider=ga4&status=success"
        )

    def test_consent_denied(self, client, services, google):
        response = client.get("/callback/gsc", params={"error": "access_denied", "state": "s"})

        assert response.status_code == 400
        assert response.json()["message"] == "Authorization failed: access_denied"
        assert google.requests == []

    def test_forged_state(self, client, services, google):
        response = client.get("/callback/gsc", params={"code": "4/code", "state": "forged"})

        assert response.status_code == 400
        assert google.requests == []
        assert services.store.list_connected_providers("c-1") == set()

    def test_unsupported_provider(self, client):
        response = client.get("/callback/twitter", params={"code": "4/code", "state": "s"})

        assert response.status_code == 400

    def test_rejected_code(self, client, services, google):
        """Should answer 502 and store nothing when Google rejects the code."""
        services.state_store.save("state-1", "c-1", Provider.GSC)
        google.add("POST", TOKEN, status=400, json={"error": "invalid_grant"})

        response = client.get("/callback/gsc", params={"code": "4/bad", "state": "state-1"})

        assert response.status_code == 502
        assert response.json()["ok"] is False
        assert services.store.list_connected_providers("c-1") == set()


class TestRefreshAndDisconnect:
    """Tests for POST /oauth-refresh and POST /oauth-disconnect."""

    def test_refresh(self, client, google, connect):
        connect("c-1", Provider.GSC, expires_in=-60)
        google.add("POST", TOKEN, json={"access_token": "ya29.renewed", "expires_in": 3599})

        response = client.post("/oauth-refresh", params={"provider": "gsc", "clientId": "c-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["provider"] == "gsc"
        assert body["expiresAt"] is not None

    def test_refresh_not_connected(self, client):
        response = client.post("/oauth-refresh", params={"provider": "gsc", "clientId": "c-1"})

        assert response.status_code == 404

    def test_disconnect(self, client, services, google, connect):
        connect("c-1", Provider.GBP)
        google.add("POST", REVOKE, status=200)

        response = client.post("/oauth-disconnect", params={"provider": "gbp", "clientId": "c-1"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "provider": "gbp", "connected": False}
        assert services.store.list_connected_providers("c-1") == set()

    def test_disconnect_unsupported_provider(self, client):
        response = client.post("/oauth-disconnect", params={"provider": "twitter", "clientId": "c-1"})

        assert response.status_code == 400


class TestHttpSurface:
    """Tests for CORS, unknown paths and unsupported methods."""

    def test_options_preflight(self, client):
        """Should answer OPTIONS with 200 and permissive CORS headers."""
        response = client.options(
            "/oauth-start",
            headers={
                "Origin": "https://app.practice.test",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "content-type" in response.headers["access-control-allow-headers"]
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_plain_options(self, client):
        response = client.options("/callback/gsc")

        assert response.status_code == 200
        assert response.text == "ok"

    def test_unsupported_method(self, client):
        """Should answer 405 with the error envelope."""
        response = client.delete("/oauth-start")

        assert response.status_code == 405
        assert response.json()["ok"] is False

    def test_get_on_post_endpoint(self, client):
        response = client.get("/oauth-disconnect", params={"provider": "gsc", "clientId": "c-1"})

        assert response.status_code == 405

    def test_unknown_path(self, client):
        response = client.get("/oauth-finish")

        assert response.status_code == 404
        assert response.json()["ok"] is False

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
