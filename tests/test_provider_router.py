"""
Tests for the provider data and integration status endpoints.

Tests cover:
- Listing endpoints (/gsc/sites, /ga4/properties, /gbp/locations)
- Refresh of expired tokens before a provider call
- GET /providers/{provider}/data live, fallback and validation
- GET /integrations/status
"""

from practice_connect.environments.registry import Provider


TOKEN = "oauth2.googleapis.com/token"
SITES = "/webmasters/v3/sites"

SITES_PAYLOAD = {"siteEntry": [{"siteUrl": "https://example-dental.com/", "permissionLevel": "siteOwner"}]}


class TestListingEndpoints:
    """Tests for the provider listing endpoints."""

    def test_not_connected(self, client, google):
        """Should answer 404 naming the provider, without calling Google."""
        response = client.get("/gsc/sites", params={"clientId": "c-1"})

        assert response.status_code == 404
        assert response.json() == {
            "ok": False,
            "message": "No Google Search Console credentials found",
        }
        assert google.requests == []

    def test_missing_client_id(self, client):
        response = client.get("/ga4/properties")

        assert response.status_code == 400

    def test_sites(self, client, google, connect):
        connect("c-1", Provider.GSC)
        google.add("GET", SITES, json=SITES_PAYLOAD)

        response = client.get("/gsc/sites", params={"clientId": "c-1"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "sites": [{
                "id": "https://example-dental.com/",
                "displayName": "https://example-dental.com/",
                "permissionLevel": "siteOwner",
            }],
            "connected": True,
            "degraded": False,
        }

    def test_upstream_failure_is_degraded(self, client, google, connect):
        """Should still answer 200, with demo entries flagged as degraded."""
        connect("c-1", Provider.GBP)
        google.add("GET", "mybusinessaccountmanagement", status=500)

        response = client.get("/gbp/locations", params={"clientId": "c-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["degraded"] is True
        assert body["connected"] is True
        assert len(body["locations"]) >= 1

    def test_expired_token_is_refreshed_first(self, client, services, google, connect):
        connect("c-1", Provider.GSC, access_token="ya29.old", expires_in=-60)
        google.add("POST", TOKEN, json={"access_token": "ya29.renewed", "expires_in": 3599})
        google.add("GET", SITES, json=SITES_PAYLOAD)

        response = client.get("/gsc/sites", params={"clientId": "c-1"})

        assert response.status_code == 200
        assert response.json()["degraded"] is False
        assert google.calls_to(SITES)[0].headers["Authorization"] == "Bearer ya29.renewed"
        assert services.store.get("c-1", "gsc").secret == "ya29.renewed"

    def test_failed_refresh_still_attempts_call(self, client, google, connect):
        """Should log the refresh failure and degrade if Google rejects the old token."""
        connect("c-1", Provider.GSC, access_token="ya29.old", expires_in=-60)
        google.add("POST", TOKEN, status=400, json={"error": "invalid_grant"})
        google.add("GET", SITES, status=401)

        response = client.get("/gsc/sites", params={"clientId": "c-1"})

        assert response.status_code == 200
        assert response.json()["degraded"] is True
        assert google.calls_to(SITES)[0].headers["Authorization"] == "Bearer ya29.old"


class TestProviderDataEndpoint:
    """Tests for GET /providers/{provider}/data."""

    def test_not_connected_serves_demo_data(self, client, google):
        response = client.get(
            "/providers/ga4/data", params={"clientId": "c-1", "resource": "properties"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == "ga4"
        assert body["connected"] is False
        assert body["source"] == "fallback"
        assert body["degraded"] is False
        assert len(body["data"]["properties"]) >= 1
        assert google.requests == []

    def test_live_metrics(self, client, google, connect):
        connect("c-1", Provider.GSC)
        google.add("POST", "/searchAnalytics/query", json={"rows": [
            {"keys": ["2025-03-01"], "clicks": 5, "impressions": 100, "ctr": 0.05, "position": 2.0},
        ]})

        response = client.get("/providers/gsc/data", params={
            "clientId": "c-1",
            "resource": "metrics",
            "target": "sc-domain:example-dental.com",
            "startDate": "2025-03-01",
            "endDate": "2025-03-01",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "live"
        assert body["data"]["summary"]["totalClicks"] == 5
        assert body["data"]["target"] == "sc-domain:example-dental.com"

    def test_fallback_metrics_cover_window(self, client):
        response = client.get("/providers/gbp/data", params={
            "clientId": "c-1",
            "resource": "metrics",
            "target": "locations/55",
            "startDate": "2025-03-01",
            "endDate": "2025-03-10",
        })

        assert response.status_code == 200
        assert len(response.json()["data"]["rows"]) == 10

    def test_invalid_request(self, client):
        response = client.get(
            "/providers/gsc/data", params={"clientId": "c-1", "resource": "metrics"}
        )

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_invalid_request_does_not_refresh(self, client, services, google, connect):
        """Should reject the request before renewing an expired token."""
        connect("c-1", Provider.GSC, access_token="ya29.old", expires_in=-60)
        google.add("POST", TOKEN, json={"access_token": "ya29.renewed", "expires_in": 3599})

        response = client.get(
            "/providers/gsc/data", params={"clientId": "c-1", "resource": "bogus"}
        )

        assert response.status_code == 400
        assert google.calls_to(TOKEN) == []
        assert services.store.get("c-1", "gsc").secret == "ya29.old"

    def test_valid_request_refreshes_expired_token(self, client, google, connect):
        connect("c-1", Provider.GSC, access_token="ya29.old", expires_in=-60)
        google.add("POST", TOKEN, json={"access_token": "ya29.renewed", "expires_in": 3599})
        google.add("GET", SITES, json=SITES_PAYLOAD)

        response = client.get(
            "/providers/gsc/data", params={"clientId": "c-1", "resource": "sites"}
        )

        assert response.status_code == 200
        assert len(google.calls_to(TOKEN)) == 1
        assert google.calls_to(SITES)[0].headers["Authorization"] == "Bearer ya29.renewed"

    def test_limit_is_passed_through(self, client):
        response = client.get("/providers/gsc/data", params={
            "clientId": "c-1",
            "resource": "top-queries",
            "target": "https://example-dental.com/",
            "startDate": "2025-03-01",
            "endDate": "2025-03-31",
            "limit": 3,
        })

        assert response.status_code == 200
        assert len(response.json()["data"]["queries"]) == 3

    def test_limit_out_of_range(self, client):
        response = client.get("/providers/gbp/data", params={
            "clientId": "c-1",
            "resource": "reviews",
            "target": "accounts/1/locations/55",
            "startDate": "2025-03-01",
            "endDate": "2025-03-31",
            "limit": 500,
        })

        assert response.status_code == 400

    def test_missing_resource(self, client):
        response = client.get("/providers/gsc/data", params={"clientId": "c-1"})

        assert response.status_code == 400

    def test_unsupported_provider(self, client):
        response = client.get(
            "/providers/twitter/data", params={"clientId": "c-1", "resource": "sites"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Unsupported provider: twitter"


class TestIntegrationStatus:
    """Tests for GET /integrations/status."""

    def test_status(self, client, connect):
        connect("c-1", Provider.GSC)

        response = client.get("/integrations/status", params={"clientId": "c-1"})

        assert response.status_code == 200
        assert response.json() == {
            "clientId": "c-1",
            "connected": ["gsc"],
            "missing": ["ga4", "gbp"],
        }

    def test_required_subset(self, client, connect):
        connect("c-1", Provider.GSC)

        response = client.get(
            "/integrations/status", params={"clientId": "c-1", "required": "gbp,gsc"}
        )

        assert response.json()["missing"] == ["gbp"]

    def test_unknown_required_provider(self, client):
        response = client.get(
            "/integrations/status", params={"clientId": "c-1", "required": "twitter"}
        )

        assert response.status_code == 400

    def test_missing_client_id(self, client):
        response = client.get("/integrations/status")

        assert response.status_code == 400
