"""
Google Environment Module - OAuth and data clients for Google providers.

This module provides:
- Google OAuth token handling shared by every provider
- Google Analytics 4 (properties, traffic metrics)
- Google Search Console (sites, search performance)
- Google Business Profile (locations, engagement metrics)

Key Design Decisions:
=====================
1. Shared Auth: One OAuth application; each provider requests only its scopes
2. Uniform Contract: Every data client exposes fetch_data() → ProviderResult
3. Shared HTTP: All clients use the injected httpx.AsyncClient

Usage:
======
    from practice_connect.environments.google import SearchConsoleClient

    client = SearchConsoleClient(store, http_client, timeout=15.0)
    result = await client.fetch_data("c-1", {"resource": "sites"})
    result.source  # DataSource.LIVE or DataSource.FALLBACK
"""

from practice_connect.environments.google.auth import GoogleAuthClient
from practice_connect.environments.google.data_client import GoogleDataClient
from practice_connect.environments.google.analytics import GoogleAnalyticsClient
from practice_connect.environments.google.search_console import SearchConsoleClient
from practice_connect.environments.google.business_profile import BusinessProfileClient

__all__ = [
    "GoogleAuthClient",
    "GoogleDataClient",
    "GoogleAnalyticsClient",
    "SearchConsoleClient",
    "BusinessProfileClient",
]
