"""
Environments Module - Google provider integrations.

Architecture Overview:
======================
environments/
├── __init__.py           # Module exports
├── base.py               # Error taxonomy and shared token structure
├── registry.py           # Provider table (scopes, callback paths, API bases)
├── aggregation.py        # Daily rows, summaries, trend rules
├── fallback.py           # Deterministic synthetic data
└── google/
    ├── auth/             # OAuth token endpoint client
    ├── data_client.py    # Shared fetch/fallback contract
    ├── analytics/        # GA4 (Admin + Data APIs)
    ├── search_console/   # GSC (Webmasters v3)
    └── business_profile/ # GBP (Account Management, Business Information, Performance)

Design Principles:
==================
1. One OAuth application, per-provider scopes from the registry
2. Every data call returns a ProviderResult; upstream failures degrade to
   synthetic data instead of raising
3. Live and synthetic data share one shape
"""

from practice_connect.environments.base import (
    IntegrationError,
    UnsupportedProvider,
    InvalidRequest,
    InvalidCallback,
    CredentialNotFound,
    MissingConfiguration,
    CredentialCorrupted,
    UpstreamAuthFailure,
    UpstreamDataFailure,
    OAuthTokens,
)

__all__ = [
    "IntegrationError",
    "UnsupportedProvider",
    "InvalidRequest",
    "InvalidCallback",
    "CredentialNotFound",
    "MissingConfiguration",
    "CredentialCorrupted",
    "UpstreamAuthFailure",
    "UpstreamDataFailure",
    "OAuthTokens",
]
