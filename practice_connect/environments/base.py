"""
Base classes and shared types for provider integrations.

This module defines the error taxonomy and the provider-agnostic data
structures exchanged between the OAuth flow, the credential store and the
per-provider data clients.

Error Taxonomy:
===============
Every error carries the HTTP status the API layer answers with, so routes
never re-map exceptions by hand.

- UnsupportedProvider   400  provider identifier outside the registry
- InvalidRequest        400  malformed request parameters at the boundary
- InvalidCallback       400  missing/forged/replayed code or state on callback
- CredentialNotFound    404  no stored credential where one is demanded
- MissingConfiguration  500  deployment defect (OAuth app id, origin, key)
- UpstreamAuthFailure   502  Google token endpoint rejected the request
- UpstreamDataFailure   502  Google data API failed (absorbed by data clients)
- CredentialCorrupted   500  stored value failed authentication on decrypt
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------


class IntegrationError(Exception):
    """Base exception for all integration errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedProvider(IntegrationError):
    """Raised when a provider identifier is not in the registry."""

    status_code = 400

    def __init__(self, provider: Optional[str]):
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class InvalidRequest(IntegrationError):
    """Raised when caller-supplied parameters are missing or malformed."""

    status_code = 400


class InvalidCallback(IntegrationError):
    """Raised when an OAuth callback carries a missing or untrusted code/state."""

    status_code = 400


class CredentialNotFound(IntegrationError):
    """Raised when no credential is stored for a (client, provider, kind)."""

    status_code = 404


class MissingConfiguration(IntegrationError):
    """Raised when server-side OAuth or encryption configuration is absent."""

    status_code = 500


class CredentialCorrupted(IntegrationError):
    """Raised when a stored secret cannot be decrypted with the server key."""

    status_code = 500


class UpstreamAuthFailure(IntegrationError):
    """Raised when Google's token endpoint rejects an exchange or refresh."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamDataFailure(IntegrationError):
    """Raised when a Google data API call fails after a credential existed."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------


@dataclass
class OAuthTokens:
    """
    Standardized token data returned by the token endpoint.

    Used to transfer token data between the OAuth client and storage.
    """
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None
