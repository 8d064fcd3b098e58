"""
Google Auth Module - OAuth 2.0 token handling shared by all Google providers.

OAuth 2.0 Flow Overview:
========================
1. Client asks to connect a provider (/oauth-start)
2. Backend builds the consent URL with that provider's scopes
3. User grants permissions at Google
4. Google redirects back with an authorization code (/callback/{provider})
5. Backend exchanges the code for access + refresh tokens
6. Tokens are encrypted and stored for later API calls
"""

from practice_connect.environments.google.auth.client import GoogleAuthClient
from practice_connect.environments.google.auth.schemas import GoogleTokenResponse

__all__ = [
    "GoogleAuthClient",
    "GoogleTokenResponse",
]
