"""
Google OAuth Schemas - Data structures for Google's token endpoint.

token_type and id_token are ignored on parse.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List

from pydantic import BaseModel, Field

from practice_connect.environments.base import OAuthTokens


class GoogleTokenResponse(BaseModel):
    """
    Response from Google's token endpoint.

    Returned both when exchanging an auth code and when refreshing.

    Example response from Google:
    {
        "access_token": "ya29.a0AfB_byC...",
        "expires_in": 3599,
        "refresh_token": "1//0eXyz...",
        "scope": "https://www.googleapis.com/auth/webmasters.readonly",
        "token_type": "Bearer"
    }
    """
    access_token: str = Field(..., min_length=1, description="OAuth access token")
    expires_in: Optional[int] = Field(None, description="Seconds until expiration")
    refresh_token: Optional[str] = Field(None, description="Refresh token for renewal")
    scope: Optional[str] = Field(None, description="Space-separated scopes granted")

    def get_scopes_list(self) -> List[str]:
        """Convert space-separated scope string to list."""
        if self.scope:
            return self.scope.split()
        return []

    def get_expires_at(self) -> Optional[datetime]:
        """Calculate expiration datetime from expires_in seconds."""
        if self.expires_in:
            return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)
        return None

    def to_oauth_tokens(self) -> OAuthTokens:
        return OAuthTokens(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.get_expires_at(),
            scopes=self.get_scopes_list(),
        )
