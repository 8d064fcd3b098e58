"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from practice_connect.models.api_credential import ApiCredential
from practice_connect.models.oauth_state import OAuthState

__all__ = ["ApiCredential", "OAuthState"]
