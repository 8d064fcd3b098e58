"""
Authorization State Store - persisted anti-forgery state for the OAuth flow.

/oauth-start issues a random state bound to (client, provider); the callback
must hand it back. Because the callback request carries no client identity
of its own, the state row is also how the callback learns which client the
tokens belong to.

Rules:
======
- Single use: consume() deletes the row, and only the request whose delete
  actually removed it wins
- Provider-bound: a state issued for gsc cannot complete a ga4 callback
- Short-lived: rows expire after OAUTH_STATE_TTL_SECONDS; expired rows are
  purged whenever a new state is saved
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Union

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from practice_connect.environments.base import InvalidCallback
from practice_connect.environments.registry import Provider, get_provider
from practice_connect.models.oauth_state import OAuthState


logger = logging.getLogger("practice_connect.services.oauth_state")


class AuthorizationStateStore:
    """Database-backed store of pending authorization states."""

    def __init__(self, session_factory: sessionmaker, ttl_seconds: int = 600):
        self._session_factory = session_factory
        self._ttl = timedelta(seconds=ttl_seconds)

    def save(self, state: str, client_id: str, provider: Union[str, Provider]) -> datetime:
        """
        Persist a freshly issued state.

        Returns:
            The expiry time of the state
        """
        provider = get_provider(provider)
        now = datetime.now(timezone.utc)
        expires_at = now + self._ttl

        with self._session_factory() as session:
            purged = session.execute(
                delete(OAuthState).where(OAuthState.expires_at < now)
            ).rowcount
            session.add(
                OAuthState(
                    state=state,
                    client_id=client_id,
                    provider=provider.value,
                    created_at=now,
                    expires_at=expires_at,
                )
            )
            session.commit()

        if purged:
            logger.debug(f"Purged {purged} expired authorization state(s)")
        logger.info(
            f"Issued authorization state for {provider.value}",
            extra={"client_id": client_id, "provider": provider.value},
        )
        return expires_at

    def consume(self, state: str, provider: Union[str, Provider]) -> str:
        """
        Redeem a state exactly once.

        Args:
            state: Value returned by Google on the callback
            provider: Provider the callback arrived for

        Returns:
            The client id the state was issued to

        Raises:
            InvalidCallback: Unknown, already used, expired or issued for a
                different provider
        """
        provider = get_provider(provider)

        with self._session_factory() as session:
            row = session.execute(
                select(OAuthState).where(OAuthState.state == state)
            ).scalar_one_or_none()

            if row is None:
                logger.warning(f"Unknown or already used state on {provider.value} callback")
                raise InvalidCallback("Invalid or expired state parameter")

            client_id = row.client_id
            issued_for = row.provider
            expired = row.is_expired()

            # Delete before validating so a rejected state is burnt as well
            deleted = session.execute(
                delete(OAuthState).where(OAuthState.state == state)
            ).rowcount
            session.commit()

        if deleted != 1:
            logger.warning(f"State on {provider.value} callback was redeemed concurrently")
            raise InvalidCallback("Invalid or expired state parameter")

        if issued_for != provider.value:
            logger.warning(
                f"State issued for {issued_for} presented on {provider.value} callback",
                extra={"client_id": client_id},
            )
            raise InvalidCallback("State does not match provider")

        if expired:
            logger.warning(
                f"Expired state on {provider.value} callback",
                extra={"client_id": client_id},
            )
            raise InvalidCallback("Invalid or expired state parameter")

        return client_id
