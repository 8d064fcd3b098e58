"""
Credential Store - encrypted persistence of OAuth secrets.

Stores one secret per (client, provider, credential kind) in the
``api_credentials`` table. Values are encrypted with ``TokenCipher`` before
they reach the database and decrypted on the way out; plaintext never
touches storage or the logs.

Write Semantics:
================
- put() upserts: an existing row for the triple is overwritten (last writer
  wins). Two writers inserting the same new triple at once collide on the
  unique constraint; the loser retries as an update.
- put_tokens() writes the access token and (if issued) the refresh token in
  one transaction, so a half-stored connection is never visible.
- delete() without a kind removes the whole (client, provider) pair, which
  is what "disconnected" means.

Usage:
    store = CredentialStore(session_factory, cipher)
    store.put("client-1", Provider.GSC, CredentialKind.ACCESS_TOKEN, "ya29...", expiry)
    cred = store.get("client-1", Provider.GSC, CredentialKind.ACCESS_TOKEN)
    cred.secret  # "ya29..."
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Set, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from practice_connect.core.security import TokenCipher
from practice_connect.environments.base import CredentialNotFound, OAuthTokens
from practice_connect.environments.registry import Provider, get_provider, is_supported
from practice_connect.models.api_credential import ApiCredential, _as_utc


logger = logging.getLogger("practice_connect.services.credentials")


class CredentialKind(str, Enum):
    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"


@dataclass
class StoredCredential:
    """
    A decrypted credential handed to callers.

    Only lives in memory for the duration of a request; never persisted
    or logged in this form.
    """
    client_id: str
    provider: Provider
    kind: CredentialKind
    secret: str
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_expired(self, buffer: timedelta = timedelta(minutes=5)) -> bool:
        """True if the secret expires within ``buffer`` (never for no expiry)."""
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= (self.expires_at - buffer)

    def __repr__(self) -> str:
        return (
            f"<StoredCredential(client_id='{self.client_id}', provider='{self.provider.value}', "
            f"kind='{self.kind.value}')>"
        )


class CredentialStore:
    """
    Encrypted CRUD over ``api_credentials``.

    Each public method opens its own short-lived session from the injected
    factory, so one store instance is safe to share across requests.
    """

    def __init__(self, session_factory: sessionmaker, cipher: TokenCipher):
        self._session_factory = session_factory
        self._cipher = cipher

    # -----------------------------------------------------------------------
    # WRITES
    # -----------------------------------------------------------------------

    def put(
        self,
        client_id: str,
        provider: Union[str, Provider],
        kind: CredentialKind,
        secret_value: str,
        expiry: Optional[datetime] = None,
    ) -> None:
        """
        Encrypt and upsert one secret.

        Args:
            client_id: Owning client
            provider: Provider the secret is valid for
            kind: access_token or refresh_token
            secret_value: Plaintext secret
            expiry: When the secret stops working (None if unknown)
        """
        provider = get_provider(provider)
        encrypted = self._cipher.encrypt(secret_value)

        try:
            with self._session_factory() as session:
                self._upsert(session, client_id, provider, kind, encrypted, expiry)
                session.commit()
        except IntegrityError:
            # Another writer inserted the same triple first - overwrite it
            logger.info(
                f"Concurrent insert for {provider.value} {kind.value}, retrying as update",
                extra={"client_id": client_id, "provider": provider.value},
            )
            with self._session_factory() as session:
                self._upsert(session, client_id, provider, kind, encrypted, expiry)
                session.commit()

        logger.info(
            f"Stored {provider.value} {kind.value}",
            extra={"client_id": client_id, "provider": provider.value},
        )

    def put_tokens(
        self,
        client_id: str,
        provider: Union[str, Provider],
        tokens: OAuthTokens,
    ) -> None:
        """
        Store an access token and, if present, a refresh token atomically.

        When ``tokens.refresh_token`` is None the existing refresh token row
        (if any) is left untouched - Google only issues refresh tokens on
        the first consent or when prompt=consent forces one.
        """
        provider = get_provider(provider)
        encrypted_access = self._cipher.encrypt(tokens.access_token)
        encrypted_refresh = (
            self._cipher.encrypt(tokens.refresh_token) if tokens.refresh_token else None
        )

        def write(session: Session) -> None:
            self._upsert(
                session, client_id, provider, CredentialKind.ACCESS_TOKEN,
                encrypted_access, tokens.expires_at,
            )
            if encrypted_refresh is not None:
                self._upsert(
                    session, client_id, provider, CredentialKind.REFRESH_TOKEN,
                    encrypted_refresh, None,
                )

        try:
            with self._session_factory() as session:
                write(session)
                session.commit()
        except IntegrityError:
            logger.info(
                f"Concurrent token insert for {provider.value}, retrying as update",
                extra={"client_id": client_id, "provider": provider.value},
            )
            with self._session_factory() as session:
                write(session)
                session.commit()

        logger.info(
            f"Stored {provider.value} tokens (refresh_token={'yes' if encrypted_refresh else 'kept'})",
            extra={"client_id": client_id, "provider": provider.value},
        )

    def _upsert(
        self,
        session: Session,
        client_id: str,
        provider: Provider,
        kind: CredentialKind,
        encrypted: str,
        expiry: Optional[datetime],
    ) -> None:
        row = session.execute(
            select(ApiCredential).where(
                ApiCredential.client_id == client_id,
                ApiCredential.service_name == provider.value,
                ApiCredential.credential_type == kind.value,
            )
        ).scalar_one_or_none()

        if row is None:
            session.add(
                ApiCredential(
                    client_id=client_id,
                    service_name=provider.value,
                    credential_type=kind.value,
                    encrypted_value=encrypted,
                    expiration_date=expiry,
                )
            )
            # Surface unique-constraint conflicts inside the try block
            session.flush()
        else:
            row.encrypted_value = encrypted
            row.expiration_date = expiry
            row.updated_at = datetime.now(timezone.utc)

    # -----------------------------------------------------------------------
    # READS
    # -----------------------------------------------------------------------

    def get(
        self,
        client_id: str,
        provider: Union[str, Provider],
        kind: CredentialKind = CredentialKind.ACCESS_TOKEN,
    ) -> StoredCredential:
        """
        Load and decrypt one secret.

        Raises:
            CredentialNotFound: No row for the triple
            CredentialCorrupted: Row exists but fails decryption
        """
        provider = get_provider(provider)

        with self._session_factory() as session:
            row = session.execute(
                select(ApiCredential).where(
                    ApiCredential.client_id == client_id,
                    ApiCredential.service_name == provider.value,
                    ApiCredential.credential_type == kind.value,
                )
            ).scalar_one_or_none()

        if row is None:
            raise CredentialNotFound(
                f"No {kind.value} stored for {provider.value}"
            )

        return StoredCredential(
            client_id=client_id,
            provider=provider,
            kind=kind,
            secret=self._cipher.decrypt(row.encrypted_value),
            expires_at=_as_utc(row.expiration_date),
            updated_at=_as_utc(row.updated_at),
        )

    def list_connected_providers(self, client_id: str) -> Set[Provider]:
        """Providers for which the client has an access token row."""
        with self._session_factory() as session:
            names = session.execute(
                select(ApiCredential.service_name).where(
                    ApiCredential.client_id == client_id,
                    ApiCredential.credential_type == CredentialKind.ACCESS_TOKEN.value,
                )
            ).scalars().all()

        # Rows for providers removed from the registry are ignored
        return {Provider(name) for name in names if is_supported(name)}

    # -----------------------------------------------------------------------
    # DELETES
    # -----------------------------------------------------------------------

    def delete(
        self,
        client_id: str,
        provider: Union[str, Provider],
        kind: Optional[CredentialKind] = None,
    ) -> int:
        """
        Delete one secret, or every secret for the pair when kind is None.

        Returns:
            Number of rows removed (0 is not an error)
        """
        provider = get_provider(provider)

        stmt = delete(ApiCredential).where(
            ApiCredential.client_id == client_id,
            ApiCredential.service_name == provider.value,
        )
        if kind is not None:
            stmt = stmt.where(ApiCredential.credential_type == kind.value)

        with self._session_factory() as session:
            result = session.execute(stmt)
            session.commit()

        logger.info(
            f"Deleted {result.rowcount} {provider.value} credential(s)",
            extra={"client_id": client_id, "provider": provider.value},
        )
        return result.rowcount
