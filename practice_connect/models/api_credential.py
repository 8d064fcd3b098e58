"""
API Credential model - stores encrypted OAuth secrets per client and provider.

One row holds one secret for one (client, provider, credential type) triple:

    client_id | service_name | credential_type | encrypted_value | expiration_date
    ----------+--------------+-----------------+-----------------+----------------
    c-123     | gsc          | access_token    | gAAAAAB...      | 2025-01-15 11:00
    c-123     | gsc          | refresh_token   | gAAAAAB...      | NULL

Design Principles:
==================
1. At most one live row per triple (unique constraint; writes upsert)
2. Values are Fernet ciphertext, never plaintext (see core.security)
3. Deleting every row of a (client, provider) pair means "not connected"
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from practice_connect.db.base import Base


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ApiCredential(Base):
    """
    SQLAlchemy ORM model for the 'api_credentials' table.
    """

    __tablename__ = "api_credentials"
    __table_args__ = (
        UniqueConstraint(
            "client_id", "service_name", "credential_type",
            name="uq_api_credentials_client_service_type",
        ),
    )

    # ---------------------------------------------------------------------------
    # PRIMARY KEY
    # ---------------------------------------------------------------------------
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ---------------------------------------------------------------------------
    # OWNERSHIP
    # ---------------------------------------------------------------------------
    # client_id: Tenant the credential acts on behalf of (opaque id)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # service_name: Provider identifier ("ga4", "gsc", "gbp")
    service_name: Mapped[str] = mapped_column(String(20), nullable=False)

    # credential_type: "access_token" or "refresh_token"
    credential_type: Mapped[str] = mapped_column(String(30), nullable=False)

    # ---------------------------------------------------------------------------
    # SECRET
    # ---------------------------------------------------------------------------
    encrypted_value: Mapped[str] = mapped_column(Text, nullable=False)

    # expiration_date: When an access token stops working (None if unknown)
    expiration_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ---------------------------------------------------------------------------
    # TIMESTAMPS
    # ---------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        # encrypted_value deliberately left out
        return (
            f"<ApiCredential(client_id='{self.client_id}', service='{self.service_name}', "
            f"type='{self.credential_type}')>"
        )
