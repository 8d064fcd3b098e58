"""
OAuth State model - anti-forgery state values issued by /oauth-start.

Each row binds one random state value to the (client, provider) pair that
requested authorization. The callback must present the exact value, for the
same provider, before ``expires_at``; the row is deleted when redeemed.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from practice_connect.db.base import Base
from practice_connect.models.api_credential import _as_utc


class OAuthState(Base):
    """SQLAlchemy ORM model for the 'oauth_states' table."""

    __tablename__ = "oauth_states"

    state: Mapped[str] = mapped_column(String(128), primary_key=True)

    client_id: Mapped[str] = mapped_column(String(64), nullable=False)

    provider: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > _as_utc(self.expires_at)

    def __repr__(self) -> str:
        return f"<OAuthState(client_id='{self.client_id}', provider='{self.provider}')>"
