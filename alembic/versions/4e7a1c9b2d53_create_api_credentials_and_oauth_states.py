"""create api_credentials and oauth_states tables

Revision ID: 4e7a1c9b2d53
Revises:
Create Date: 2025-06-02 10:00:00.000000

This migration adds the two tables behind provider connections:

api_credentials
    One encrypted secret per (client, provider, credential type).
    The unique constraint is what makes credential writes upserts.

oauth_states
    Pending authorization states issued by /oauth-start. Rows are
    deleted when redeemed and purged once expired.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e7a1c9b2d53'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the api_credentials and oauth_states tables."""
    op.create_table(
        'api_credentials',
        # Primary key
        sa.Column('id', sa.Uuid(), nullable=False),

        # Ownership
        sa.Column('client_id', sa.String(length=64), nullable=False),
        sa.Column('service_name', sa.String(length=20), nullable=False),
        sa.Column('credential_type', sa.String(length=30), nullable=False),

        # Fernet ciphertext
        sa.Column('encrypted_value', sa.Text(), nullable=False),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),

        # Constraints
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'client_id', 'service_name', 'credential_type',
            name='uq_api_credentials_client_service_type',
        ),
    )

    # Index on client_id for connection status lookups
    op.create_index(
        op.f('ix_api_credentials_client_id'),
        'api_credentials',
        ['client_id'],
        unique=False
    )

    op.create_table(
        'oauth_states',
        sa.Column('state', sa.String(length=128), nullable=False),
        sa.Column('client_id', sa.String(length=64), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('state'),
    )

    # Index on expires_at for purging expired states
    op.create_index(
        op.f('ix_oauth_states_expires_at'),
        'oauth_states',
        ['expires_at'],
        unique=False
    )


def downgrade() -> None:
    """Drop the oauth_states and api_credentials tables."""
    op.drop_index(op.f('ix_oauth_states_expires_at'), table_name='oauth_states')
    op.drop_table('oauth_states')
    op.drop_index(op.f('ix_api_credentials_client_id'), table_name='api_credentials')
    op.drop_table('api_credentials')
