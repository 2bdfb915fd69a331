"""Local cache buckets

Revision ID: 001
Revises:
Create Date: 2026-01-01 00:00:00.000000

This migration creates the single local cache table:
- cache_buckets: one JSON snapshot per entity kind
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cache_buckets',
        sa.Column('bucket_key', sa.String(length=100), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.PrimaryKeyConstraint('bucket_key'),
    )


def downgrade() -> None:
    op.drop_table('cache_buckets')
