"""Initial schema for feeds, available and active items

Revision ID: 001
Revises:
Create Date: 2026-10-19

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
        'feed',
        sa.Column('feedurl', sa.Text, primary_key=True),
        sa.Column('title', sa.Text, nullable=False),
        # ISO 8601 text, see src.db.models.IsoTimestamp
        sa.Column('lastupdate', sa.Text, nullable=True),
    )

    op.create_table(
        'available',
        sa.Column('url', sa.Text, primary_key=True),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('publication', sa.Text, nullable=False),
        sa.Column('duration_secs', sa.Float, nullable=True),
        sa.Column('feedurl', sa.Text, sa.ForeignKey('feed.feedurl', ondelete='CASCADE'), nullable=False),
    )

    # No foreign key: active items outlive their feed
    op.create_table(
        'active',
        sa.Column('url', sa.Text, primary_key=True),
        sa.Column('title', sa.Text, nullable=True),
        sa.Column('position_secs', sa.Float, nullable=False),
        sa.Column('duration_secs', sa.Float, nullable=True),
        sa.Column('feed_title', sa.Text, nullable=True),
    )


def downgrade() -> None:
    op.drop_table('active')
    op.drop_table('available')
    op.drop_table('feed')
