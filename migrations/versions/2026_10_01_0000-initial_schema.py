"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - short_links table: short code mappings with expiry state and counters
    - scan_events table: append-only scan log
    """
    op.create_table(
        'short_links',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('display_name', sa.String(length=32), nullable=False),
        sa.Column('content_kind', sa.String(length=8), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('scan_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_scanned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('route_hint', sa.String(length=16), nullable=True),
        sa.Column('compact_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_short_links_code', 'short_links', ['code'], unique=True)
    op.create_index('ix_short_links_created_at', 'short_links', ['created_at'])
    op.create_index('ix_short_links_expires_at', 'short_links', ['expires_at'])
    op.create_index('ix_short_links_is_active', 'short_links', ['is_active'])

    op.create_table(
        'scan_events',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('short_link_id', sa.Integer(), nullable=False),
        sa.Column('user_agent', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('source_address', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('is_restrictive_context', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scanned_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['short_link_id'], ['short_links.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_scan_events_short_link_id', 'scan_events', ['short_link_id'])
    op.create_index('ix_scan_events_scanned_at', 'scan_events', ['scanned_at'])


def downgrade() -> None:
    """Drop all tables and indexes."""
    op.drop_index('ix_scan_events_scanned_at', table_name='scan_events')
    op.drop_index('ix_scan_events_short_link_id', table_name='scan_events')
    op.drop_table('scan_events')

    op.drop_index('ix_short_links_is_active', table_name='short_links')
    op.drop_index('ix_short_links_expires_at', table_name='short_links')
    op.drop_index('ix_short_links_created_at', table_name='short_links')
    op.drop_index('ix_short_links_code', table_name='short_links')
    op.drop_table('short_links')
