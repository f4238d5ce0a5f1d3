"""create saves table

Revision ID: 20251108_0002_create_saves
Revises: 20251108_0001_create_collections
Create Date: 2025-11-08 00:00:02
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from saveable.config import get_settings

revision = '20251108_0002_create_saves'
down_revision = '20251108_0001_create_collections'
branch_labels = None
depends_on = None

TABLE = get_settings().saves_table
COLLECTIONS = get_settings().collections_table


def upgrade() -> None:
    op.create_table(
        TABLE,
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('saver_type', sa.String(255), nullable=False),
        sa.Column('saver_id', sa.BigInteger(), nullable=False),
        sa.Column('saveable_type', sa.String(255), nullable=False),
        sa.Column('saveable_id', sa.BigInteger(), nullable=False),
        sa.Column(
            'collection_id', sa.Integer(),
            sa.ForeignKey(f'{COLLECTIONS}.id', ondelete='SET NULL'),
            nullable=True, index=True,
        ),
        sa.Column('metadata', sa.JSON().with_variant(JSONB, 'postgresql'), nullable=True),
        sa.Column('order_column', sa.Integer(), nullable=False, server_default='0', index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('saver_type', 'saver_id', 'saveable_type', 'saveable_id', name='unique_save'),
        sa.CheckConstraint('order_column >= 0', name=f'ck_{TABLE}_order_column_non_negative'),
    )


def downgrade() -> None:
    op.drop_table(TABLE)
