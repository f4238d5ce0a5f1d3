"""create collections table

Revision ID: 20251108_0001_create_collections
Revises:
Create Date: 2025-11-08 00:00:01
"""
from alembic import op
import sqlalchemy as sa

from saveable.config import get_settings

revision = '20251108_0001_create_collections'
down_revision = None
branch_labels = None
depends_on = None

TABLE = get_settings().collections_table


def upgrade() -> None:
    op.create_table(
        TABLE,
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_type', sa.String(255), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey(f'{TABLE}.id'), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(f'ix_{TABLE}_owner', TABLE, ['owner_type', 'owner_id'])


def downgrade() -> None:
    op.drop_index(f'ix_{TABLE}_owner', table_name=TABLE)
    op.drop_table(TABLE)
