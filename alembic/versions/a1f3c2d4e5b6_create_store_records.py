"""create store_records

Revision ID: a1f3c2d4e5b6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1f3c2d4e5b6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('store_records',
        sa.Column('partition_key', sa.String(length=512), nullable=False),
        sa.Column('sort_key', sa.String(length=512), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint('partition_key', 'sort_key')
    )
    op.create_index('ix_store_records_expires_at', 'store_records', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_store_records_expires_at', table_name='store_records')
    op.drop_table('store_records')
