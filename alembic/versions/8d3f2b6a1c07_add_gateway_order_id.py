"""Add gateway_order_id to webinar_registration and service_purchase

Revision ID: 8d3f2b6a1c07
Revises: 5c1e7a0b9d42
Create Date: 2026-10-17 15:40:03.902117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8d3f2b6a1c07'
down_revision: Union[str, Sequence[str], None] = '5c1e7a0b9d42'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PURCHASE_TABLES = ('webinar_registration', 'service_purchase')


def upgrade() -> None:
    """Upgrade schema."""
    from sqlalchemy import inspect
    conn = op.get_bind()
    inspector = inspect(conn)

    for table in PURCHASE_TABLES:
        columns = [col['name'] for col in inspector.get_columns(table)]
        if 'gateway_order_id' in columns:
            continue
        op.add_column(table, sa.Column('gateway_order_id', sa.String(), nullable=True))
        op.create_index(f'ix_{table}_gateway_order_id', table, ['gateway_order_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in PURCHASE_TABLES:
        op.drop_index(f'ix_{table}_gateway_order_id', table_name=table)
        op.drop_column(table, 'gateway_order_id')
