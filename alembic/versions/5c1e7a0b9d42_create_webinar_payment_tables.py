"""create webinar payment tables

Revision ID: 5c1e7a0b9d42
Revises:
Create Date: 2026-10-17 09:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e7a0b9d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _purchase_columns():
    return [
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, index=True),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('coupon_id', sa.Integer(), sa.ForeignKey('coupon.id'), nullable=True),
        sa.Column('payment_status', sa.String(), nullable=False, server_default='pending', index=True),
        sa.Column('payment_id', sa.String(), nullable=True, index=True),
        sa.Column('invoice_number', sa.String(), nullable=True, unique=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('password', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='user'),
        sa.Column('can_login', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'webinar',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('host_name', sa.String(), nullable=True),
        sa.Column('webinar_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(), nullable=False, server_default='00:00'),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_slots', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available_slots', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('meeting_link', sa.String(), nullable=True),
        sa.Column('meeting_platform', sa.String(), nullable=False, server_default='zoom'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'service',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('short_description', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'coupon',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('code', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('discount_type', sa.String(), nullable=False),
        sa.Column('discount_value', sa.Float(), nullable=False),
        sa.Column('max_discount_amount', sa.Float(), nullable=True),
        sa.Column('min_purchase_amount', sa.Float(), nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('max_uses_per_user', sa.Integer(), nullable=True, server_default='1'),
        sa.Column('current_uses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('applies_to', sa.String(), nullable=False, server_default='all'),
        sa.Column('applicable_items', sa.JSON(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=True),
        sa.Column('valid_until', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'webinar_registration',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('webinar_id', sa.Integer(), sa.ForeignKey('webinar.id'), nullable=False, index=True),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
        *_purchase_columns(),
    )
    op.create_table(
        'service_purchase',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('service.id'), nullable=False, index=True),
        sa.Column('purchased_at', sa.DateTime(), nullable=False),
        *_purchase_columns(),
    )
    op.create_table(
        'coupon_usage',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('coupon_id', sa.Integer(), sa.ForeignKey('coupon.id'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, index=True),
        sa.Column('item_type', sa.String(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('used_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'site_settings',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('site_name', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('gst_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gst_number', sa.String(), nullable=True),
        sa.Column('gst_rate', sa.Float(), nullable=True, server_default='18'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'email_log',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('to_email', sa.String(), nullable=False),
        sa.Column('subject', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('related_type', sa.String(), nullable=True),
        sa.Column('related_id', sa.Integer(), nullable=True),
        sa.Column('error', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('email_log')
    op.drop_table('site_settings')
    op.drop_table('coupon_usage')
    op.drop_table('service_purchase')
    op.drop_table('webinar_registration')
    op.drop_table('coupon')
    op.drop_table('service')
    op.drop_table('webinar')
    op.drop_table('user')
