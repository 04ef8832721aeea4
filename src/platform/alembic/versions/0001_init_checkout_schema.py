"""init_checkout_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Schema:
- checkout: Checkout state machine row with the event snapshot and customer details
- payment_attempt: One row per gateway request (STK push / Stripe session)
- orders: Recorded order per paid checkout (one per checkout)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create checkout, payment_attempt and orders tables."""

    op.create_table(
        'checkout',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.String(length=64), nullable=False),
        sa.Column('event_name', sa.String(length=255), nullable=False),
        sa.Column('event_date', sa.String(length=64), nullable=False),
        sa.Column('event_location', sa.String(length=255), nullable=False),
        sa.Column('event_unit_price', sa.Integer(), nullable=False),
        sa.Column('event_image_ref', sa.Text(), nullable=True),
        sa.Column('ticket_count', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(length=32), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=12), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('current_attempt_id', sa.Uuid(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('field_errors', sa.JSON(), nullable=False),
        sa.Column('redirect_url', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_checkout_event_id'), 'checkout', ['event_id'])
    op.create_index(op.f('ix_checkout_state'), 'checkout', ['state'])

    op.create_table(
        'payment_attempt',
        sa.Column('request_id', sa.Uuid(), nullable=False),
        sa.Column('checkout_id', sa.Uuid(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('external_reference', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('receipt', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['checkout_id'], ['checkout.id']),
        sa.PrimaryKeyConstraint('request_id'),
        sa.UniqueConstraint('external_reference'),
    )
    op.create_index(op.f('ix_payment_attempt_checkout_id'), 'payment_attempt', ['checkout_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('checkout_id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.String(length=64), nullable=False),
        sa.Column('event_name', sa.String(length=255), nullable=False),
        sa.Column('event_date', sa.String(length=64), nullable=False),
        sa.Column('event_location', sa.String(length=255), nullable=False),
        sa.Column('ticket_count', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=12), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('external_receipt', sa.String(length=255), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('checkout_id'),
    )
    op.create_index(op.f('ix_orders_customer_email'), 'orders', ['customer_email'])
    op.create_index(op.f('ix_orders_created_at'), 'orders', ['created_at'])


def downgrade() -> None:
    op.drop_index(op.f('ix_orders_created_at'), table_name='orders')
    op.drop_index(op.f('ix_orders_customer_email'), table_name='orders')
    op.drop_table('orders')
    op.drop_index(op.f('ix_payment_attempt_checkout_id'), table_name='payment_attempt')
    op.drop_table('payment_attempt')
    op.drop_index(op.f('ix_checkout_state'), table_name='checkout')
    op.drop_index(op.f('ix_checkout_event_id'), table_name='checkout')
    op.drop_table('checkout')
