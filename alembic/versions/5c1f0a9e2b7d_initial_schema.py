"""Initial schema

Revision ID: 5c1f0a9e2b7d
Revises:
Create Date: 2025-01-06 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c1f0a9e2b7d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list:
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
    ]


def _account_fk(nullable: bool = False) -> sa.Column:
    return sa.Column('account_id', sa.Uuid(), nullable=nullable)


def upgrade() -> None:
    op.create_table('account',
    *_base_columns(),
    sa.Column('email', sa.String(length=320), nullable=False),
    sa.Column('display_name', sa.String(length=255), nullable=True),
    sa.Column('auth0_id', sa.String(length=255), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email'),
    sa.UniqueConstraint('auth0_id')
    )
    op.create_table('credit_balance',
    *_base_columns(),
    _account_fk(),
    sa.Column('balance', sa.BigInteger(), nullable=False),
    sa.CheckConstraint('balance >= 0', name='ck_credit_balance_non_negative'),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('account_id', name='uq_credit_balance_account')
    )
    op.create_table('credit_transaction',
    *_base_columns(),
    _account_fk(),
    sa.Column('delta', sa.BigInteger(), nullable=False),
    sa.Column('reason', sa.String(length=64), nullable=False),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('balance_after', sa.BigInteger(), nullable=False),
    sa.Column('grant_period', sa.String(length=7), nullable=True),
    sa.CheckConstraint('delta <> 0', name='ck_credit_transaction_nonzero_delta'),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('account_id', 'grant_period', name='uq_credit_transaction_grant_period')
    )
    op.create_index('idx_credit_transaction_account_created', 'credit_transaction', ['account_id', 'created_at'], unique=False)
    op.create_table('usage_event',
    *_base_columns(),
    _account_fk(),
    sa.Column('event_type', sa.String(length=100), nullable=False),
    sa.Column('cost', sa.Integer(), nullable=False),
    sa.Column('tokens', sa.Integer(), nullable=True),
    sa.Column('request_id', sa.String(length=255), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('balance_after', sa.BigInteger(), nullable=True),
    sa.CheckConstraint('cost > 0', name='ck_usage_event_positive_cost'),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('account_id', 'request_id', name='uq_usage_event_request')
    )
    op.create_index('idx_usage_event_account_created', 'usage_event', ['account_id', 'created_at'], unique=False)
    op.create_table('subscription',
    *_base_columns(),
    _account_fk(),
    sa.Column('plan_code', sa.String(length=100), nullable=False),
    sa.Column('status', sa.String(length=32), nullable=False),
    sa.Column('current_period_start', sa.DateTime(), nullable=True),
    sa.Column('current_period_end', sa.DateTime(), nullable=True),
    sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False),
    sa.Column('stripe_subscription_id', sa.String(length=255), nullable=True),
    sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('stripe_subscription_id')
    )
    op.create_index('idx_subscription_account_status', 'subscription', ['account_id', 'status'], unique=False)
    op.create_index('idx_subscription_stripe_customer', 'subscription', ['stripe_customer_id'], unique=False)
    op.create_table('api_key',
    *_base_columns(),
    _account_fk(),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('prefix', sa.String(length=16), nullable=False),
    sa.Column('key_hash', sa.String(length=64), nullable=False),
    sa.Column('revoked', sa.Boolean(), nullable=False),
    sa.Column('last_used_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('key_hash')
    )
    op.create_index('idx_api_key_account', 'api_key', ['account_id'], unique=False)
    op.create_table('rate_limit_counter',
    *_base_columns(),
    _account_fk(),
    sa.Column('scope', sa.String(length=100), nullable=False),
    sa.Column('window_start', sa.DateTime(), nullable=False),
    sa.Column('hits', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('account_id', 'scope', 'window_start', name='uq_rate_limit_window')
    )
    op.create_table('billing_event',
    *_base_columns(),
    _account_fk(nullable=True),
    sa.Column('event_type', sa.String(length=100), nullable=False),
    sa.Column('stripe_event_id', sa.String(length=255), nullable=True),
    sa.Column('event_data', sa.JSON(), nullable=True),
    sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('stripe_event_id')
    )
    op.create_index('idx_billing_event_account', 'billing_event', ['account_id'], unique=False)
    op.create_index('idx_billing_event_type', 'billing_event', ['event_type'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_billing_event_type', table_name='billing_event')
    op.drop_index('idx_billing_event_account', table_name='billing_event')
    op.drop_table('billing_event')
    op.drop_table('rate_limit_counter')
    op.drop_index('idx_api_key_account', table_name='api_key')
    op.drop_table('api_key')
    op.drop_index('idx_subscription_stripe_customer', table_name='subscription')
    op.drop_index('idx_subscription_account_status', table_name='subscription')
    op.drop_table('subscription')
    op.drop_index('idx_usage_event_account_created', table_name='usage_event')
    op.drop_table('usage_event')
    op.drop_index('idx_credit_transaction_account_created', table_name='credit_transaction')
    op.drop_table('credit_transaction')
    op.drop_table('credit_balance')
    op.drop_table('account')
