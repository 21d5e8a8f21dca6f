"""initial schema with users and donation tables

Revision ID: 3b9e5c1d2a47
Revises:
Create Date: 2026-10-18 10:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b9e5c1d2a47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    ]


def _donation_columns() -> list[sa.Column]:
    """Columns shared by both donation tables."""
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner'),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('details', sa.String(length=100), nullable=False),
        sa.Column('pay_method', sa.String(length=16), nullable=False),
        sa.Column('merchant_id', sa.String(length=64), nullable=False),
        sa.Column('cardholder_email', sa.String(length=254), nullable=False),
        sa.Column('cardholder_name', sa.String(length=64), nullable=True),
        sa.Column('cardholder_phone_number', sa.String(length=20), nullable=True),
        sa.Column('cardholder_address', sa.String(length=255), nullable=True),
        sa.Column('cardholder_national_id', sa.String(length=20), nullable=True),
        sa.Column('cardholder_zip_code', sa.String(length=10), nullable=True),
        sa.Column('card_bin_code', sa.String(length=6), nullable=False),
        sa.Column('card_last_four', sa.String(length=4), nullable=False),
        sa.Column('card_issuer', sa.String(length=64), nullable=False),
        sa.Column('card_funding', sa.Integer(), nullable=True),
        sa.Column('card_type', sa.Integer(), nullable=True),
        sa.Column('card_level', sa.String(length=32), nullable=False),
        sa.Column('card_country', sa.String(length=64), nullable=False),
        sa.Column('card_country_code', sa.String(length=8), nullable=False),
        sa.Column('card_expiry_date', sa.String(length=6), nullable=False),
        sa.Column('rec_trade_id', sa.String(length=64), nullable=True),
        sa.Column('bank_transaction_id', sa.String(length=64), nullable=True),
        sa.Column('transaction_time', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('send_receipt', sa.String(length=8), nullable=False),
        sa.Column('to_feedback', sa.Boolean(), nullable=False),
        *_timestamps(),
    ]


def upgrade() -> None:
    """Create users, pay_by_prime_donations and periodic_donations."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('activate_token', sa.String(length=128), nullable=True),
        sa.Column('activate_token_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'pay_by_prime_donations',
        *_donation_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_pay_by_prime_donations'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name='fk_pay_by_prime_donations_user_id'),
        sa.UniqueConstraint('order_number', name='uq_pay_by_prime_donations_order_number'),
        sa.CheckConstraint('amount >= 1', name='ck_prime_amount_positive'),
    )
    op.create_index('ix_pay_by_prime_donations_user_id',
                    'pay_by_prime_donations', ['user_id'])
    op.create_index('idx_prime_user_created',
                    'pay_by_prime_donations', ['user_id', 'created_at'])

    op.create_table(
        'periodic_donations',
        *_donation_columns(),
        sa.Column('frequency', sa.String(length=16), nullable=False),
        sa.Column('periodic_status', sa.String(length=16), nullable=False),
        sa.Column('card_token', sa.String(length=128), nullable=True),
        sa.Column('card_key', sa.String(length=128), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_periodic_donations'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name='fk_periodic_donations_user_id'),
        sa.UniqueConstraint('order_number', name='uq_periodic_donations_order_number'),
        sa.CheckConstraint('amount >= 1', name='ck_periodic_amount_positive'),
    )
    op.create_index('ix_periodic_donations_user_id',
                    'periodic_donations', ['user_id'])
    op.create_index('idx_periodic_user_created',
                    'periodic_donations', ['user_id', 'created_at'])


def downgrade() -> None:
    """Drop the donation tables and users."""
    op.drop_index('idx_periodic_user_created', table_name='periodic_donations')
    op.drop_index('ix_periodic_donations_user_id', table_name='periodic_donations')
    op.drop_table('periodic_donations')
    op.drop_index('idx_prime_user_created', table_name='pay_by_prime_donations')
    op.drop_index('ix_pay_by_prime_donations_user_id', table_name='pay_by_prime_donations')
    op.drop_table('pay_by_prime_donations')
    op.drop_table('users')
