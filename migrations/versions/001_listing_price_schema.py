"""Initial schema for listing price indexing.

This migration creates:
- pricing_rules and currencies lookup tables
- products table with parent/variant hierarchy and listing_prices JSONB cache
- product_prices table with quantity tiers and JSONB price payloads

Revision ID: 001_listing_price_schema
Revises:
Create Date: 2025-12-08 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_listing_price_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'pricing_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'currencies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('iso_code', sa.String(length=3), nullable=False),
        sa.Column('factor', sa.Numeric(precision=12, scale=6), nullable=False, server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('iso_code', name='uq_currencies_iso_code'),
        sa.CheckConstraint('factor > 0', name='check_currency_factor_positive'),
    )

    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('parent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('product_number', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('listing_prices', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['products.id'], ondelete='CASCADE'),
        sa.CheckConstraint('id != parent_id', name='chk_product_no_self_parent'),
    )
    op.create_index('ix_products_parent_id', 'products', ['parent_id'])
    op.create_index('ix_products_product_number', 'products', ['product_number'], unique=True)

    op.create_table(
        'product_prices',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rule_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('currency_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity_start', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('quantity_end', sa.Integer(), nullable=True),
        sa.Column('price', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['rule_id'], ['pricing_rules.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['currency_id'], ['currencies.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('quantity_start >= 1', name='check_quantity_start_positive'),
        sa.CheckConstraint(
            'quantity_end IS NULL OR quantity_end >= quantity_start',
            name='check_quantity_range'
        ),
    )
    op.create_index('ix_product_prices_product_id', 'product_prices', ['product_id'])
    op.create_index('ix_product_prices_rule_id', 'product_prices', ['rule_id'])
    op.create_index(
        'idx_product_prices_open_tier',
        'product_prices',
        ['product_id'],
        postgresql_where=sa.text('quantity_end IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('idx_product_prices_open_tier', table_name='product_prices')
    op.drop_index('ix_product_prices_rule_id', table_name='product_prices')
    op.drop_index('ix_product_prices_product_id', table_name='product_prices')
    op.drop_table('product_prices')

    op.drop_index('ix_products_product_number', table_name='products')
    op.drop_index('ix_products_parent_id', table_name='products')
    op.drop_table('products')

    op.drop_table('currencies')
    op.drop_table('pricing_rules')
