"""Initial price feed tables: assets, asset_price_mappings, price_population_jobs, asset_prices

Revision ID: v1_001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'v1_001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('symbol', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_assets'),
    )
    op.create_index('ix_assets_symbol', 'assets', ['symbol'], unique=True)

    op.create_table(
        'asset_price_mappings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('asset_id', sa.Uuid(), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('provider_id', sa.String(100), nullable=False),
        sa.Column('quote_currency', sa.String(10), nullable=False, server_default='USD'),
        sa.Column('is_popular', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('api_endpoint', sa.Text(), nullable=True),
        sa.Column('api_config', sa.JSON(), nullable=False),
        sa.Column('response_path', sa.Text(), nullable=True),
        sa.Column('auto_populate', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('populate_from_date', sa.Date(), nullable=True),
        sa.Column('last_populated_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id'], name='fk_asset_price_mappings_asset_id_assets'),
        sa.PrimaryKeyConstraint('id', name='pk_asset_price_mappings'),
        sa.UniqueConstraint('asset_id', 'provider', name='uq_asset_price_mappings_asset_provider'),
    )
    op.create_index('ix_asset_price_mappings_asset_id', 'asset_price_mappings', ['asset_id'])
    op.create_index('ix_asset_price_mappings_is_active', 'asset_price_mappings', ['is_active'])

    op.create_table(
        'price_population_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('asset_id', sa.Uuid(), nullable=False),
        sa.Column('mapping_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('current_progress_date', sa.Date(), nullable=True),
        sa.Column('total_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id'], name='fk_price_population_jobs_asset_id_assets'),
        sa.ForeignKeyConstraint(
            ['mapping_id'], ['asset_price_mappings.id'],
            name='fk_price_population_jobs_mapping_id_asset_price_mappings',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_price_population_jobs'),
    )
    op.create_index('ix_price_population_jobs_asset_id', 'price_population_jobs', ['asset_id'])
    op.create_index('ix_price_population_jobs_mapping_id', 'price_population_jobs', ['mapping_id'])
    op.create_index('ix_price_population_jobs_status', 'price_population_jobs', ['status'])

    op.create_table(
        'asset_prices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('symbol', sa.String(50), nullable=False),
        sa.Column('price_date', sa.Date(), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('price', sa.Numeric(28, 10), nullable=False),
        sa.Column('source', sa.String(50), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_asset_prices'),
        sa.UniqueConstraint('symbol', 'price_date', 'currency', name='uq_asset_prices_symbol_date_currency'),
    )
    op.create_index('ix_asset_prices_symbol', 'asset_prices', ['symbol'])
    op.create_index('ix_asset_prices_price_date', 'asset_prices', ['price_date'])


def downgrade() -> None:
    op.drop_index('ix_asset_prices_price_date', 'asset_prices')
    op.drop_index('ix_asset_prices_symbol', 'asset_prices')
    op.drop_table('asset_prices')
    op.drop_index('ix_price_population_jobs_status', 'price_population_jobs')
    op.drop_index('ix_price_population_jobs_mapping_id', 'price_population_jobs')
    op.drop_index('ix_price_population_jobs_asset_id', 'price_population_jobs')
    op.drop_table('price_population_jobs')
    op.drop_index('ix_asset_price_mappings_is_active', 'asset_price_mappings')
    op.drop_index('ix_asset_price_mappings_asset_id', 'asset_price_mappings')
    op.drop_table('asset_price_mappings')
    op.drop_index('ix_assets_symbol', 'assets')
    op.drop_table('assets')
