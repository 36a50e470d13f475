"""Create kingdom engine tables

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-18 09:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'kingdoms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('level >= 1', name='ck_kingdoms_level'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id'),
    )
    op.create_table(
        'alliances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('leader_player_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'alliance_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('alliance_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint("role IN ('leader', 'officer', 'member')", name='ck_alliance_members_role'),
        sa.ForeignKeyConstraint(['alliance_id'], ['alliances.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id'),
    )
    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kingdom_id', sa.Integer(), nullable=False),
        sa.Column('resource_type', sa.String(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_resources_amount'),
        sa.ForeignKeyConstraint(['kingdom_id'], ['kingdoms.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kingdom_id', 'resource_type', name='uq_resources_kingdom_type'),
    )
    op.create_table(
        'units',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kingdom_id', sa.Integer(), nullable=False),
        sa.Column('unit_type', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('training_in_progress', sa.Boolean(), nullable=False),
        sa.Column('training_complete_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('level >= 1', name='ck_units_level'),
        sa.CheckConstraint('quantity >= 0', name='ck_units_quantity'),
        sa.ForeignKeyConstraint(['kingdom_id'], ['kingdoms.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kingdom_id', 'unit_type', name='uq_units_kingdom_type'),
    )
    op.create_index('idx_units_training', 'units', ['kingdom_id', 'training_in_progress'], unique=False)
    op.create_table(
        'buildings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kingdom_id', sa.Integer(), nullable=False),
        sa.Column('building_type', sa.String(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('position_x', sa.Integer(), nullable=False),
        sa.Column('position_y', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('level >= 1', name='ck_buildings_level'),
        sa.ForeignKeyConstraint(['kingdom_id'], ['kingdoms.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_buildings_kingdom_type', 'buildings', ['kingdom_id', 'building_type'], unique=False)
    op.create_table(
        'market_offers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_kingdom_id', sa.Integer(), nullable=True),
        sa.Column('resource_type', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_type', sa.String(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('price_amount >= 0', name='ck_market_offers_price'),
        sa.CheckConstraint('quantity >= 0', name='ck_market_offers_quantity'),
        sa.ForeignKeyConstraint(['seller_kingdom_id'], ['kingdoms.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_market_offers_created', 'market_offers', ['created_at'], unique=False)
    op.create_index('idx_market_offers_seller', 'market_offers', ['seller_kingdom_id'], unique=False)
    op.create_table(
        'battles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attacker_kingdom_id', sa.Integer(), nullable=False),
        sa.Column('defender_kingdom_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('resources_stolen', sa.JSON(), nullable=False),
        sa.Column('units_lost', sa.JSON(), nullable=False),
        sa.Column('attacker_power', sa.Integer(), nullable=False),
        sa.Column('defender_power', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint("status IN ('completed', 'failed')", name='ck_battles_status'),
        sa.ForeignKeyConstraint(['attacker_kingdom_id'], ['kingdoms.id']),
        sa.ForeignKeyConstraint(['defender_kingdom_id'], ['kingdoms.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_battles_attacker', 'battles', ['attacker_kingdom_id', 'created_at'], unique=False)
    op.create_index('idx_battles_defender', 'battles', ['defender_kingdom_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_battles_defender', table_name='battles')
    op.drop_index('idx_battles_attacker', table_name='battles')
    op.drop_table('battles')
    op.drop_index('idx_market_offers_seller', table_name='market_offers')
    op.drop_index('idx_market_offers_created', table_name='market_offers')
    op.drop_table('market_offers')
    op.drop_index('idx_buildings_kingdom_type', table_name='buildings')
    op.drop_table('buildings')
    op.drop_index('idx_units_training', table_name='units')
    op.drop_table('units')
    op.drop_table('resources')
    op.drop_table('alliance_members')
    op.drop_table('alliances')
    op.drop_table('kingdoms')
