"""Initial migration - sub_region worklist and external_pm readings

Revision ID: 001_initial
Revises:
Create Date: 2024-11-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'sub_region',
        sa.Column('sub_region_id', sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('pm_station', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_sub_region_pm_station', 'sub_region', ['pm_station'])

    # One row per sub region; the upsert relies on this primary key
    op.create_table(
        'external_pm',
        sa.Column('sub_region_id', sa.Integer(), sa.ForeignKey('sub_region.sub_region_id'),
                  primary_key=True, autoincrement=False),
        sa.Column('pm10', sa.Float(), nullable=True),
        sa.Column('pm25', sa.Float(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    )


def downgrade() -> None:
    op.drop_table('external_pm')
    op.drop_index('ix_sub_region_pm_station', table_name='sub_region')
    op.drop_table('sub_region')
