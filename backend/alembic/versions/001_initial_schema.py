"""Initial schema

Revision ID: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'monitoring_jobs',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('origin', sa.String(3), nullable=False),
        sa.Column('destination', sa.String(3), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=True),
        sa.Column('adults', sa.Integer(), nullable=False, server_default='1'),
        sa.Column(
            'travel_class',
            sa.Enum('ECONOMY', 'PREMIUM_ECONOMY', 'BUSINESS', 'FIRST', name='travelclass'),
            nullable=False,
            server_default='ECONOMY',
        ),
        sa.Column('airlines', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('check_interval_hours', sa.Integer(), nullable=False, server_default='6'),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_monitoring_jobs_active_last_checked', 'monitoring_jobs', ['is_active', 'last_checked_at'])
    op.create_index('ix_monitoring_jobs_route', 'monitoring_jobs', ['origin', 'destination', 'departure_date'])

    op.create_table(
        'price_history',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column(
            'monitoring_job_id',
            sa.String(32),
            sa.ForeignKey('monitoring_jobs.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('flight_id', sa.String(64), nullable=False),
        sa.Column('airline', sa.String(100), nullable=False),
        sa.Column('airline_code', sa.String(3), nullable=False),
        sa.Column('flight_number', sa.String(10), nullable=False),
        sa.Column('departure_time', sa.String(25), nullable=False),
        sa.Column('arrival_time', sa.String(25), nullable=False),
        sa.Column('duration', sa.String(20), nullable=False),
        sa.Column('stops', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('recorded_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('travel_date', sa.Date(), nullable=False),
    )
    op.create_index('ix_price_history_job_recorded', 'price_history', ['monitoring_job_id', 'recorded_at'])
    op.create_index('ix_price_history_travel_airline', 'price_history', ['travel_date', 'airline_code'])

    op.create_table(
        'price_alerts',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column(
            'monitoring_job_id',
            sa.String(32),
            sa.ForeignKey('monitoring_jobs.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('alert_type', sa.String(20), nullable=False, server_default='PRICE_DROP'),
        sa.Column('old_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('new_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('percentage_change', sa.Float(), nullable=False),
        sa.Column('flight_details', sa.JSON(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_price_alerts_job_read', 'price_alerts', ['monitoring_job_id', 'is_read'])
    op.create_index('ix_price_alerts_created', 'price_alerts', ['created_at'])


def downgrade():
    op.drop_table('price_alerts')
    op.drop_table('price_history')
    op.drop_table('monitoring_jobs')
    sa.Enum(name='travelclass').drop(op.get_bind(), checkfirst=True)
