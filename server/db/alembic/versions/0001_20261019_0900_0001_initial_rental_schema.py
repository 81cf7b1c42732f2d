"""Initial rental schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create equipment table
    op.create_table('equipment',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('daily_rate', sa.Integer(), nullable=False),
        sa.Column('replacement_price', sa.Integer(), nullable=False),
        sa.Column('unit_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('daily_rate >= 0', name='ck_equipment_daily_rate_non_negative'),
        sa.CheckConstraint('replacement_price >= 0', name='ck_equipment_replacement_price_non_negative'),
        sa.CheckConstraint('unit_count >= 1', name='ck_equipment_unit_count_positive'),
        sa.CheckConstraint('length(owner_id) > 0', name='ck_equipment_owner_id_not_empty'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_equipment_owner_id'), 'equipment', ['owner_id'], unique=False)

    # Create insurance_packages table
    op.create_table('insurance_packages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('min_coverage', sa.Integer(), nullable=False),
        sa.Column('max_coverage', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('min_coverage >= 0', name='ck_insurance_min_coverage_non_negative'),
        sa.CheckConstraint('max_coverage >= min_coverage', name='ck_insurance_coverage_range'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_insurance_packages_status'), 'insurance_packages', ['status'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('equipment_id', sa.Uuid(), nullable=False),
        sa.Column('insurance_id', sa.Uuid(), nullable=True),
        sa.Column('renter_id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('chargeable_days', sa.Integer(), nullable=False),
        sa.Column('base_price', sa.Integer(), nullable=False),
        sa.Column('service_fee', sa.Integer(), nullable=False),
        sa.Column('insurance_fee', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('checkin_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checkin_images', sa.JSON(), nullable=False),
        sa.Column('checkout_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checkout_images', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('start_date < end_date', name='ck_booking_date_order'),
        sa.CheckConstraint('quantity >= 1', name='ck_booking_quantity_positive'),
        sa.CheckConstraint('chargeable_days >= 1', name='ck_booking_chargeable_days_positive'),
        sa.CheckConstraint('base_price >= 0', name='ck_booking_base_price_non_negative'),
        sa.CheckConstraint('service_fee >= 0', name='ck_booking_service_fee_non_negative'),
        sa.CheckConstraint('insurance_fee >= 0', name='ck_booking_insurance_fee_non_negative'),
        sa.CheckConstraint('total_price = base_price + service_fee + insurance_fee', name='ck_booking_total_price_sum'),
        sa.CheckConstraint('checkout_time IS NULL OR checkin_time IS NOT NULL', name='ck_booking_checkout_after_checkin'),
        sa.CheckConstraint('length(renter_id) > 0', name='ck_booking_renter_id_not_empty'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['insurance_id'], ['insurance_packages.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_equipment_id'), 'bookings', ['equipment_id'], unique=False)
    op.create_index(op.f('ix_bookings_renter_id'), 'bookings', ['renter_id'], unique=False)
    op.create_index(op.f('ix_bookings_owner_id'), 'bookings', ['owner_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)

    # Create reservation_windows table
    op.create_table('reservation_windows',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=True),
        sa.Column('equipment_id', sa.Uuid(), nullable=False),
        sa.Column('unit_number', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('start_date < end_date', name='ck_window_date_order'),
        sa.CheckConstraint('unit_number >= 0', name='ck_window_unit_number_non_negative'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reservation_windows_booking_id'), 'reservation_windows', ['booking_id'], unique=False)
    op.create_index(
        'ix_window_unit_status_start',
        'reservation_windows',
        ['equipment_id', 'unit_number', 'status', 'start_date'],
        unique=False
    )

    # Create reserved_days table
    op.create_table('reserved_days',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('window_id', sa.Uuid(), nullable=False),
        sa.Column('equipment_id', sa.Uuid(), nullable=False),
        sa.Column('unit_number', sa.Integer(), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['window_id'], ['reservation_windows.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('equipment_id', 'unit_number', 'day', name='uq_reserved_day_unit')
    )
    op.create_index(op.f('ix_reserved_days_window_id'), 'reserved_days', ['window_id'], unique=False)

    # Create incidents table
    op.create_table('incidents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('reporter_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('stage', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('estimated_charge', sa.Integer(), nullable=False),
        sa.Column('resolution_amount', sa.Integer(), nullable=True),
        sa.Column('outcome', sa.String(length=20), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('estimated_charge >= 0', name='ck_incident_estimated_charge_non_negative'),
        sa.CheckConstraint(
            'resolution_amount IS NULL OR resolution_amount >= 0',
            name='ck_incident_resolution_amount_non_negative'
        ),
        sa.CheckConstraint('(resolution_amount IS NULL) = (outcome IS NULL)', name='ck_incident_resolution_complete'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_incidents_booking_id'), 'incidents', ['booking_id'], unique=False)

    # Create idempotency_records table
    op.create_table('idempotency_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('method', sa.String(length=100), nullable=False),
        sa.Column('request_body_hash', sa.String(length=64), nullable=False),
        sa.Column('response_status_code', sa.Integer(), nullable=False),
        sa.Column('response_body', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('length(idempotency_key) > 0', name='ck_idempotency_key_not_empty'),
        sa.CheckConstraint('length(request_body_hash) = 64', name='ck_idempotency_hash_length'),
        sa.CheckConstraint(
            'response_status_code >= 100 AND response_status_code <= 599',
            name='ck_idempotency_status_code_valid'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', 'method', name='uq_idempotency_key_method')
    )
    op.create_index(op.f('ix_idempotency_records_idempotency_key'), 'idempotency_records', ['idempotency_key'], unique=False)
    op.create_index(op.f('ix_idempotency_records_expires_at'), 'idempotency_records', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('idempotency_records')
    op.drop_table('incidents')
    op.drop_table('reserved_days')
    op.drop_table('reservation_windows')
    op.drop_table('bookings')
    op.drop_table('insurance_packages')
    op.drop_table('equipment')
