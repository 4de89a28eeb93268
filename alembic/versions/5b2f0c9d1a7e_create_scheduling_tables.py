"""create scheduling tables

Revision ID: 5b2f0c9d1a7e
Revises:
Create Date: 2026-01-04 10:12:41.502913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b2f0c9d1a7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPOINTMENT_STATUSES = (
    'pending', 'confirmed', 'checked_in', 'in_progress', 'completed', 'cancelled', 'no_show'
)


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and locations
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )

    op.create_table(
        'locations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_locations_business_id', 'locations', ['business_id'])

    # 2. Clients and services
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('total_visits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit_at', sa.DateTime(), nullable=True),
        sa.Column('total_spent', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_clients_business_id', 'clients', ['business_id'])
    op.create_index('ix_clients_email', 'clients', ['email'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('buffer_before_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('tax_rate', sa.Numeric(5, 3), nullable=True),
        sa.Column('is_taxable', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    # 3. Staff, what they offer, and when they work
    op.create_table(
        'staff',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('location_id', sa.Uuid(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('booking_buffer_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('can_accept_bookings', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_staff_location_id', 'staff', ['location_id'])

    op.create_table(
        'staff_services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('staff_id', sa.Uuid(), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
        sa.Column('custom_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('custom_duration', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint('staff_id', 'service_id', name='uq_staff_services_staff_service'),
    )

    op.create_table(
        'staff_schedules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('staff_id', sa.Uuid(), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', sa.Uuid(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('is_working', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=True),
        sa.Column('effective_until', sa.Date(), nullable=True),
    )
    op.create_index('ix_staff_schedules_staff_id', 'staff_schedules', ['staff_id'])

    op.create_table(
        'staff_breaks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('schedule_id', sa.Uuid(), sa.ForeignKey('staff_schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('label', sa.String(100), nullable=True),
    )

    op.create_table(
        'staff_time_off',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('staff_id', sa.Uuid(), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('reason', sa.String(), nullable=True),
    )
    op.create_index('ix_staff_time_off_staff_id', 'staff_time_off', ['staff_id'])

    # 4. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('location_id', sa.Uuid(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id'), nullable=True),
        sa.Column('booking_reference', sa.String(40), nullable=False, unique=True),
        sa.Column('status', sa.Enum(*APPOINTMENT_STATUSES, name='appointment_status'), nullable=False),
        sa.Column('source', sa.String(20), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('total_duration', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('confirmation_sent_at', sa.DateTime(), nullable=True),
        sa.Column('checked_in_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('no_show_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.String(100), nullable=True),
        sa.Column('series_id', sa.Uuid(), nullable=True),
        sa.Column('parent_appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('recurrence_rule', sa.String(20), nullable=True),
        sa.Column('recurrence_end_date', sa.Date(), nullable=True),
        sa.Column('is_group_booking', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_participants', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_appointments_business_id', 'appointments', ['business_id'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('ix_appointments_start_time', 'appointments', ['start_time'])
    op.create_index('ix_appointments_series_id', 'appointments', ['series_id'])

    op.create_table(
        'appointment_services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('staff_id', sa.Uuid(), sa.ForeignKey('staff.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('final_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_appointment_services_appointment_id', 'appointment_services', ['appointment_id'])
    # Conflict checks scan one staff member's lines by time window
    op.create_index(
        'ix_appointment_services_staff_window',
        'appointment_services',
        ['staff_id', 'start_time', 'end_time'],
    )

    op.create_table(
        'group_participants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('appointment_id', 'client_id', name='uq_group_participants_appointment_client'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('group_participants')
    op.drop_index('ix_appointment_services_staff_window', table_name='appointment_services')
    op.drop_index('ix_appointment_services_appointment_id', table_name='appointment_services')
    op.drop_table('appointment_services')
    op.drop_index('ix_appointments_series_id', table_name='appointments')
    op.drop_index('ix_appointments_start_time', table_name='appointments')
    op.drop_index('ix_appointments_status', table_name='appointments')
    op.drop_index('ix_appointments_business_id', table_name='appointments')
    op.drop_table('appointments')
    sa.Enum(name='appointment_status').drop(op.get_bind(), checkfirst=True)
    op.drop_index('ix_staff_time_off_staff_id', table_name='staff_time_off')
    op.drop_table('staff_time_off')
    op.drop_table('staff_breaks')
    op.drop_index('ix_staff_schedules_staff_id', table_name='staff_schedules')
    op.drop_table('staff_schedules')
    op.drop_table('staff_services')
    op.drop_index('ix_staff_location_id', table_name='staff')
    op.drop_table('staff')
    op.drop_index('ix_services_is_active', table_name='services')
    op.drop_index('ix_services_business_id', table_name='services')
    op.drop_table('services')
    op.drop_index('ix_clients_email', table_name='clients')
    op.drop_index('ix_clients_business_id', table_name='clients')
    op.drop_table('clients')
    op.drop_index('ix_locations_business_id', table_name='locations')
    op.drop_table('locations')
    op.drop_table('businesses')
