"""baseline booking schema

Creates branches, users, categories, services, rooms, appointments and the
availability ledger.

Revision ID: 20260101000000
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101000000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(20), nullable=True, unique=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_branches_id', 'branches', ['id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('phone', sa.String(50), nullable=True, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('employee_role', sa.String(50), nullable=True),
        sa.Column('employee_code', sa.String(20), nullable=True, unique=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('idx_users_role_employee_role', 'users', ['role', 'employee_role'])

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('assigned_employee_role', sa.String(50), nullable=False),
        sa.Column('requires_physical_resource', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_categories_id', 'categories', ['id'])

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_services_id', 'services', ['id'])
    op.create_index('ix_services_category_id', 'services', ['category_id'])

    op.create_table(
        'rooms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_number', sa.String(50), nullable=False, unique=True),
        sa.Column('room_type', sa.String(20), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Available'),
        *_timestamps(),
        sa.CheckConstraint('capacity >= 1 AND capacity <= 2', name='check_room_capacity'),
    )
    op.create_index('ix_rooms_id', 'rooms', ['id'])
    op.create_index('ix_rooms_branch_id', 'rooms', ['branch_id'])
    op.create_index('idx_rooms_type_status', 'rooms', ['room_type', 'status'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('appointment_code', sa.String(20), nullable=True, unique=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('rooms.id'), nullable=True),
        sa.Column('room_type', sa.String(20), nullable=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('service_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('room_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('gateway_order_id', sa.String(100), nullable=True),
        sa.Column('gateway_payment_id', sa.String(100), nullable=True),
        sa.Column('gateway_signature', sa.String(255), nullable=True),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('confirmation_sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('end_time > start_time', name='check_appointment_time_range'),
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'])
    op.create_index('ix_appointments_gateway_order_id', 'appointments', ['gateway_order_id'])
    op.create_index('idx_appointments_status', 'appointments', ['status'])
    op.create_index('idx_appointments_customer', 'appointments', ['customer_id'])
    op.create_index('idx_appointments_employee_start', 'appointments', ['employee_id', 'start_time'])
    op.create_index('idx_appointments_start', 'appointments', ['start_time'])

    op.create_table(
        'availability_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_type', sa.String(20), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Booked'),
        sa.Column(
            'appointment_id', sa.Integer(),
            sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('released_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("resource_type IN ('room', 'employee')", name='check_valid_resource_type'),
        sa.CheckConstraint("status IN ('Booked', 'Released')", name='check_valid_ledger_status'),
    )
    op.create_index('ix_availability_entries_id', 'availability_entries', ['id'])
    op.create_index('ix_availability_entries_appointment_id', 'availability_entries', ['appointment_id'])
    op.create_index(
        'idx_availability_resource_status_start', 'availability_entries',
        ['resource_type', 'resource_id', 'status', 'start_time']
    )


def downgrade() -> None:
    op.drop_table('availability_entries')
    op.drop_table('appointments')
    op.drop_table('rooms')
    op.drop_table('services')
    op.drop_table('categories')
    op.drop_table('users')
    op.drop_table('branches')
