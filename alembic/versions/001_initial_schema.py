"""Initial schema - tenants, users, clients, bookings, jobs, evidence, notifications

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-18

Safety Notes:
- History tables use integer ids so (created_at, id) gives a stable order
- evidence carries UNIQUE(job_id, status); the service relies on it for
  concurrent submissions
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='client'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_user_email_tenant', 'users', ['email', 'tenant_id'])

    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('organisation_name', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('reseller_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_clients_tenant_id', 'clients', ['tenant_id'])
    op.create_index('ix_clients_reseller_id', 'clients', ['reseller_id'])
    op.create_index('ix_client_email_tenant', 'clients', ['email', 'tenant_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_number', sa.String(40), nullable=False, unique=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reseller_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('site_name', sa.String(200), nullable=True),
        sa.Column('site_address', sa.Text(), nullable=True),
        sa.Column('postcode', sa.String(20), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='created'),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('collected_at', sa.DateTime(), nullable=True),
        sa.Column('sanitised_at', sa.DateTime(), nullable=True),
        sa.Column('graded_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('estimated_co2e', sa.Float(), nullable=True),
        sa.Column('estimated_buyback', sa.Float(), nullable=True),
        sa.Column('charity_percent', sa.Float(), nullable=True),
        sa.Column('erp_job_number', sa.String(100), nullable=True),
        sa.Column('job_id', sa.String(36), nullable=True),
        sa.Column('driver_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('driver_name', sa.String(200), nullable=True),
        sa.Column('scheduled_by', sa.String(36), nullable=True),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_bookings_tenant_id', 'bookings', ['tenant_id'])
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_driver_id', 'bookings', ['driver_id'])
    op.create_index('ix_bookings_created_by', 'bookings', ['created_by'])
    op.create_index('ix_booking_tenant_status', 'bookings', ['tenant_id', 'status'])

    op.create_table(
        'booking_assets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category_name', sa.String(100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_booking_assets_booking_id', 'booking_assets', ['booking_id'])

    op.create_table(
        'booking_status_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('changed_by', sa.String(36), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_booking_status_history_booking_id', 'booking_status_history', ['booking_id'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('erp_job_number', sa.String(100), nullable=False, unique=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_name', sa.String(200), nullable=True),
        sa.Column('site_name', sa.String(200), nullable=True),
        sa.Column('site_address', sa.Text(), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='booked'),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('completed_date', sa.DateTime(), nullable=True),
        sa.Column('estimated_arrival', sa.DateTime(), nullable=True),
        sa.Column('driver_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('co2e_saved', sa.Float(), nullable=True),
        sa.Column('travel_emissions', sa.Float(), nullable=True),
        sa.Column('buyback_value', sa.Float(), nullable=True),
        sa.Column('charity_percent', sa.Float(), nullable=True),
        sa.Column('dial2_collection', sa.Text(), nullable=True),
        sa.Column('security_requirements', sa.Text(), nullable=True),
        sa.Column('id_required', sa.Text(), nullable=True),
        sa.Column('loading_bay_location', sa.Text(), nullable=True),
        sa.Column('vehicle_height_restrictions', sa.Text(), nullable=True),
        sa.Column('door_lift_size', sa.Text(), nullable=True),
        sa.Column('road_works_public_events', sa.Text(), nullable=True),
        sa.Column('manual_handling_requirements', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_jobs_tenant_id', 'jobs', ['tenant_id'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_driver_id', 'jobs', ['driver_id'])
    op.create_index('ix_job_tenant_status', 'jobs', ['tenant_id', 'status'])

    op.create_table(
        'job_assets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('job_id', sa.String(36), sa.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category_name', sa.String(100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_job_assets_job_id', 'job_assets', ['job_id'])

    op.create_table(
        'job_status_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('job_id', sa.String(36), sa.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('changed_by', sa.String(36), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_job_status_history_job_id', 'job_status_history', ['job_id'])

    op.create_table(
        'evidence',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('job_id', sa.String(36), sa.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('signature', sa.Text(), nullable=True),
        sa.Column('seal_numbers', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('uploaded_by', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('job_id', 'status', name='uq_evidence_job_status'),
    )
    op.create_index('ix_evidence_job_id', 'evidence', ['job_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='info'),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('url', sa.String(500), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.String(36), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('ix_notification_user_read', 'notifications', ['user_id', 'is_read'])


def downgrade() -> None:
    for table in (
        'notifications',
        'evidence',
        'job_status_history',
        'job_assets',
        'jobs',
        'booking_status_history',
        'booking_assets',
        'bookings',
        'clients',
        'users',
        'tenants',
    ):
        op.drop_table(table)
