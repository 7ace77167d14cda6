"""initial service ticket schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(12, 2, asdecimal=False)


def upgrade():
    op.create_table('admin_users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_admin_users_email', 'admin_users', ['email'])

    op.create_table('technicians',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=True),
        sa.Column('specialty', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('avatar_color', sa.String(length=16), nullable=False, server_default='#3B82F6'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('username', sa.String(length=64), nullable=True, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_technicians_username', 'technicians', ['username'])

    op.create_table('devices',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('device_type', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_devices_device_type', 'devices', ['device_type'])

    op.create_table('tickets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='accepted_pending'),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='medium'),
        sa.Column('device_id', sa.String(length=36), sa.ForeignKey('devices.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_to', sa.String(length=36), sa.ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True),
        sa.Column('serial_number', sa.String(length=128), nullable=True),
        sa.Column('product_type', sa.String(length=128), nullable=True),
        sa.Column('brand', sa.String(length=128), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('model_number', sa.String(length=128), nullable=True),
        sa.Column('custom_code', sa.String(length=128), nullable=True),
        sa.Column('warranty_status', sa.String(length=32), nullable=True),
        sa.Column('customer_full_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('customer_extension', sa.String(length=32), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=True),
        sa.Column('billing_company_name', sa.String(length=255), nullable=True),
        sa.Column('billing_address', sa.Text(), nullable=True),
        sa.Column('billing_tax_office', sa.String(length=128), nullable=True),
        sa.Column('billing_tax_number', sa.String(length=64), nullable=True),
        sa.Column('approved_labor_cost', MONEY, nullable=True),
        sa.Column('approved_service_cost', MONEY, nullable=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=True),
        sa.Column('total_service_amount', MONEY, nullable=True),
        sa.Column('won', sa.Boolean(), nullable=True, server_default=sa.text('0')),
        sa.Column('won_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('won_hidden', sa.Boolean(), nullable=True, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True)
    )
    for column in ('status', 'assigned_to', 'won', 'won_at', 'created_at', 'updated_at'):
        op.create_index(f'ix_tickets_{column}', 'tickets', [column])

    op.create_table('ticket_notes',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('ticket_id', sa.String(length=36), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=128), nullable=False, server_default='Staff'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_ticket_notes_ticket_id', 'ticket_notes', ['ticket_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.String(length=36), nullable=True),
        sa.Column('actor_type', sa.String(length=16), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('ticket_notes')
    op.drop_table('tickets')
    op.drop_table('devices')
    op.drop_table('technicians')
    op.drop_table('admin_users')
