"""Initial schema: tenants, directory, supplies, events, payments, activity

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

This migration adds:
1. Tenant (isolation boundary)
2. Client, Partner, Resource (bookable spaces and vehicles)
3. Supply and StockMovement (stock ledger)
4. Event, EventServiceItem, EventSupplyLine, ResourceCalendar
5. Payment
6. ActivityLog
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. TENANTS
    # ==========================================================================
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('tenants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_tenants_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_tenants_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 2. DIRECTORY: CLIENTS, PARTNERS, RESOURCES
    # ==========================================================================
    op.create_table('clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('clients', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_clients_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_clients_tenant_name', ['tenant_id', 'name'], unique=False)

    op.create_table('partners',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('price_type', sa.String(length=16), nullable=False, server_default='fixed'),
        sa.Column('hourly_rate_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('fixed_rate_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('partners', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_partners_tenant_id'), ['tenant_id'], unique=False)

    op.create_table('resources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'kind', 'name', name='uq_resources_tenant_kind_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('resources', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_resources_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_resources_kind'), ['kind'], unique=False)

    # ==========================================================================
    # 3. SUPPLIES AND STOCK LEDGER
    # ==========================================================================
    op.create_table('supplies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_stock', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('maximum_stock', sa.Integer(), nullable=False, server_default='1000'),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('charge_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pricing_type', sa.String(length=16), nullable=False, server_default='included'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('record_state', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('current_stock >= 0', name='ck_supplies_stock_non_negative'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('supplies', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_supplies_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplies_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplies_record_state'), ['record_state'], unique=False)
        batch_op.create_index('ix_supplies_tenant_category_status', ['tenant_id', 'category', 'status'], unique=False)
        batch_op.create_index('ix_supplies_tenant_stock', ['tenant_id', 'current_stock'], unique=False)

    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('supply_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('resulting_stock', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('recorded_by_user_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['supply_id'], ['supplies.id'], ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_movements_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_supply_id'), ['supply_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_movement_type'), ['movement_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_stock_movements_supply_occurred', ['supply_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_stock_movements_tenant_reference', ['tenant_id', 'reference'], unique=False)

    # ==========================================================================
    # 4. EVENTS
    # ==========================================================================
    op.create_table('events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False, server_default='other'),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('guest_count', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('resource_kind', sa.String(length=16), nullable=False, server_default='none'),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('record_state', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=500), nullable=True),
        sa.Column('base_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_type', sa.String(length=16), nullable=False, server_default='fixed'),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('services_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('supplies_charge_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('supplies_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('taxable_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('amount_due_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_events_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_events_tenant_resource_dates', ['tenant_id', 'resource_kind', 'resource_id', 'start_date', 'end_date'], unique=False)
        batch_op.create_index('ix_events_tenant_status', ['tenant_id', 'status'], unique=False)
        batch_op.create_index('ix_events_tenant_record_state', ['tenant_id', 'record_state'], unique=False)
        batch_op.create_index('ix_events_client', ['client_id'], unique=False)

    op.create_table('event_services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('kind', sa.String(length=32), nullable=False, server_default='manual'),
        sa.Column('partner_id', sa.Integer(), nullable=True),
        sa.Column('hours', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('event_services', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_event_services_event_id'), ['event_id'], unique=False)

    op.create_table('event_supply_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('supply_id', sa.Integer(), nullable=False),
        sa.Column('supply_name', sa.String(length=100), nullable=False),
        sa.Column('supply_category', sa.String(length=64), nullable=False, server_default='Uncategorized'),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('pricing_type', sa.String(length=16), nullable=False),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('charge_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_requested', sa.Integer(), nullable=False),
        sa.Column('quantity_allocated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_charge_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('allocated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('allocated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_by_user_id', sa.Integer(), nullable=True),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('returned_by_user_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('quantity_requested > 0', name='ck_supply_lines_requested_positive'),
        sa.CheckConstraint('quantity_allocated >= 0', name='ck_supply_lines_allocated_non_negative'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ),
        sa.ForeignKeyConstraint(['supply_id'], ['supplies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('event_supply_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_event_supply_lines_event_id'), ['event_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_event_supply_lines_supply_id'), ['supply_id'], unique=False)

    op.create_table('resource_calendars',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('resource_kind', sa.String(length=16), nullable=False),
        sa.Column('resource_key', sa.String(length=32), nullable=False),
        sa.Column('last_claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'resource_kind', 'resource_key', name='uq_resource_calendars_scope'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('resource_calendars', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_resource_calendars_tenant_id'), ['tenant_id'], unique=False)

    # ==========================================================================
    # 5. PAYMENTS
    # ==========================================================================
    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=True),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('payment_type', sa.String(length=16), nullable=False, server_default='income'),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('processing_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('other_fees_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('refund_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('refund_reason', sa.String(length=500), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('net_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by_user_id', sa.Integer(), nullable=True),
        sa.Column('processed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_payments_tenant_status', ['tenant_id', 'status'], unique=False)
        batch_op.create_index('ix_payments_tenant_type', ['tenant_id', 'payment_type'], unique=False)
        batch_op.create_index('ix_payments_event', ['event_id'], unique=False)

    # ==========================================================================
    # 6. ACTIVITY LOG
    # ==========================================================================
    op.create_table('activity_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('activity_log', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_activity_log_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_log_event_type'), ['event_type'], unique=False)
        batch_op.create_index('ix_activity_tenant_occurred', ['tenant_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_activity_entity', ['entity_type', 'entity_id'], unique=False)


def downgrade():
    op.drop_table('activity_log')
    op.drop_table('payments')
    op.drop_table('resource_calendars')
    op.drop_table('event_supply_lines')
    op.drop_table('event_services')
    op.drop_table('events')
    op.drop_table('stock_movements')
    op.drop_table('supplies')
    op.drop_table('resources')
    op.drop_table('partners')
    op.drop_table('clients')
    op.drop_table('tenants')
