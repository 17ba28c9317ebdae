"""create count pipeline tables

Revision ID: 3c1f0a9b7d21
Revises:
Create Date: 2026-10-18 09:12:44.318207
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3c1f0a9b7d21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'warehouses',
        *_timestamps(),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
    )
    op.create_index('ix_warehouses_code', 'warehouses', ['code'], unique=True)

    op.create_table(
        'user_warehouse_assignments',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_code', sa.String(length=20), sa.ForeignKey('warehouses.code', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('user_id', 'warehouse_code', name='uq_user_warehouse_assignment'),
    )
    op.create_index('ix_user_warehouse_assignments_user_id', 'user_warehouse_assignments', ['user_id'])
    op.create_index('ix_user_warehouse_assignments_warehouse_code', 'user_warehouse_assignments', ['warehouse_code'])

    op.create_table(
        'stocktake_events',
        *_timestamps(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'products',
        *_timestamps(),
        sa.Column('stock_code', sa.String(length=100), nullable=False),
        sa.Column('case_barcode', sa.String(length=100), nullable=True),
        sa.Column('unit_barcode', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('pack_size', sa.String(length=100), nullable=True),
        sa.Column('expected_quantity', sa.Integer(), nullable=True),
        sa.Column('units_per_case', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cases_per_layer', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('layers_per_pallet', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_products_stock_code', 'products', ['stock_code'], unique=True)
    op.create_index('ix_products_case_barcode', 'products', ['case_barcode'])
    op.create_index('ix_products_unit_barcode', 'products', ['unit_barcode'])

    op.create_table(
        'recount_tasks',
        *_timestamps(),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('stocktake_events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_code', sa.String(length=20), sa.ForeignKey('warehouses.code', ondelete='RESTRICT'), nullable=False),
        sa.Column('stock_code', sa.String(length=100), nullable=False),
        sa.Column('lot_number', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_recount_tasks_assigned_to', 'recount_tasks', ['assigned_to'])
    op.create_index('idx_recount_tasks_event_warehouse', 'recount_tasks', ['event_id', 'warehouse_code', 'created_at'])

    op.create_table(
        'counts',
        *_timestamps(),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('stocktake_events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_code', sa.String(length=20), sa.ForeignKey('warehouses.code', ondelete='RESTRICT'), nullable=False),
        sa.Column('stock_code', sa.String(length=100), nullable=False),
        sa.Column('product_description', sa.Text(), nullable=True),
        sa.Column('lot_number', sa.String(length=100), nullable=True),
        sa.Column('counted_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('singles_units', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('singles_cases', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pick_face_layers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pick_face_cases', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bulk_pallets', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bulk_layers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bulk_cases', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_units', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('units_per_case_snapshot', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cases_per_layer_snapshot', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('layers_per_pallet_snapshot', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('pack_size_snapshot', sa.String(length=100), nullable=True),
        sa.Column('photo_path', sa.String(length=500), nullable=True),
        sa.Column('recount_task_id', sa.Integer(), sa.ForeignKey('recount_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('idempotency_key', sa.String(length=100), nullable=True),
        sa.UniqueConstraint('idempotency_key', name='uq_counts_idempotency_key'),
    )
    op.create_index('ix_counts_stock_code', 'counts', ['stock_code'])
    op.create_index('idx_counts_event_warehouse', 'counts', ['event_id', 'warehouse_code'])

    op.create_table(
        'count_totals',
        *_timestamps(),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('stocktake_events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_code', sa.String(length=20), nullable=False),
        sa.Column('stock_code', sa.String(length=100), nullable=False),
        sa.Column('lot_number', sa.String(length=100), nullable=False),
        sa.Column('product_description', sa.Text(), nullable=True),
        sa.Column('counted_units', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('expected_units', sa.BigInteger(), nullable=True),
        sa.Column('refreshed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('event_id', 'warehouse_code', 'stock_code', 'lot_number', name='uq_count_totals_key'),
    )
    print("✓ [3c1f0a9b7d21] Created count pipeline tables")


def downgrade() -> None:
    op.drop_table('count_totals')
    op.drop_table('counts')
    op.drop_table('recount_tasks')
    op.drop_table('products')
    op.drop_table('stocktake_events')
    op.drop_table('user_warehouse_assignments')
    op.drop_table('warehouses')
    op.drop_table('users')
