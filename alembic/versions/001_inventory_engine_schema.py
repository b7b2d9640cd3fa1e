"""Inventory engine schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Adds:
- locations, bin_locations and items
- receipts / receipt_lines and transfer_orders with lines and allocations
- batches and the append-only batch_deductions trail
- bin_allocations (one row per item and bin)
- placement_tasks and transfer_tasks
- stock_counts / stock_count_items
- damage_reports
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _item_snapshot():
    return [
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('colour', sa.String(50), nullable=True),
        sa.Column('size', sa.String(50), nullable=True),
        sa.Column('variant', sa.String(100), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('code', sa.String(50), nullable=True, unique=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'bin_locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('bin_code', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', name='binstatus'),
                  nullable=False, server_default='ACTIVE'),
        *_timestamps(),
    )

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(100), nullable=True, index=True),
        sa.Column('colour', sa.String(50), nullable=True),
        sa.Column('size', sa.String(50), nullable=True),
        sa.Column('variant', sa.String(100), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('tracking_type', sa.Enum('NONE', 'SERIAL', name='trackingtype'),
                  nullable=False, server_default='NONE'),
        sa.Column('current_stock', sa.Numeric(15, 2), nullable=False, server_default='0'),
        *_timestamps(),
    )

    # Source documents
    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('receipt_number', sa.String(50), nullable=False, unique=True),
        sa.Column('vendor_name', sa.String(255), nullable=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'receipt_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('bin_id', sa.Integer(), sa.ForeignKey('bin_locations.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('serial_numbers', sa.JSON(), nullable=True),
    )
    op.create_table(
        'transfer_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_number', sa.String(50), nullable=False, unique=True),
        sa.Column('source_location_id', sa.Integer(),
                  sa.ForeignKey('locations.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('destination_location_id', sa.Integer(),
                  sa.ForeignKey('locations.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.Enum('DRAFT', 'IN_TRANSIT', 'RECEIVED', 'CANCELLED',
                                    name='transferorderstatus'),
                  nullable=False, server_default='DRAFT'),
        sa.Column('reason', sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'transfer_order_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_order_id', sa.Integer(),
                  sa.ForeignKey('transfer_orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('serial_numbers', sa.JSON(), nullable=True),
    )
    op.create_table(
        'transfer_order_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_order_id', sa.Integer(),
                  sa.ForeignKey('transfer_orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False),
        sa.Column('source_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('destination_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False),
    )

    # Stock counts come before batches: approved counts create batches
    op.create_table(
        'stock_counts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('bin_id', sa.Integer(), sa.ForeignKey('bin_locations.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('count_type', sa.Enum('DELIVERY', 'AUDIT', name='stockcounttype'),
                  nullable=False, server_default='AUDIT'),
        sa.Column('status', sa.Enum('PENDING', 'IN_PROGRESS', 'SUBMITTED', 'APPROVED', 'REJECTED',
                                    'RECOUNT', 'COMPLETED', name='stockcountstatus'),
                  nullable=False, server_default='PENDING', index=True),
        sa.Column('assigned_to', sa.Integer(), nullable=True, index=True),
        sa.Column('assigned_to_name', sa.String(255), nullable=True),
        sa.Column('assigned_by', sa.Integer(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('auto_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Aggregates, recomputed from stock_count_items on every line change
        sa.Column('total_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counted_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('matched_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mismatched_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('accuracy_percentage', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_by_name', sa.String(255), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )
    op.create_table(
        'stock_count_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('serial_number', sa.String(100), nullable=True),
        sa.Column('receipt_line_id', sa.Integer(),
                  sa.ForeignKey('receipt_lines.id', ondelete='SET NULL'), nullable=True),
        sa.Column('expected_quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('counted_quantity', sa.Numeric(15, 2), nullable=True),
        sa.Column('variance', sa.Numeric(15, 2), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'COUNTED', 'MISMATCH', name='stockcountitemstatus'),
                  nullable=False, server_default='PENDING'),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('adjustment_reason', sa.String(500), nullable=True),
    )

    # Batch ledger
    op.create_table(
        'batches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('initial_quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('remaining_quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'DEPLETED', name='batchstatus'),
                  nullable=False, server_default='ACTIVE'),
        sa.Column('source', sa.Enum('RECEIPT', 'STOCK_COUNT', 'MANUAL', name='batchsource'),
                  nullable=False, server_default='RECEIPT'),
        sa.Column('bin_id', sa.Integer(), sa.ForeignKey('bin_locations.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('receipt_line_id', sa.Integer(),
                  sa.ForeignKey('receipt_lines.id', ondelete='SET NULL'), nullable=True),
        sa.Column('stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('initial_quantity > 0', name='ck_batch_initial_positive'),
        sa.CheckConstraint('remaining_quantity >= 0', name='ck_batch_remaining_non_negative'),
        sa.CheckConstraint('remaining_quantity <= initial_quantity', name='ck_batch_remaining_le_initial'),
    )
    op.create_index('ix_batches_fifo', 'batches', ['item_id', 'status', 'created_at'])

    op.create_table(
        'batch_deductions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('batch_id', sa.Integer(), sa.ForeignKey('batches.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('deduction_type', sa.Enum('SALE', 'TRANSFER', 'ADJUSTMENT', name='deductiontype'),
                  nullable=False),
        sa.Column('ref_type', sa.String(50), nullable=True),
        sa.Column('ref_id', sa.Integer(), nullable=True),
        sa.Column('ref_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_deduction_quantity_positive'),
    )

    op.create_table(
        'bin_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('bin_id', sa.Integer(), sa.ForeignKey('bin_locations.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('serial_numbers', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('item_id', 'bin_id', name='uq_bin_allocation_item_bin'),
        sa.CheckConstraint('quantity >= 0', name='ck_bin_allocation_non_negative'),
    )

    # Handling tasks
    op.create_table(
        'placement_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        *_item_snapshot(),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False),
        sa.Column('serial_numbers', sa.JSON(), nullable=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('source_reference', sa.String(100), nullable=True),
        sa.Column('suggested_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('suggested_bin_reason', sa.String(255), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'PLACED', name='placementtaskstatus'),
                  nullable=False, server_default='PENDING', index=True),
        sa.Column('placed_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('placed_by', sa.Integer(), nullable=True),
        sa.Column('placed_by_name', sa.String(255), nullable=True),
        sa.Column('placed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'transfer_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transfer_order_id', sa.Integer(),
                  sa.ForeignKey('transfer_orders.id', ondelete='SET NULL'), nullable=True, index=True),
        *_item_snapshot(),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False, server_default='1'),
        sa.Column('serial_numbers', sa.JSON(), nullable=True),
        sa.Column('source_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('destination_bin_id', sa.Integer(),
                  sa.ForeignKey('bin_locations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'IN_PROGRESS', 'COMPLETED', name='transfertaskstatus'),
                  nullable=False, server_default='PENDING', index=True),
        sa.Column('urgency', sa.Enum('NORMAL', 'URGENT', name='transferurgency'),
                  nullable=False, server_default='NORMAL'),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('assigned_to', sa.Integer(), nullable=True, index=True),
        sa.Column('assigned_to_name', sa.String(255), nullable=True),
        sa.Column('current_step', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.Integer(), nullable=True),
        sa.Column('completed_by_name', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'damage_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('serial_number', sa.String(100), nullable=True),
        sa.Column('quantity', sa.Numeric(15, 2), nullable=False, server_default='1'),
        sa.Column('bin_id', sa.Integer(), sa.ForeignKey('bin_locations.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('damage_type', sa.String(50), nullable=False),
        sa.Column('severity', sa.Enum('MINOR', 'MODERATE', 'SEVERE', 'TOTAL_LOSS', name='damageseverity'),
                  nullable=False, server_default='MODERATE'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('photo_reference', sa.String(500), nullable=True),
        sa.Column('reported_by', sa.Integer(), nullable=True),
        sa.Column('reported_by_name', sa.String(255), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='damagereportstatus'),
                  nullable=False, server_default='PENDING', index=True),
        sa.Column('stock_adjusted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_by_name', sa.String(255), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in (
        'damage_reports',
        'transfer_tasks',
        'placement_tasks',
        'bin_allocations',
        'batch_deductions',
        'batches',
        'stock_count_items',
        'stock_counts',
        'transfer_order_allocations',
        'transfer_order_lines',
        'transfer_orders',
        'receipt_lines',
        'receipts',
        'items',
        'bin_locations',
        'locations',
    ):
        op.drop_table(table)
