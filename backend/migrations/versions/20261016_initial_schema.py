"""Initial replenishment schema

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16

Creates:
1. Branch directory
2. Inventory records (versioned) and the append-only stock ledger
3. Item requests with lines and fulfillment bookkeeping
4. Transfers and purchase orders with lines
5. Document sequences for REQ/TRF/PO numbering
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261016_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    # ==========================================================================
    # 1. BRANCHES
    # ==========================================================================
    op.create_table('branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_branches_code', 'branches', ['code'])

    # ==========================================================================
    # 2. DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'period', name='uq_doc_sequences_type_period'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    # ==========================================================================
    # 3. INVENTORY RECORDS
    # ==========================================================================
    op.create_table('inventory_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_threshold', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'branch_id', name='uq_inventory_item_branch'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_inventory_records_item_id', 'inventory_records', ['item_id'])
    op.create_index('ix_inventory_records_branch_id', 'inventory_records', ['branch_id'])
    op.create_index('ix_inventory_branch_item', 'inventory_records', ['branch_id', 'item_id'])

    # ==========================================================================
    # 4. ITEM REQUESTS
    # ==========================================================================
    op.create_table('item_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_number', sa.String(length=32), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requested_by', sa.String(length=64), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('reviewed_by', sa.String(length=64), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('fulfillment_plan', sa.JSON(), nullable=True),
        sa.Column('fulfillment_status', sa.String(length=16), nullable=False, server_default='none'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_item_requests_branch_id', 'item_requests', ['branch_id'])
    op.create_index('ix_item_requests_status', 'item_requests', ['status'])
    op.create_index('ix_item_requests_branch_status', 'item_requests', ['branch_id', 'status'])

    op.create_table('item_request_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('requested_quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['request_id'], ['item_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('requested_quantity > 0', name='ck_request_line_quantity_positive'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_item_request_lines_request_id', 'item_request_lines', ['request_id'])

    # ==========================================================================
    # 5. TRANSFERS
    # ==========================================================================
    op.create_table('transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_number', sa.String(length=32), nullable=False),
        sa.Column('from_branch_id', sa.Integer(), nullable=False),
        sa.Column('to_branch_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('request_id', sa.Integer(), nullable=True),
        sa.Column('initiated_by', sa.String(length=64), nullable=False),
        sa.Column('initiated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_by', sa.String(length=64), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['from_branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['to_branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['request_id'], ['item_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transfer_number'),
        sa.CheckConstraint('from_branch_id <> to_branch_id', name='ck_transfers_distinct_branches'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_transfers_from_branch_id', 'transfers', ['from_branch_id'])
    op.create_index('ix_transfers_to_branch_id', 'transfers', ['to_branch_id'])
    op.create_index('ix_transfers_status', 'transfers', ['status'])
    op.create_index('ix_transfers_request_id', 'transfers', ['request_id'])

    op.create_table('transfer_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['transfer_id'], ['transfers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_transfer_line_quantity_positive'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_transfer_lines_transfer_id', 'transfer_lines', ['transfer_id'])

    # ==========================================================================
    # 6. PURCHASE ORDERS
    # ==========================================================================
    op.create_table('purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('supplier', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='requested'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=True),
        sa.Column('requested_by', sa.String(length=64), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('ordered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('stock_posted', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['request_id'], ['item_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_branch_id', 'purchase_orders', ['branch_id'])
    op.create_index('ix_purchase_orders_request_id', 'purchase_orders', ['request_id'])

    op.create_table('purchase_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_po_line_quantity_positive'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_order_lines_purchase_order_id', 'purchase_order_lines', ['purchase_order_id'])

    # ==========================================================================
    # 7. STOCK LEDGER
    # ==========================================================================
    op.create_table('stock_ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('request_id', sa.Integer(), nullable=True),
        sa.Column('transfer_id', sa.Integer(), nullable=True),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['request_id'], ['item_requests.id']),
        sa.ForeignKeyConstraint(['transfer_id'], ['transfers.id']),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_ledger_quantity_positive'),
        sa.CheckConstraint("direction IN ('in', 'out')", name='ck_ledger_direction'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_ledger_entries_item_id', 'stock_ledger_entries', ['item_id'])
    op.create_index('ix_stock_ledger_entries_branch_id', 'stock_ledger_entries', ['branch_id'])
    op.create_index('ix_stock_ledger_entries_request_id', 'stock_ledger_entries', ['request_id'])
    op.create_index('ix_stock_ledger_entries_transfer_id', 'stock_ledger_entries', ['transfer_id'])
    op.create_index('ix_stock_ledger_entries_purchase_order_id', 'stock_ledger_entries', ['purchase_order_id'])
    op.create_index('ix_stock_ledger_entries_occurred_at', 'stock_ledger_entries', ['occurred_at'])
    op.create_index('ix_ledger_item_branch_occurred', 'stock_ledger_entries', ['item_id', 'branch_id', 'occurred_at'])


def downgrade():
    op.drop_table('stock_ledger_entries')
    op.drop_table('purchase_order_lines')
    op.drop_table('purchase_orders')
    op.drop_table('transfer_lines')
    op.drop_table('transfers')
    op.drop_table('item_request_lines')
    op.drop_table('item_requests')
    op.drop_table('inventory_records')
    op.drop_table('document_sequences')
    op.drop_table('branches')
