"""Initial back-office schema

Revision ID: 3f1c9a7e5b20
Revises:
Create Date: 2026-10-17 09:12:41.508113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# Revision identifiers used by Alembic
revision: str = '3f1c9a7e5b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', sa.Integer(), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True)


def upgrade() -> None:
    """Upgrade schema."""
    # Users and activity trail
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'activity_logs',
        _id(),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=True),
        sa.Column('resource', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'ts', 'action', 'resource', 'entity_id', 'status'):
        op.create_index(op.f(f'ix_activity_logs_{column}'), 'activity_logs', [column], unique=False)

    # Master data
    op.create_table(
        'warehouses',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_warehouses_id'), 'warehouses', ['id'], unique=False)
    op.create_index(op.f('ix_warehouses_name'), 'warehouses', ['name'], unique=True)

    op.create_table(
        'categories',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_categories_id'), 'categories', ['id'], unique=False)
    op.create_index(op.f('ix_categories_name'), 'categories', ['name'], unique=False)

    op.create_table(
        'suppliers',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('tax_number', sa.String(), nullable=True),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_suppliers_id'), 'suppliers', ['id'], unique=False)
    op.create_index(op.f('ix_suppliers_name'), 'suppliers', ['name'], unique=False)

    op.create_table(
        'materials',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('default_warehouse_id', sa.Integer(), nullable=True),
        sa.Column('current_stock', sa.Float(), nullable=False),
        sa.Column('average_cost', sa.Float(), nullable=False),
        sa.Column('last_purchase_price', sa.Float(), nullable=True),
        sa.Column('min_stock_level', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['default_warehouse_id'], ['warehouses.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_materials_id'), 'materials', ['id'], unique=False)
    op.create_index(op.f('ix_materials_name'), 'materials', ['name'], unique=False)
    op.create_index(op.f('ix_materials_code'), 'materials', ['code'], unique=True)

    op.create_table(
        'material_stocks',
        _id(),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('current_stock', sa.Float(), nullable=False),
        sa.Column('available_stock', sa.Float(), nullable=False),
        sa.Column('reserved_stock', sa.Float(), nullable=False),
        sa.Column('average_cost', sa.Float(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('material_id', 'warehouse_id', name='uq_material_stock_material_warehouse'),
    )
    op.create_index(op.f('ix_material_stocks_id'), 'material_stocks', ['id'], unique=False)
    op.create_index(op.f('ix_material_stocks_material_id'), 'material_stocks', ['material_id'], unique=False)
    op.create_index(op.f('ix_material_stocks_warehouse_id'), 'material_stocks', ['warehouse_id'], unique=False)

    # Current accounts come before invoices, which reference them
    op.create_table(
        'current_accounts',
        _id(),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.Enum('SUPPLIER', 'CUSTOMER', 'BOTH', name='accounttype'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('opening_balance', sa.Float(), nullable=False),
        sa.Column('current_balance', sa.Float(), nullable=False),
        sa.Column('credit_limit', sa.Float(), nullable=False),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('tax_number', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_activity_date', sa.DateTime(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_current_accounts_id'), 'current_accounts', ['id'], unique=False)
    op.create_index(op.f('ix_current_accounts_code'), 'current_accounts', ['code'], unique=True)
    op.create_index(op.f('ix_current_accounts_name'), 'current_accounts', ['name'], unique=False)

    op.create_table(
        'invoices',
        _id(),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('type', sa.Enum('PURCHASE', 'SALE', 'RETURN', name='invoicetype'), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'PAID', 'CANCELLED', name='invoicestatus'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('current_account_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('subtotal_amount', sa.Float(), nullable=False),
        sa.Column('total_discount_amount', sa.Float(), nullable=False),
        sa.Column('total_tax_amount', sa.Float(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['current_account_id'], ['current_accounts.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'], unique=False)
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
    op.create_index(op.f('ix_invoices_type'), 'invoices', ['type'], unique=False)
    op.create_index(op.f('ix_invoices_date'), 'invoices', ['date'], unique=False)

    op.create_table(
        'invoice_items',
        _id(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('tax_rate', sa.Float(), nullable=False),
        sa.Column('discount1_rate', sa.Float(), nullable=False),
        sa.Column('discount2_rate', sa.Float(), nullable=False),
        sa.Column('discount1_amount', sa.Float(), nullable=False),
        sa.Column('discount2_amount', sa.Float(), nullable=False),
        sa.Column('total_discount_amount', sa.Float(), nullable=False),
        sa.Column('subtotal_amount', sa.Float(), nullable=False),
        sa.Column('tax_amount', sa.Float(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_invoice_items_id'), 'invoice_items', ['id'], unique=False)
    op.create_index(op.f('ix_invoice_items_invoice_id'), 'invoice_items', ['invoice_id'], unique=False)

    op.create_table(
        'payments',
        _id(),
        sa.Column('payment_number', sa.String(), nullable=False),
        sa.Column('current_account_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.Enum('CASH', 'BANK_TRANSFER', 'CREDIT_CARD', 'CHECK', 'OTHER', name='paymentmethod'), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('reference_number', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'COMPLETED', 'CANCELLED', name='paymentstate'), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['current_account_id'], ['current_accounts.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payments_id'), 'payments', ['id'], unique=False)
    op.create_index(op.f('ix_payments_payment_number'), 'payments', ['payment_number'], unique=True)
    op.create_index(op.f('ix_payments_current_account_id'), 'payments', ['current_account_id'], unique=False)

    op.create_table(
        'current_account_transactions',
        _id(),
        sa.Column('current_account_id', sa.Integer(), nullable=False),
        sa.Column('transaction_date', sa.DateTime(), nullable=False),
        sa.Column('type', sa.Enum('DEBT', 'CREDIT', 'PAYMENT', 'ADJUSTMENT', name='transactiontype'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('reference_number', sa.String(), nullable=True),
        sa.Column('balance_before', sa.Float(), nullable=False),
        sa.Column('balance_after', sa.Float(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['current_account_id'], ['current_accounts.id']),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'current_account_id', 'transaction_date', 'invoice_id', 'payment_id'):
        op.create_index(op.f(f'ix_current_account_transactions_{column}'), 'current_account_transactions', [column], unique=False)

    # Production, recipes and sales
    op.create_table(
        'open_productions',
        _id(),
        sa.Column('production_date', sa.DateTime(), nullable=False),
        sa.Column('produced_material_id', sa.Integer(), nullable=False),
        sa.Column('produced_quantity', sa.Float(), nullable=False),
        sa.Column('production_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('consumption_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'CANCELLED', name='openproductionstatus'), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['produced_material_id'], ['materials.id']),
        sa.ForeignKeyConstraint(['production_warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['consumption_warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_open_productions_id'), 'open_productions', ['id'], unique=False)
    op.create_index(op.f('ix_open_productions_production_date'), 'open_productions', ['production_date'], unique=False)

    op.create_table(
        'open_production_items',
        _id(),
        sa.Column('open_production_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost', sa.Float(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['open_production_id'], ['open_productions.id']),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_open_production_items_id'), 'open_production_items', ['id'], unique=False)
    op.create_index(op.f('ix_open_production_items_open_production_id'), 'open_production_items', ['open_production_id'], unique=False)

    op.create_table(
        'recipes',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('servings', sa.Float(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('cost_per_serving', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_recipes_id'), 'recipes', ['id'], unique=False)
    op.create_index(op.f('ix_recipes_name'), 'recipes', ['name'], unique=False)

    op.create_table(
        'recipe_ingredients',
        _id(),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost', sa.Float(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id']),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_recipe_ingredients_id'), 'recipe_ingredients', ['id'], unique=False)
    op.create_index(op.f('ix_recipe_ingredients_recipe_id'), 'recipe_ingredients', ['recipe_id'], unique=False)

    op.create_table(
        'sales_items',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sales_items_id'), 'sales_items', ['id'], unique=False)
    op.create_index(op.f('ix_sales_items_name'), 'sales_items', ['name'], unique=False)

    op.create_table(
        'recipe_mappings',
        _id(),
        sa.Column('sales_item_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('portion_ratio', sa.Float(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['sales_item_id'], ['sales_items.id']),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sales_item_id', 'recipe_id', name='uq_recipe_mapping_item_recipe'),
    )
    op.create_index(op.f('ix_recipe_mappings_id'), 'recipe_mappings', ['id'], unique=False)
    op.create_index(op.f('ix_recipe_mappings_sales_item_id'), 'recipe_mappings', ['sales_item_id'], unique=False)
    op.create_index(op.f('ix_recipe_mappings_recipe_id'), 'recipe_mappings', ['recipe_id'], unique=False)

    op.create_table(
        'sales',
        _id(),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('sales_item_id', sa.Integer(), nullable=True),
        sa.Column('item_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=True),
        sa.Column('portion_ratio', sa.Float(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('gross_profit', sa.Float(), nullable=False),
        sa.Column('profit_margin', sa.Float(), nullable=False),
        sa.Column('stock_processed', sa.Boolean(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['sales_item_id'], ['sales_items.id']),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sales_id'), 'sales', ['id'], unique=False)
    op.create_index(op.f('ix_sales_date'), 'sales', ['date'], unique=False)

    # Ledger
    op.create_table(
        'warehouse_transfers',
        _id(),
        sa.Column('from_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('to_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'CANCELLED', name='transferstatus'), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('request_date', sa.DateTime(), nullable=False),
        sa.Column('approved_date', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['from_warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['to_warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_warehouse_transfers_id'), 'warehouse_transfers', ['id'], unique=False)

    op.create_table(
        'stock_movements',
        _id(),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('unit_cost', sa.Float(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('stock_before', sa.Float(), nullable=False),
        sa.Column('stock_after', sa.Float(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column('open_production_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('transfer_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.ForeignKeyConstraint(['open_production_id'], ['open_productions.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['transfer_id'], ['warehouse_transfers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'material_id', 'warehouse_id', 'type', 'reason', 'date',
                   'invoice_id', 'open_production_id', 'sale_id', 'transfer_id'):
        op.create_index(op.f(f'ix_stock_movements_{column}'), 'stock_movements', [column], unique=False)

    # Expenses
    op.create_table(
        'expense_main_categories',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index(op.f('ix_expense_main_categories_id'), 'expense_main_categories', ['id'], unique=False)

    op.create_table(
        'expense_sub_categories',
        _id(),
        sa.Column('main_category_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['main_category_id'], ['expense_main_categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_expense_sub_categories_id'), 'expense_sub_categories', ['id'], unique=False)
    op.create_index(op.f('ix_expense_sub_categories_main_category_id'), 'expense_sub_categories', ['main_category_id'], unique=False)

    op.create_table(
        'expense_items',
        _id(),
        sa.Column('sub_category_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('default_amount', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['sub_category_id'], ['expense_sub_categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_expense_items_id'), 'expense_items', ['id'], unique=False)
    op.create_index(op.f('ix_expense_items_sub_category_id'), 'expense_items', ['sub_category_id'], unique=False)

    payment_status = sa.Enum('PENDING', 'PAID', 'OVERDUE', name='paymentstatus')
    # Second table reuses the type created with the first one
    payment_status_existing = postgresql.ENUM('PENDING', 'PAID', 'OVERDUE', name='paymentstatus', create_type=False)

    op.create_table(
        'expenses',
        _id(),
        sa.Column('expense_item_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('invoice_number', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['expense_item_id'], ['expense_items.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_expenses_id'), 'expenses', ['id'], unique=False)
    op.create_index(op.f('ix_expenses_expense_item_id'), 'expenses', ['expense_item_id'], unique=False)
    op.create_index(op.f('ix_expenses_date'), 'expenses', ['date'], unique=False)

    op.create_table(
        'expense_batches',
        _id(),
        sa.Column('batch_number', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('period_year', sa.Integer(), nullable=False),
        sa.Column('period_month', sa.Integer(), nullable=False),
        sa.Column('entry_date', sa.DateTime(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('status', sa.Enum('DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED', 'PROCESSED', name='expensebatchstatus'), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_expense_batches_id'), 'expense_batches', ['id'], unique=False)
    op.create_index(op.f('ix_expense_batches_batch_number'), 'expense_batches', ['batch_number'], unique=True)
    op.create_index(op.f('ix_expense_batches_entry_date'), 'expense_batches', ['entry_date'], unique=False)

    op.create_table(
        'expense_batch_items',
        _id(),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('expense_item_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_status', payment_status_existing, nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('invoice_number', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['batch_id'], ['expense_batches.id']),
        sa.ForeignKeyConstraint(['expense_item_id'], ['expense_items.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_expense_batch_items_id'), 'expense_batch_items', ['id'], unique=False)
    op.create_index(op.f('ix_expense_batch_items_batch_id'), 'expense_batch_items', ['batch_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    # Reverse dependency order; indexes go with their tables
    for table in (
        'expense_batch_items', 'expense_batches', 'expenses', 'expense_items',
        'expense_sub_categories', 'expense_main_categories',
        'stock_movements', 'warehouse_transfers',
        'sales', 'recipe_mappings', 'sales_items', 'recipe_ingredients', 'recipes',
        'open_production_items', 'open_productions',
        'current_account_transactions', 'payments', 'invoice_items', 'invoices', 'current_accounts',
        'material_stocks', 'materials', 'suppliers', 'categories', 'warehouses',
        'activity_logs', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'expensebatchstatus', 'paymentstatus', 'transferstatus', 'openproductionstatus',
            'transactiontype', 'paymentstate', 'paymentmethod', 'invoicestatus', 'invoicetype', 'accounttype',
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
