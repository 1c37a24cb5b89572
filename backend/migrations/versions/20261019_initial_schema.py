"""Initial schema: roles, users, catalog, restock workflow, sales, SQL procedure

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. roles (seeded: Staff, Manager, Administrator) and users
2. categories, products, vendors, product_vendors
3. restock_orders and restock_deliveries (one delivery per order)
4. orders and order_items (written by the point-of-sale front end)
5. execute_raw_sql(sql_text) on PostgreSQL: runs one read-only query and
   returns its rows as a single JSON array
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


EXECUTE_RAW_SQL = """
CREATE OR REPLACE FUNCTION execute_raw_sql(sql_text text)
RETURNS TABLE(result json)
LANGUAGE plpgsql
STABLE
SET statement_timeout = '10s'
AS $fn$
BEGIN
    -- STABLE functions may not run INSERT/UPDATE/DELETE/DDL, and the
    -- subquery wrapper rejects multiple statements.
    RETURN QUERY EXECUTE format(
        'SELECT coalesce(json_agg(t), ''[]''::json) FROM (%s) AS t',
        sql_text
    );
END;
$fn$;
"""


def upgrade():
    # ==========================================================================
    # 1. ROLES AND USERS
    # ==========================================================================
    roles = op.create_table('roles',
        sa.Column('role_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('role_name', sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint('role_id'),
        sa.UniqueConstraint('role_name')
    )
    op.bulk_insert(roles, [
        {'role_id': 1, 'role_name': 'Staff'},
        {'role_id': 2, 'role_name': 'Manager'},
        {'role_id': 3, 'role_name': 'Administrator'},
    ])

    op.create_table('users',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('designation', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.Column('avatar_key', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['role_id'], ['roles.role_id'], ),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('categories',
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('category_id'),
        sa.UniqueConstraint('category_name', name='uq_categories_name'),
        sqlite_autoincrement=True
    )

    op.create_table('products',
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.category_id'], ),
        sa.PrimaryKeyConstraint('product_id'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_active_name', ['is_active', 'product_name'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_category_id'), ['category_id'], unique=False)

    op.create_table('vendors',
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('vendor_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('vendors', schema=None) as batch_op:
        batch_op.create_index('ix_vendors_active_name', ['is_active', 'vendor_name'], unique=False)

    op.create_table('product_vendors',
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('supply_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('lead_time_days', sa.Integer(), nullable=True),
        sa.Column('preferred', sa.Boolean(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.vendor_id'], ),
        sa.PrimaryKeyConstraint('product_id', 'vendor_id')
    )

    # ==========================================================================
    # 3. RESTOCK WORKFLOW
    # ==========================================================================
    op.create_table('restock_orders',
        sa.Column('restock_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('requested_by', sa.Integer(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expected_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_restock_orders_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.vendor_id'], ),
        sa.ForeignKeyConstraint(['requested_by'], ['users.user_id'], ),
        sa.PrimaryKeyConstraint('restock_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('restock_orders', schema=None) as batch_op:
        batch_op.create_index('ix_restock_orders_status', ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_restock_orders_product_id'), ['product_id'], unique=False)

    op.create_table('restock_deliveries',
        sa.Column('delivery_id', sa.Integer(), nullable=False),
        sa.Column('restock_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('received_by', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['restock_id'], ['restock_orders.restock_id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ),
        sa.ForeignKeyConstraint(['received_by'], ['users.user_id'], ),
        sa.PrimaryKeyConstraint('delivery_id'),
        sa.UniqueConstraint('restock_id', name='uq_restock_deliveries_restock'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 4. SALES (read-only for this service)
    # ==========================================================================
    op.create_table('orders',
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint('order_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index('ix_orders_order_date', ['order_date'], unique=False)

    op.create_table('order_items',
        sa.Column('order_item_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.order_id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ),
        sa.PrimaryKeyConstraint('order_item_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_items_order_id'), ['order_id'], unique=False)

    # ==========================================================================
    # 5. SANDBOXED QUERY PROCEDURE (PostgreSQL only)
    # ==========================================================================
    if op.get_bind().dialect.name == 'postgresql':
        op.execute(EXECUTE_RAW_SQL)


def downgrade():
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP FUNCTION IF EXISTS execute_raw_sql(text)")

    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_order_items_order_id'))
    op.drop_table('order_items')

    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.drop_index('ix_orders_order_date')
    op.drop_table('orders')

    op.drop_table('restock_deliveries')

    with op.batch_alter_table('restock_orders', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_restock_orders_product_id'))
        batch_op.drop_index('ix_restock_orders_status')
    op.drop_table('restock_orders')

    op.drop_table('product_vendors')

    with op.batch_alter_table('vendors', schema=None) as batch_op:
        batch_op.drop_index('ix_vendors_active_name')
    op.drop_table('vendors')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_products_category_id'))
        batch_op.drop_index('ix_products_active_name')
    op.drop_table('products')

    op.drop_table('categories')
    op.drop_table('users')
    op.drop_table('roles')
