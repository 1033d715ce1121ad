"""Initial schema: reference data, users, single sessions, POS transactions, documents

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. stores / branches (names referenced by POS payloads)
2. users and user_sessions (one row per user, unique user_id)
3. categories / products (auto-created from line items)
4. header, item_details, payment_details, government_discount with
   unique natural keys
5. receipts / zread file blobs
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def _pos_key_columns():
    return [
        sa.Column('branch_name', sa.String(length=255), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
    ]


def _pos_key_foreign_keys():
    return [
        sa.ForeignKeyConstraint(['branch_name'], ['branches.branch_name'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['store_name'], ['stores.store_name'], ondelete='CASCADE'),
    ]


def upgrade():
    # ==========================================================================
    # 1. REFERENCE DATA
    # ==========================================================================
    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('store_description', sa.String(length=255), nullable=True),
        sa.Column('active', sa.String(length=8), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stores', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stores_store_name'), ['store_name'], unique=True)

    op.create_table('branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_name', sa.String(length=255), nullable=False),
        sa.Column('branch_description', sa.String(length=255), nullable=True),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['store_name'], ['stores.store_name'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('branches', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_branches_branch_name'), ['branch_name'], unique=True)
        batch_op.create_index(batch_op.f('ix_branches_store_name'), ['store_name'], unique=False)

    # ==========================================================================
    # 2. USERS AND SINGLE SESSIONS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)

    op.create_table('user_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_user_sessions_user'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_sessions_token_hash'), ['token_hash'], unique=False)
        batch_op.create_index('ix_user_sessions_last_activity', ['last_activity'], unique=False)

    # ==========================================================================
    # 3. MENU DIMENSIONS
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('category_code', sa.String(length=64), nullable=False),
        sa.Column('category_name', sa.String(length=255), nullable=False),
        sa.Column('category_description', sa.String(length=255), nullable=True),
        sa.Column('active', sa.String(length=8), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['store_name'], ['stores.store_name'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('categories', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_categories_category_code'), ['category_code'], unique=True)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_description', sa.String(length=255), nullable=True),
        sa.Column('active', sa.String(length=8), nullable=False),
        sa.Column('category_code', sa.String(length=64), nullable=False),
        sa.Column('branch_name', sa.String(length=255), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_code'], ['categories.category_code'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['store_name'], ['stores.store_name'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_product_code'), ['product_code'], unique=True)
        batch_op.create_index(batch_op.f('ix_products_product_name'), ['product_name'], unique=False)

    # ==========================================================================
    # 4. POS TRANSACTIONS (natural keys are unique)
    # ==========================================================================
    op.create_table('header',
        sa.Column('id', sa.Integer(), nullable=False),
        *_pos_key_columns(),
        sa.Column('terminal_number', sa.String(length=64), nullable=False),
        sa.Column('si_number', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('transaction_type', sa.String(length=64), nullable=True),
        sa.Column('void_flag', sa.String(length=8), nullable=True),
        sa.Column('guest_count', sa.Integer(), nullable=True),
        sa.Column('male_count', sa.Integer(), nullable=True),
        sa.Column('female_count', sa.Integer(), nullable=True),
        sa.Column('guest_count_senior', sa.Integer(), nullable=True),
        sa.Column('guest_count_pwd', sa.Integer(), nullable=True),
        sa.Column('gross_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('net_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('vatable_sales', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('vat_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('service_charge', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('tip', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('total_discount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('less_vat', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('vat_exempt_sales', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('zero_rated_sales', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('delivery_charge', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('other_charges', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('cashier_name', sa.String(length=255), nullable=False),
        sa.Column('approved_by', sa.String(length=255), nullable=True),
        sa.Column('void_reason', sa.String(length=250), nullable=True),
        *_timestamps(),
        *_pos_key_foreign_keys(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_name', 'store_name', 'terminal_number', 'si_number', 'date', 'time', name='uq_header_natural_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('header', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_header_si_number'), ['si_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_header_cashier_name'), ['cashier_name'], unique=False)
        batch_op.create_index('ix_header_date_branch', ['date', 'branch_name'], unique=False)

    op.create_table('item_details',
        sa.Column('id', sa.Integer(), nullable=False),
        *_pos_key_columns(),
        sa.Column('terminal_number', sa.String(length=64), nullable=False),
        sa.Column('si_number', sa.String(length=64), nullable=False),
        sa.Column('combo_header', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('product_code', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('category_code', sa.String(length=64), nullable=True),
        sa.Column('category_description', sa.String(length=255), nullable=True),
        sa.Column('qty', sa.Integer(), nullable=True),
        sa.Column('net_total', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('menu_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('discount_code', sa.String(length=64), nullable=True),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('void_flag', sa.String(length=8), nullable=False),
        sa.Column('void_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        *_timestamps(),
        *_pos_key_foreign_keys(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_name', 'store_name', 'terminal_number', 'si_number', 'combo_header', 'product_code', name='uq_item_details_natural_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('item_details', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_item_details_si_number'), ['si_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_item_details_product_code'), ['product_code'], unique=False)
        batch_op.create_index(batch_op.f('ix_item_details_category_code'), ['category_code'], unique=False)

    op.create_table('payment_details',
        sa.Column('id', sa.Integer(), nullable=False),
        *_pos_key_columns(),
        sa.Column('terminal_number', sa.String(length=64), nullable=False),
        sa.Column('si_number', sa.String(length=64), nullable=False),
        sa.Column('payment_type', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        *_timestamps(),
        *_pos_key_foreign_keys(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_name', 'store_name', 'terminal_number', 'si_number', 'payment_type', name='uq_payment_details_natural_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payment_details', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payment_details_si_number'), ['si_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_payment_details_payment_type'), ['payment_type'], unique=False)

    op.create_table('government_discount',
        sa.Column('id', sa.Integer(), nullable=False),
        *_pos_key_columns(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('si_number', sa.String(length=64), nullable=False),
        sa.Column('id_no', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('id_type', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('gross_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        *_timestamps(),
        *_pos_key_foreign_keys(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_name', 'store_name', 'date', 'si_number', 'id_no', name='uq_government_discount_natural_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('government_discount', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_government_discount_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_government_discount_si_number'), ['si_number'], unique=False)

    # ==========================================================================
    # 5. DOCUMENTS
    # ==========================================================================
    op.create_table('receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_name', sa.String(length=255), nullable=False),
        sa.Column('si_number', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_content', sa.LargeBinary(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_name'], ['branches.branch_name'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_name', 'si_number', 'date', 'type', name='uq_receipts_natural_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('receipts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_receipts_branch_name'), ['branch_name'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_si_number'), ['si_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_date'), ['date'], unique=False)

    op.create_table('zread',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('branch_name', sa.String(length=255), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_content', sa.LargeBinary(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_name'], ['branches.branch_name'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'branch_name', name='uq_zread_date_branch'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('zread', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_zread_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_zread_branch_name'), ['branch_name'], unique=False)


def downgrade():
    for table in (
        'zread', 'receipts',
        'government_discount', 'payment_details', 'item_details', 'header',
        'products', 'categories',
        'user_sessions', 'users',
        'branches', 'stores',
    ):
        op.drop_table(table)
