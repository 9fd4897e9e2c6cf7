"""Initial stock ledger schema

Revision ID: 20261019_initial_stock_ledger
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_stock_ledger"
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")

VOUCHER_TABLES = (
    # (header table, line table, short name)
    ("store_receipt_vouchers", "store_receipt_voucher_items", "srv"),
    ("store_issue_vouchers", "store_issue_voucher_items", "siv"),
    ("store_transfer_vouchers", "store_transfer_voucher_items", "stv"),
)

LEGACY_TABLES = ("purchase_invoices", "purchase_returns", "sales_invoices", "sales_returns")


def _timestamps(with_updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False)]
    if with_updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False))
    return cols


def upgrade():
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "code", name="uq_branches_company_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_branches_company_id", "branches", ["company_id"], unique=False)

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "code", name="uq_stores_company_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stores_company_id", "stores", ["company_id"], unique=False)
    op.create_index("ix_stores_branch_id", "stores", ["branch_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_company_id", "users", ["company_id"], unique=False)
    op.create_index("ix_users_branch_id", "users", ["branch_id"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("barcode", sa.String(128), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("purchase_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sale_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "code", name="uq_items_company_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_items_company_id", "items", ["company_id"], unique=False)
    op.create_index("ix_items_company_name", "items", ["company_id", "name"], unique=False)

    op.create_table(
        "store_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("opening_balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store_id", "item_id", name="uq_store_items_store_item"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_store_items_store_id", "store_items", ["store_id"], unique=False)
    op.create_index("ix_store_items_item_id", "store_items", ["item_id"], unique=False)

    for header, lines, short in VOUCHER_TABLES:
        if short == "stv":
            store_cols = [
                sa.Column("from_store_id", sa.Integer(), nullable=False),
                sa.Column("to_store_id", sa.Integer(), nullable=False),
            ]
            store_constraints = [
                sa.ForeignKeyConstraint(["from_store_id"], ["stores.id"]),
                sa.ForeignKeyConstraint(["to_store_id"], ["stores.id"]),
                sa.CheckConstraint("from_store_id <> to_store_id", name="ck_stv_distinct_stores"),
            ]
        else:
            store_cols = [sa.Column("store_id", sa.Integer(), nullable=False)]
            store_constraints = [sa.ForeignKeyConstraint(["store_id"], ["stores.id"])]

        op.create_table(
            header,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("voucher_number", sa.String(32), nullable=False),
            *store_cols,
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("branch_id", sa.Integer(), nullable=True),
            sa.Column("date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            *_timestamps(),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
            *store_constraints,
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("company_id", "voucher_number", name=f"uq_{short}_company_number"),
            sqlite_autoincrement=True,
        )
        op.create_index(f"ix_{header}_company_id", header, ["company_id"], unique=False)
        if short == "stv":
            op.create_index("ix_stv_from_store", header, ["from_store_id"], unique=False)
            op.create_index("ix_stv_to_store", header, ["to_store_id"], unique=False)
        else:
            op.create_index(f"ix_{short}_store", header, ["store_id"], unique=False)

        op.create_table(
            lines,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("voucher_id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("unit_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("total_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.ForeignKeyConstraint(["voucher_id"], [f"{header}.id"]),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )
        op.create_index(f"ix_{lines}_voucher_id", lines, ["voucher_id"], unique=False)
        op.create_index(f"ix_{short}_items_item_voucher", lines, ["item_id", "voucher_id"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "document_type", name="uq_document_sequences_company_type"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_company_id", "document_sequences", ["company_id"], unique=False)

    for table in LEGACY_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("branch_id", sa.Integer(), nullable=True),
            sa.Column("code", sa.String(64), nullable=False),
            sa.Column("date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(with_updated=False),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
            sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("company_id", "code", name=f"uq_{table}_company_code"),
            sqlite_autoincrement=True,
        )
        op.create_index(f"ix_{table}_company_branch", table, ["company_id", "branch_id"], unique=False)

    op.create_table(
        "inventory_counts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("total_variance_value_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("receipt_voucher_id", sa.Integer(), nullable=True),
        sa.Column("issue_voucher_id", sa.Integer(), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["receipt_voucher_id"], ["store_receipt_vouchers.id"]),
        sa.ForeignKeyConstraint(["issue_voucher_id"], ["store_issue_vouchers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "code", name="uq_inventory_counts_company_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_counts_company_id", "inventory_counts", ["company_id"], unique=False)
    op.create_index("ix_inventory_counts_store_id", "inventory_counts", ["store_id"], unique=False)
    op.create_index("ix_inventory_counts_status", "inventory_counts", ["status"], unique=False)
    op.create_index("ix_inventory_counts_company_status", "inventory_counts", ["company_id", "status"], unique=False)

    op.create_table(
        "inventory_count_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("count_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("system_stock", sa.Integer(), nullable=False),
        sa.Column("actual_stock", sa.Integer(), nullable=False),
        sa.Column("difference", sa.Integer(), nullable=False),
        sa.Column("cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["count_id"], ["inventory_counts.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_count_items_count_id", "inventory_count_items", ["count_id"], unique=False)


def downgrade():
    op.drop_table("inventory_count_items")
    op.drop_table("inventory_counts")
    for table in reversed(LEGACY_TABLES):
        op.drop_table(table)
    op.drop_table("document_sequences")
    for header, lines, _short in reversed(VOUCHER_TABLES):
        op.drop_table(lines)
        op.drop_table(header)
    op.drop_table("store_items")
    op.drop_table("items")
    op.drop_table("users")
    op.drop_table("stores")
    op.drop_table("branches")
    op.drop_table("companies")
