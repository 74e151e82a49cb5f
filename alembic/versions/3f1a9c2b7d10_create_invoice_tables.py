"""create invoices, invoice_items and invoice_counters

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "3f1a9c2b7d10"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(15, 2),
        nullable=nullable,
        server_default="0" if default else None,
    )


def upgrade() -> None:
    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("business_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("party_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column("invoice_type", sa.String(length=30), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("place_of_supply", sa.String(length=100), nullable=True),
        sa.Column("is_interstate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_export", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_rcm", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_tax_inclusive", sa.Boolean(), nullable=False, server_default=sa.false()),
        _money("subtotal"),
        _money("discount_amount"),
        _money("taxable_amount"),
        _money("cgst_amount"),
        _money("sgst_amount"),
        _money("igst_amount"),
        _money("cess_amount"),
        _money("round_off"),
        _money("total_amount"),
        _money("paid_amount"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="unpaid"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "business_id", "invoice_number", "invoice_type",
            name="uq_invoices_business_number_type",
        ),
    )
    op.create_index(op.f("ix_invoices_business_id"), "invoices", ["business_id"])
    op.create_index(op.f("ix_invoices_party_id"), "invoices", ["party_id"])
    op.create_index(op.f("ix_invoices_invoice_date"), "invoices", ["invoice_date"])
    op.create_index("ix_invoices_business_type", "invoices", ["business_id", "invoice_type"])
    op.create_index(
        "ix_invoices_business_payment_status", "invoices", ["business_id", "payment_status"],
    )

    op.create_table(
        "invoice_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("item_name", sa.String(length=200), nullable=False),
        sa.Column("item_description", sa.Text(), nullable=True),
        sa.Column("hsn_code", sa.String(length=8), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=True),
        sa.Column("quantity", sa.Numeric(15, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(15, 2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        _money("discount_amount"),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("cgst_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("sgst_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("igst_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("cess_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        _money("taxable_amount", default=False),
        _money("cgst_amount"),
        _money("sgst_amount"),
        _money("igst_amount"),
        _money("cess_amount"),
        _money("total_amount", default=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_invoice_items_invoice_id"), "invoice_items", ["invoice_id"])
    op.create_index(op.f("ix_invoice_items_item_id"), "invoice_items", ["item_id"])

    op.create_table(
        "invoice_counters",
        sa.Column("business_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_type", sa.String(length=30), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("business_id", "invoice_type", name="pk_invoice_counters"),
    )


def downgrade() -> None:
    op.drop_table("invoice_counters")
    op.drop_index(op.f("ix_invoice_items_item_id"), table_name="invoice_items")
    op.drop_index(op.f("ix_invoice_items_invoice_id"), table_name="invoice_items")
    op.drop_table("invoice_items")
    op.drop_index("ix_invoices_business_payment_status", table_name="invoices")
    op.drop_index("ix_invoices_business_type", table_name="invoices")
    op.drop_index(op.f("ix_invoices_invoice_date"), table_name="invoices")
    op.drop_index(op.f("ix_invoices_party_id"), table_name="invoices")
    op.drop_index(op.f("ix_invoices_business_id"), table_name="invoices")
    op.drop_table("invoices")
