import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.infrastructure.db.base import Base

MONEY = Numeric(15, 2)
RATE = Numeric(6, 3)


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint(
            "business_id", "invoice_number", "invoice_type",
            name="uq_invoices_business_number_type",
        ),
        Index("ix_invoices_business_type", "business_id", "invoice_type"),
        Index("ix_invoices_business_payment_status", "business_id", "payment_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    party_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    invoice_number = Column(String(50), nullable=False)
    invoice_type = Column(String(30), nullable=False)
    invoice_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)

    place_of_supply = Column(String(100), nullable=True)
    is_interstate = Column(Boolean, nullable=False, default=False)
    is_export = Column(Boolean, nullable=False, default=False)
    is_rcm = Column(Boolean, nullable=False, default=False)
    is_tax_inclusive = Column(Boolean, nullable=False, default=False)

    subtotal = Column(MONEY, nullable=False, default=0)
    discount_amount = Column(MONEY, nullable=False, default=0)
    taxable_amount = Column(MONEY, nullable=False, default=0)
    cgst_amount = Column(MONEY, nullable=False, default=0)
    sgst_amount = Column(MONEY, nullable=False, default=0)
    igst_amount = Column(MONEY, nullable=False, default=0)
    cess_amount = Column(MONEY, nullable=False, default=0)
    round_off = Column(MONEY, nullable=False, default=0)
    total_amount = Column(MONEY, nullable=False, default=0)

    paid_amount = Column(MONEY, nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default="unpaid")
    status = Column(String(20), nullable=False, default="draft")

    terms = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        UUID(as_uuid=True),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    # Snapshot of the line as entered
    item_name = Column(String(200), nullable=False)
    item_description = Column(Text, nullable=True)
    hsn_code = Column(String(8), nullable=True)
    unit = Column(String(20), nullable=True)
    quantity = Column(Numeric(15, 3), nullable=False)
    unit_price = Column(MONEY, nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(MONEY, nullable=False, default=0)

    # Tax
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    cgst_rate = Column(RATE, nullable=False, default=0)
    sgst_rate = Column(RATE, nullable=False, default=0)
    igst_rate = Column(RATE, nullable=False, default=0)
    cess_rate = Column(Numeric(5, 2), nullable=False, default=0)

    # Calculated
    taxable_amount = Column(MONEY, nullable=False)
    cgst_amount = Column(MONEY, nullable=False, default=0)
    sgst_amount = Column(MONEY, nullable=False, default=0)
    igst_amount = Column(MONEY, nullable=False, default=0)
    cess_amount = Column(MONEY, nullable=False, default=0)
    total_amount = Column(MONEY, nullable=False)

    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    invoice = relationship("Invoice", back_populates="items")


class InvoiceCounter(Base):
    """Last issued document number per (business, invoice type)."""

    __tablename__ = "invoice_counters"
    __table_args__ = (
        PrimaryKeyConstraint("business_id", "invoice_type", name="pk_invoice_counters"),
    )

    business_id = Column(UUID(as_uuid=True), nullable=False)
    invoice_type = Column(String(30), nullable=False)
    last_number = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
    )
