# app/api/v1/schemas/invoices.py
"""Request and response schemas for invoice endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.domain.models.invoice import (
    InvoiceCreateRequest,
    InvoiceQuoteRequest,
    InvoiceUpdateRequest,
    InvoiceTotals,
    ResolvedLine,
)
from app.domain.services.gst_calculation import round_money

__all__ = [
    "InvoiceCreateRequest",
    "InvoiceUpdateRequest",
    "InvoiceQuoteRequest",
    "InvoiceItemDetail",
    "InvoiceDetail",
    "QuoteLine",
    "QuoteResponse",
]


class InvoiceItemDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    item_id: UUID | None = None
    item_name: str
    item_description: str | None = None
    hsn_code: str | None = None
    unit: str | None = None
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    cess_rate: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    total_amount: Decimal
    sort_order: int


class InvoiceDetail(BaseModel):
    """Full invoice detail returned in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    party_id: UUID
    invoice_number: str
    invoice_type: str
    invoice_date: date
    due_date: date | None
    place_of_supply: str | None
    is_interstate: bool
    is_export: bool
    is_rcm: bool
    is_tax_inclusive: bool

    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    round_off: Decimal
    total_amount: Decimal
    paid_amount: Decimal

    payment_status: str
    status: str
    terms: str | None
    notes: str | None

    items: list[InvoiceItemDetail]

    created_by: UUID
    created_at: datetime | None
    updated_at: datetime | None


class QuoteLine(BaseModel):
    base_amount: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    total_amount: Decimal

    @classmethod
    def from_resolved(cls, line: ResolvedLine) -> QuoteLine:
        return cls(
            base_amount=round_money(line.base_amount),
            discount_amount=round_money(line.discount_amount),
            **line.result.to_dict(),
        )


class QuoteResponse(BaseModel):
    lines: list[QuoteLine]
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    total_amount: Decimal

    @classmethod
    def build(cls, lines: list[ResolvedLine], totals: InvoiceTotals) -> QuoteResponse:
        return cls(
            lines=[QuoteLine.from_resolved(line) for line in lines],
            **totals.to_dict(),
        )
