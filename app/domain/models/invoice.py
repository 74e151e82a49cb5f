# app/domain/models/invoice.py
"""
Invoice domain models.

Request models (pydantic) are the validation boundary: every optional
field gets its default here, once, so the calculation code never has to
guess. Calculation results are plain frozen dataclasses holding Decimals.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

ZERO = Decimal("0")


class InvoiceType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    QUOTATION = "quotation"
    PROFORMA = "proforma"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class InvoiceLineInput(BaseModel):
    """One line of an invoice as entered by the user."""

    item_id: Optional[UUID] = None
    item_name: str = Field(min_length=2, max_length=200)
    item_description: Optional[str] = None
    hsn_code: Optional[str] = Field(default=None, min_length=4, max_length=8)
    unit: Optional[str] = Field(default=None, max_length=20)

    quantity: Decimal = Field(ge=0, allow_inf_nan=False)
    unit_price: Decimal = Field(ge=0, allow_inf_nan=False)
    discount_percent: Decimal = Field(default=ZERO, ge=0, le=100, allow_inf_nan=False)
    tax_rate: Decimal = Field(default=ZERO, ge=0, le=100, allow_inf_nan=False)
    cess_rate: Decimal = Field(default=ZERO, ge=0, le=100, allow_inf_nan=False)


class InvoiceCreateRequest(BaseModel):
    party_id: UUID
    invoice_type: InvoiceType
    invoice_date: date
    due_date: Optional[date] = None

    place_of_supply: Optional[str] = Field(default=None, max_length=100)
    is_interstate: bool = False
    is_export: bool = False
    is_rcm: bool = False
    # None means "use the business default" (INVOICE_TAX_INCLUSIVE_DEFAULT)
    is_tax_inclusive: Optional[bool] = None

    items: list[InvoiceLineInput] = Field(min_length=1)

    terms: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _due_after_invoice_date(self) -> InvoiceCreateRequest:
        if self.due_date is not None and self.due_date < self.invoice_date:
            raise ValueError("due_date cannot be before invoice_date")
        return self


class InvoiceUpdateRequest(BaseModel):
    """Partial update. Only the fields actually sent are applied."""

    party_id: Optional[UUID] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    place_of_supply: Optional[str] = Field(default=None, max_length=100)
    is_interstate: Optional[bool] = None
    is_export: Optional[bool] = None
    is_rcm: Optional[bool] = None
    is_tax_inclusive: Optional[bool] = None
    status: Optional[InvoiceStatus] = None

    items: Optional[list[InvoiceLineInput]] = Field(default=None, min_length=1)

    terms: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _due_after_invoice_date(self) -> InvoiceUpdateRequest:
        if (
            self.due_date is not None
            and self.invoice_date is not None
            and self.due_date < self.invoice_date
        ):
            raise ValueError("due_date cannot be before invoice_date")
        return self


class InvoiceQuoteRequest(BaseModel):
    """Price a set of lines without saving anything."""

    is_interstate: bool = False
    is_tax_inclusive: bool = False
    items: list[InvoiceLineInput] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Calculation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineCalculationResult:
    """Tax breakdown of a single taxable amount. Money is rounded to 2dp."""
    taxable_amount: Decimal = ZERO
    cgst_rate: Decimal = ZERO
    sgst_rate: Decimal = ZERO
    igst_rate: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    cess_amount: Decimal = ZERO
    total_amount: Decimal = ZERO

    @property
    def tax_amount(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResolvedLine:
    """
    A line after discount and tax resolution.

    ``base_amount`` (quantity x unit price) and ``discount_amount`` are kept
    unrounded so the aggregator can sum them and round once.
    """
    base_amount: Decimal
    discount_amount: Decimal
    result: LineCalculationResult


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    cess_amount: Decimal = ZERO
    total_amount: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
