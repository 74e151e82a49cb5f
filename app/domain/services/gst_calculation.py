# app/domain/services/gst_calculation.py
"""
GST calculation for invoices.

Three layers, all pure (no I/O, no shared state):

1. ``calculate_tax``      one taxable amount -> CGST/SGST or IGST + CESS
2. ``resolve_line``       quantity x price, discount, then ``calculate_tax``
3. ``aggregate_totals``   resolved lines -> invoice level totals

Rounding policy: every monetary value of a line is rounded to 2dp on its
own (ROUND_HALF_UP, i.e. half away from zero). Invoice totals are sums of
those rounded line values; only subtotal and discount are summed raw and
rounded once.

Callers validate inputs (see ``InvoiceLineInput``); nothing in here raises
on bad numbers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from app.domain.models.invoice import (
    InvoiceLineInput,
    InvoiceTotals,
    LineCalculationResult,
    ResolvedLine,
)

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")
_PAISE = Decimal("0.01")


def to_decimal(value: Number | None) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return value.quantize(_PAISE, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Tax calculator
# ---------------------------------------------------------------------------

def calculate_tax(
    amount: Number,
    tax_rate: Number,
    is_interstate: bool,
    is_tax_inclusive: bool = False,
    cess_rate: Number = 0,
) -> LineCalculationResult:
    """
    Split GST on ``amount`` into CGST+SGST (intrastate) or IGST (interstate).

    Exclusive:  taxable = amount,                   tax = taxable * rate / 100
    Inclusive:  taxable = amount / (1 + rate/100),  tax = amount - taxable

    CESS is charged on the taxable amount in both regimes.
    """
    amount = to_decimal(amount)
    rate = to_decimal(tax_rate)
    cess_rate = to_decimal(cess_rate)

    if is_tax_inclusive:
        if rate == ZERO:
            taxable = amount
        else:
            taxable = amount / (1 + rate / HUNDRED)
        tax = amount - taxable
    else:
        taxable = amount
        tax = taxable * rate / HUNDRED

    if is_interstate:
        igst, cgst, sgst = tax, ZERO, ZERO
        igst_rate, cgst_rate, sgst_rate = rate, ZERO, ZERO
    else:
        igst, cgst, sgst = ZERO, tax / TWO, tax / TWO
        igst_rate, cgst_rate, sgst_rate = ZERO, rate / TWO, rate / TWO

    cess = taxable * cess_rate / HUNDRED if cess_rate > ZERO else ZERO
    total = taxable + tax + cess

    return LineCalculationResult(
        taxable_amount=round_money(taxable),
        cgst_rate=cgst_rate,
        sgst_rate=sgst_rate,
        igst_rate=igst_rate,
        cgst_amount=round_money(cgst),
        sgst_amount=round_money(sgst),
        igst_amount=round_money(igst),
        cess_amount=round_money(cess),
        total_amount=round_money(total),
    )


# ---------------------------------------------------------------------------
# Line resolver
# ---------------------------------------------------------------------------

def resolve_line(
    quantity: Number,
    unit_price: Number,
    discount_percent: Number,
    tax_rate: Number,
    is_interstate: bool,
    is_tax_inclusive: bool = False,
    cess_rate: Number = 0,
) -> ResolvedLine:
    """Apply the line discount and compute tax on what is left."""
    base_amount = to_decimal(quantity) * to_decimal(unit_price)
    discount_amount = base_amount * to_decimal(discount_percent) / HUNDRED
    amount_after_discount = base_amount - discount_amount

    result = calculate_tax(
        amount_after_discount,
        tax_rate,
        is_interstate,
        is_tax_inclusive=is_tax_inclusive,
        cess_rate=cess_rate,
    )
    return ResolvedLine(
        base_amount=base_amount,
        discount_amount=discount_amount,
        result=result,
    )


def resolve_line_input(
    line: InvoiceLineInput,
    is_interstate: bool,
    is_tax_inclusive: bool = False,
) -> ResolvedLine:
    return resolve_line(
        line.quantity,
        line.unit_price,
        line.discount_percent,
        line.tax_rate,
        is_interstate,
        is_tax_inclusive=is_tax_inclusive,
        cess_rate=line.cess_rate,
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

def aggregate_totals(lines: Iterable[ResolvedLine]) -> InvoiceTotals:
    """
    Sum resolved lines into invoice totals.

    ``total_amount`` is rebuilt from the summed components rather than
    summing per-line totals, so it always equals
    taxable + cgst + sgst + igst + cess exactly.
    """
    subtotal = ZERO
    discount = ZERO
    taxable = cgst = sgst = igst = cess = ZERO

    for line in lines:
        subtotal += line.base_amount
        discount += line.discount_amount
        taxable += line.result.taxable_amount
        cgst += line.result.cgst_amount
        sgst += line.result.sgst_amount
        igst += line.result.igst_amount
        cess += line.result.cess_amount

    return InvoiceTotals(
        subtotal=round_money(subtotal),
        discount_amount=round_money(discount),
        taxable_amount=taxable,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        cess_amount=cess,
        total_amount=taxable + cgst + sgst + igst + cess,
    )


def calculate_invoice_totals(
    lines: Iterable[InvoiceLineInput],
    is_interstate: bool,
    is_tax_inclusive: bool = False,
) -> tuple[list[ResolvedLine], InvoiceTotals]:
    """Resolve every line and aggregate. Returns (resolved lines, totals)."""
    resolved = [
        resolve_line_input(line, is_interstate, is_tax_inclusive)
        for line in lines
    ]
    return resolved, aggregate_totals(resolved)
