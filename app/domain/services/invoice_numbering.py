# app/domain/services/invoice_numbering.py
"""
Invoice number sequencing.

Numbers are unique and increasing per (business, invoice type). The source
of truth is the ``invoice_counters`` row for that pair, locked FOR UPDATE
and bumped inside the caller's transaction, so two creators for the same
pair serialise on the row instead of both reading the same "last invoice".

A counter row that does not exist yet is seeded from the most recent
invoice of that pair (history scan), which keeps numbering continuous for
data created before counters existed.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from uuid import UUID

from app.config.settings import settings
from app.domain.models.invoice import InvoiceType

logger = logging.getLogger("invoice_numbering")

SALE_PREFIX = "INV"
PURCHASE_PREFIX = "PUR"

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def prefix_for(invoice_type: str | InvoiceType) -> str:
    """``sale`` -> INV, every other type -> PUR."""
    value = invoice_type.value if isinstance(invoice_type, InvoiceType) else invoice_type
    return SALE_PREFIX if value == InvoiceType.SALE.value else PURCHASE_PREFIX


def parse_trailing_number(invoice_number: str | None) -> Optional[int]:
    """Return the trailing digit run of ``invoice_number`` or None."""
    if not invoice_number:
        return None
    m = _TRAILING_DIGITS.search(invoice_number.strip())
    if not m:
        return None
    return int(m.group(1))


def format_invoice_number(prefix: str, number: int, width: int | None = None) -> str:
    """INV-001, INV-042, INV-1000 (padding never truncates)."""
    width = width or settings.INVOICE_NUMBER_PAD_WIDTH
    return f"{prefix}-{number:0{width}d}"


def next_invoice_number_after(
    last_invoice_number: str | None,
    invoice_type: str | InvoiceType,
) -> str:
    """
    Next number derived from the last issued one (history scan).

    No previous invoice starts at 1. A previous number without trailing
    digits (legacy/corrupt data) also restarts at 1 instead of failing.
    """
    if last_invoice_number is None:
        last = 0
    else:
        last = parse_trailing_number(last_invoice_number)
        if last is None:
            logger.warning(
                "Invoice number %r has no trailing digits, restarting sequence at 1",
                last_invoice_number,
            )
            last = 0
    return format_invoice_number(prefix_for(invoice_type), last + 1)


class InvoiceNumberSequencer:
    """Hands out the next document number for a (business, invoice type)."""

    def __init__(self, counters, invoices) -> None:
        # counters: InvoiceCounterRepository, invoices: InvoiceRepository
        self.counters = counters
        self.invoices = invoices

    async def _seed(self, business_id: UUID, invoice_type: str) -> int:
        latest = await self.invoices.get_latest(business_id, invoice_type)
        if latest is None:
            return 0
        last = parse_trailing_number(latest.invoice_number)
        if last is None:
            logger.warning(
                "Latest %s invoice %r of business %s has no trailing digits, "
                "restarting sequence at 1",
                invoice_type, latest.invoice_number, business_id,
            )
            return 0
        return last

    async def next_invoice_number(
        self,
        business_id: UUID,
        invoice_type: str | InvoiceType,
    ) -> str:
        """
        Claim the next number. Must run inside the transaction that inserts
        the invoice: the counter row stays locked until that commit.
        """
        type_value = invoice_type.value if isinstance(invoice_type, InvoiceType) else invoice_type

        counter = await self.counters.get_for_update(business_id, type_value)
        if counter is None:
            seed = await self._seed(business_id, type_value)
            counter = await self.counters.create(business_id, type_value, seed)
            logger.info(
                "Seeded %s counter for business %s at %d",
                type_value, business_id, seed,
            )

        number = await self.counters.increment(counter)
        return format_invoice_number(prefix_for(type_value), number)

    async def resync(
        self,
        business_id: UUID,
        invoice_type: str | InvoiceType,
    ) -> str:
        """
        Move the counter past the highest number already issued for the pair
        and claim the next one.

        Used when ``next_invoice_number`` produced a number that exists
        (counter behind legacy or imported data). Runs under the same row
        lock, so the jump is committed together with the invoice.
        """
        type_value = invoice_type.value if isinstance(invoice_type, InvoiceType) else invoice_type

        counter = await self.counters.get_for_update(business_id, type_value)
        if counter is None:
            counter = await self.counters.create(business_id, type_value, 0)

        numbers = await self.invoices.list_numbers(business_id, type_value)
        highest = max(
            (n for n in map(parse_trailing_number, numbers) if n is not None),
            default=0,
        )
        previous = counter.last_number
        await self.counters.advance(counter, highest)
        logger.warning(
            "Resynced %s counter for business %s from %d to %d",
            type_value, business_id, previous, counter.last_number,
        )

        number = await self.counters.increment(counter)
        return format_invoice_number(prefix_for(type_value), number)
