# app/domain/services/invoice_service.py
"""
Invoice creation / update orchestration.

Create runs as one transaction per attempt:

    number assigned -> uniqueness checked -> totals computed
    -> header + items persisted -> commit -> reloaded with items

A number that already exists moves the counter past the highest issued
number inside the same transaction. A lost numbering race (IntegrityError
from the counter key or the invoice number constraint) rolls the attempt
back and retries, up to INVOICE_NUMBER_MAX_RETRIES attempts. Any other
IntegrityError propagates.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.domain.models.invoice import (
    InvoiceCreateRequest,
    InvoiceLineInput,
    InvoiceQuoteRequest,
    InvoiceStatus,
    InvoiceTotals,
    InvoiceUpdateRequest,
    PaymentStatus,
    ResolvedLine,
)
from app.domain.services.gst_calculation import calculate_invoice_totals, round_money
from app.domain.services.invoice_numbering import InvoiceNumberSequencer

logger = logging.getLogger("invoice_service")


class InvoiceValidationError(Exception):
    """Request data is invalid (negative quantity, rate out of range, ...)."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class InvoiceNumberConflictError(Exception):
    """Could not claim a free invoice number; the caller may retry."""
    pass


class InvoiceNotFoundError(Exception):
    """Invoice does not exist, is deleted, or belongs to another business."""
    pass


class InvoiceIntegrityError(Exception):
    """Invoice vanished right after it was written. Never a normal 404."""
    pass


class _NumberTaken(Exception):
    pass


RequestT = Union[BaseModel, dict]

# Constraints a lost numbering race can trip (postgres names, sqlite column lists)
_NUMBERING_CONSTRAINTS = (
    "uq_invoices_business_number_type",
    "pk_invoice_counters",
    "invoices.business_id, invoices.invoice_number, invoices.invoice_type",
    "invoice_counters.business_id, invoice_counters.invoice_type",
)

# Header columns an update may change but never set to NULL
_NOT_NULLABLE = (
    "party_id",
    "invoice_date",
    "is_interstate",
    "is_export",
    "is_rcm",
    "is_tax_inclusive",
    "status",
)


def _coerce(model: type[BaseModel], request: RequestT) -> Any:
    if isinstance(request, model):
        return request
    try:
        if isinstance(request, BaseModel):
            return model.model_validate(request.model_dump(exclude_unset=True))
        return model.model_validate(request)
    except ValidationError as exc:
        raise InvoiceValidationError(
            "Invalid invoice request",
            errors=[
                {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                for e in exc.errors()
            ],
        ) from exc


def _is_numbering_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(name in message for name in _NUMBERING_CONSTRAINTS)


def _line_from_item(item) -> InvoiceLineInput:
    """Rebuild the entered line from a stored item snapshot."""
    return InvoiceLineInput(
        item_id=item.item_id,
        item_name=item.item_name,
        item_description=item.item_description,
        hsn_code=item.hsn_code,
        unit=item.unit,
        quantity=item.quantity,
        unit_price=item.unit_price,
        discount_percent=item.discount_percent,
        tax_rate=item.tax_rate,
        cess_rate=item.cess_rate,
    )


def _totals_columns(totals: InvoiceTotals) -> dict[str, Decimal]:
    return {
        "subtotal": totals.subtotal,
        "discount_amount": totals.discount_amount,
        "taxable_amount": totals.taxable_amount,
        "cgst_amount": totals.cgst_amount,
        "sgst_amount": totals.sgst_amount,
        "igst_amount": totals.igst_amount,
        "cess_amount": totals.cess_amount,
        "total_amount": totals.total_amount,
    }


def _item_row(
    invoice_id: UUID,
    position: int,
    line: InvoiceLineInput,
    resolved: ResolvedLine,
) -> dict[str, Any]:
    r = resolved.result
    return {
        "invoice_id": invoice_id,
        "item_id": line.item_id,
        "item_name": line.item_name,
        "item_description": line.item_description,
        "hsn_code": line.hsn_code,
        "unit": line.unit,
        "quantity": line.quantity,
        "unit_price": line.unit_price,
        "discount_percent": line.discount_percent,
        "discount_amount": round_money(resolved.discount_amount),
        "tax_rate": line.tax_rate,
        "cgst_rate": r.cgst_rate,
        "sgst_rate": r.sgst_rate,
        "igst_rate": r.igst_rate,
        "cess_rate": line.cess_rate,
        "taxable_amount": r.taxable_amount,
        "cgst_amount": r.cgst_amount,
        "sgst_amount": r.sgst_amount,
        "igst_amount": r.igst_amount,
        "cess_amount": r.cess_amount,
        "total_amount": r.total_amount,
        "sort_order": position,
    }


def default_due_date(invoice_date: date, due_date: date | None = None) -> date:
    if due_date is not None:
        return due_date
    return invoice_date + timedelta(days=settings.INVOICE_DEFAULT_DUE_DAYS)


class InvoiceService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        invoices=None,
        items=None,
        counters=None,
    ) -> None:
        from app.infrastructure.db.repositories import (
            InvoiceCounterRepository,
            InvoiceItemRepository,
            InvoiceRepository,
        )

        self.db = db
        self.invoices = invoices or InvoiceRepository(db)
        self.items = items or InvoiceItemRepository(db)
        self.counters = counters or InvoiceCounterRepository(db)
        self.sequencer = InvoiceNumberSequencer(self.counters, self.invoices)

    # ---- helpers ----

    async def _insert_items(
        self,
        invoice_id: UUID,
        lines: list[InvoiceLineInput],
        resolved: list[ResolvedLine],
    ) -> None:
        for position, (line, res) in enumerate(zip(lines, resolved)):
            await self.items.create(_item_row(invoice_id, position, line, res))

    async def _reload(self, business_id: UUID, invoice_id: UUID):
        invoice = await self.invoices.get_by_id(invoice_id, business_id)
        if invoice is None:
            logger.critical(
                "Invoice %s of business %s not found right after it was written",
                invoice_id, business_id,
            )
            raise InvoiceIntegrityError(f"Invoice {invoice_id} missing after write")
        return invoice

    async def _create_once(
        self,
        business_id: UUID,
        user_id: UUID,
        req: InvoiceCreateRequest,
        is_tax_inclusive: bool,
    ) -> UUID:
        invoice_type = req.invoice_type.value

        # 1) number
        number = await self.sequencer.next_invoice_number(business_id, invoice_type)

        # 2) uniqueness
        if await self.invoices.find_by_number(business_id, number, invoice_type) is not None:
            logger.warning(
                "Invoice number %s already exists for business %s, resyncing counter",
                number, business_id,
            )
            number = await self.sequencer.resync(business_id, invoice_type)
            if await self.invoices.find_by_number(business_id, number, invoice_type) is not None:
                raise _NumberTaken(number)

        # 3) totals
        resolved, totals = calculate_invoice_totals(
            req.items, req.is_interstate, is_tax_inclusive,
        )

        # 4) persist header + items
        invoice = await self.invoices.create({
            "business_id": business_id,
            "party_id": req.party_id,
            "invoice_number": number,
            "invoice_type": invoice_type,
            "invoice_date": req.invoice_date,
            "due_date": default_due_date(req.invoice_date, req.due_date),
            "place_of_supply": req.place_of_supply,
            "is_interstate": req.is_interstate,
            "is_export": req.is_export,
            "is_rcm": req.is_rcm,
            "is_tax_inclusive": is_tax_inclusive,
            **_totals_columns(totals),
            "payment_status": PaymentStatus.UNPAID.value,
            "status": InvoiceStatus.DRAFT.value,
            "terms": req.terms,
            "notes": req.notes,
            "created_by": user_id,
        })
        await self._insert_items(invoice.id, req.items, resolved)
        await self.db.commit()

        logger.info(
            "Created %s invoice %s for business %s: %d item(s), total=%s",
            invoice_type, number, business_id, len(req.items), totals.total_amount,
        )
        return invoice.id

    # ---- public API ----

    def quote(self, request: RequestT) -> tuple[list[ResolvedLine], InvoiceTotals]:
        """Price lines without persisting anything."""
        req = _coerce(InvoiceQuoteRequest, request)
        return calculate_invoice_totals(req.items, req.is_interstate, req.is_tax_inclusive)

    async def create_invoice(
        self,
        business_id: UUID,
        user_id: UUID,
        request: RequestT,
    ):
        req = _coerce(InvoiceCreateRequest, request)
        is_tax_inclusive = (
            req.is_tax_inclusive
            if req.is_tax_inclusive is not None
            else settings.INVOICE_TAX_INCLUSIVE_DEFAULT
        )

        attempts = settings.INVOICE_NUMBER_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            try:
                invoice_id = await self._create_once(
                    business_id, user_id, req, is_tax_inclusive,
                )
            except (_NumberTaken, IntegrityError) as exc:
                await self.db.rollback()
                if isinstance(exc, IntegrityError) and not _is_numbering_conflict(exc):
                    raise
                logger.warning(
                    "Invoice numbering conflict for business %s (%s), attempt %d/%d: %s",
                    business_id, req.invoice_type.value, attempt, attempts, exc,
                )
                continue
            except Exception:
                await self.db.rollback()
                raise
            return await self._reload(business_id, invoice_id)

        raise InvoiceNumberConflictError(
            f"Could not assign a unique {req.invoice_type.value} invoice number "
            f"after {attempts} attempts"
        )

    async def get_invoice(self, business_id: UUID, invoice_id: UUID):
        invoice = await self.invoices.get_by_id(invoice_id, business_id)
        if invoice is None:
            raise InvoiceNotFoundError(f"Invoice with ID {invoice_id} not found")
        return invoice

    async def list_invoices(
        self,
        business_id: UUID,
        *,
        limit: int = 20,
        offset: int = 0,
        **filters,
    ) -> tuple[list, int]:
        return await self.invoices.list_for_business(
            business_id, limit=limit, offset=offset, **filters,
        )

    async def update_invoice(
        self,
        business_id: UUID,
        invoice_id: UUID,
        request: RequestT,
    ):
        req = _coerce(InvoiceUpdateRequest, request)
        invoice = await self.get_invoice(business_id, invoice_id)

        patch = req.model_dump(exclude_unset=True, exclude={"items"})
        cleared = sorted(f for f in _NOT_NULLABLE if f in patch and patch[f] is None)
        if cleared:
            raise InvoiceValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")
        if "status" in patch:
            patch["status"] = InvoiceStatus(patch["status"]).value

        invoice_date = patch.get("invoice_date", invoice.invoice_date)
        due_date = patch.get("due_date", invoice.due_date)
        if due_date is not None and due_date < invoice_date:
            raise InvoiceValidationError("due_date cannot be before invoice_date")

        is_interstate = patch.get("is_interstate", invoice.is_interstate)
        is_tax_inclusive = patch.get("is_tax_inclusive", invoice.is_tax_inclusive)
        regime_changed = (
            is_interstate != invoice.is_interstate
            or is_tax_inclusive != invoice.is_tax_inclusive
        )

        # A regime change re-prices the stored lines
        lines = req.items
        if lines is None and regime_changed:
            try:
                lines = [_line_from_item(item) for item in invoice.items]
            except ValidationError as exc:
                raise InvoiceValidationError(
                    f"Stored items of invoice {invoice.invoice_number} cannot be re-priced",
                ) from exc

        try:
            if lines is not None:
                resolved, totals = calculate_invoice_totals(
                    lines, is_interstate, is_tax_inclusive,
                )
                patch.update(_totals_columns(totals))
                patch["is_interstate"] = is_interstate
                patch["is_tax_inclusive"] = is_tax_inclusive

                for old in await self.items.list_for_invoice(invoice.id):
                    await self.items.delete(old.id)
                await self._insert_items(invoice.id, lines, resolved)

            await self.invoices.update(invoice.id, patch)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Updated invoice %s of business %s (fields=%s, items_repriced=%s)",
            invoice.invoice_number, business_id, sorted(patch), lines is not None,
        )
        return await self._reload(business_id, invoice.id)

    async def delete_invoice(self, business_id: UUID, invoice_id: UUID) -> None:
        """Soft delete: the row and its number stay, it just stops being listed."""
        invoice = await self.get_invoice(business_id, invoice_id)
        try:
            await self.invoices.soft_delete(invoice.id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Deleted invoice %s of business %s", invoice.invoice_number, business_id)
