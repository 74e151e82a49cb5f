# app/api/v1/routes/invoices.py
"""
Invoice endpoints: list, detail, create, update, soft delete and quote.
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.deps import CurrentUser, get_current_user, get_invoice_service
from app.api.v1.envelope import ok, paginated
from app.api.v1.schemas.invoices import (
    InvoiceCreateRequest,
    InvoiceDetail,
    InvoiceQuoteRequest,
    InvoiceUpdateRequest,
    QuoteResponse,
)
from app.domain.models.invoice import InvoiceStatus, InvoiceType, PaymentStatus
from app.domain.services.invoice_service import (
    InvoiceIntegrityError,
    InvoiceNotFoundError,
    InvoiceNumberConflictError,
    InvoiceService,
    InvoiceValidationError,
)

logger = logging.getLogger("api.v1.invoices")

router = APIRouter(prefix="/invoices", tags=["Invoices"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _invoice_to_detail(inv) -> dict:
    """Convert an Invoice ORM object to InvoiceDetail dict."""
    return InvoiceDetail.model_validate(inv).model_dump(mode="json")


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvoiceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvoiceNumberConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvoiceValidationError):
        return HTTPException(
            status_code=422,
            detail={"message": str(exc), "errors": exc.errors},
        )
    # InvoiceIntegrityError: already logged as critical by the service
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Invoice could not be loaded after saving",
    )


_DOMAIN_ERRORS = (
    InvoiceNotFoundError,
    InvoiceNumberConflictError,
    InvoiceValidationError,
    InvoiceIntegrityError,
)


# ---------------------------------------------------------------------------
# List invoices (paginated)
# ---------------------------------------------------------------------------

@router.get("", response_model=dict)
async def list_invoices(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    party_id: UUID | None = Query(default=None),
    invoice_type: InvoiceType | None = Query(default=None),
    payment_status: PaymentStatus | None = Query(default=None),
    invoice_status: InvoiceStatus | None = Query(default=None, alias="status"),
    date_from: date | None = Query(default=None, description="Filter: invoice_date >= this"),
    date_to: date | None = Query(default=None, description="Filter: invoice_date <= this"),
    search: str | None = Query(default=None, max_length=100),
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """List the business's invoices, newest invoice date first."""
    invoices, total = await service.list_invoices(
        user.business_id,
        limit=limit,
        offset=offset,
        party_id=party_id,
        invoice_type=invoice_type.value if invoice_type else None,
        payment_status=payment_status.value if payment_status else None,
        status=invoice_status.value if invoice_status else None,
        start_date=date_from,
        end_date=date_to,
        search=search,
    )
    return paginated(
        items=[_invoice_to_detail(inv) for inv in invoices],
        total=total,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Quote (no persistence)
# ---------------------------------------------------------------------------

@router.post("/quote", response_model=dict)
async def quote_invoice(
    body: InvoiceQuoteRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Compute line taxes and invoice totals without saving anything."""
    lines, totals = service.quote(body)
    return ok(data=QuoteResponse.build(lines, totals).model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Get single invoice
# ---------------------------------------------------------------------------

@router.get("/{invoice_id}", response_model=dict)
async def get_invoice(
    invoice_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        inv = await service.get_invoice(user.business_id, invoice_id)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ok(data=_invoice_to_detail(inv))


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Create an invoice; number, taxes and totals are computed server side."""
    try:
        inv = await service.create_invoice(user.business_id, user.user_id, body)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ok(data=_invoice_to_detail(inv), message="Invoice created")


@router.patch("/{invoice_id}", response_model=dict)
async def update_invoice(
    invoice_id: UUID,
    body: InvoiceUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Patch header fields; sending ``items`` replaces all lines and totals."""
    try:
        inv = await service.update_invoice(user.business_id, invoice_id, body)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ok(data=_invoice_to_detail(inv), message="Invoice updated")


@router.delete("/{invoice_id}", response_model=dict)
async def delete_invoice(
    invoice_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        await service.delete_invoice(user.business_id, invoice_id)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ok(message="Invoice deleted")
