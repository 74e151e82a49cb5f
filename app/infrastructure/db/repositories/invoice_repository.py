import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.infrastructure.db.models import Invoice


class InvoiceRepository:
    """
    Invoice header persistence.

    Writes only ``flush``; the caller owns the transaction and decides when
    to commit or roll back.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: dict[str, Any]) -> Invoice:
        invoice = Invoice(id=data.pop("id", None) or uuid.uuid4(), **data)
        self.db.add(invoice)
        await self.db.flush()
        return invoice

    async def get_by_id(
        self,
        invoice_id: uuid.UUID,
        business_id: uuid.UUID | None = None,
        *,
        include_deleted: bool = False,
    ) -> Invoice | None:
        """Load one invoice together with its items (sorted)."""
        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        if business_id is not None:
            stmt = stmt.where(Invoice.business_id == business_id)
        if not include_deleted:
            stmt = stmt.where(Invoice.deleted_at.is_(None))

        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_number(
        self,
        business_id: uuid.UUID,
        invoice_number: str,
        invoice_type: str,
    ) -> Invoice | None:
        """
        Match on (business, number, type). Soft-deleted rows count: the
        unique constraint still holds their number.
        """
        stmt = select(Invoice).where(
            and_(
                Invoice.business_id == business_id,
                Invoice.invoice_number == invoice_number,
                Invoice.invoice_type == invoice_type,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest(
        self,
        business_id: uuid.UUID,
        invoice_type: str,
    ) -> Invoice | None:
        """Most recently created invoice of a type, deleted ones included."""
        stmt = (
            select(Invoice)
            .where(
                and_(
                    Invoice.business_id == business_id,
                    Invoice.invoice_type == invoice_type,
                )
            )
            .order_by(Invoice.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_numbers(
        self,
        business_id: uuid.UUID,
        invoice_type: str,
    ) -> list[str]:
        """Every number issued for (business, type), deleted invoices included."""
        stmt = select(Invoice.invoice_number).where(
            and_(
                Invoice.business_id == business_id,
                Invoice.invoice_type == invoice_type,
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, invoice_id: uuid.UUID, patch: dict[str, Any]) -> None:
        if not patch:
            return
        stmt = update(Invoice).where(Invoice.id == invoice_id).values(**patch)
        await self.db.execute(stmt)
        await self.db.flush()

    async def soft_delete(self, invoice_id: uuid.UUID) -> None:
        await self.update(invoice_id, {"deleted_at": datetime.now(timezone.utc)})

    async def list_for_business(
        self,
        business_id: uuid.UUID,
        *,
        party_id: uuid.UUID | None = None,
        invoice_type: str | None = None,
        payment_status: str | None = None,
        status: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Invoice], int]:
        """Filtered page of a business's invoices plus the total match count."""
        conditions = [
            Invoice.business_id == business_id,
            Invoice.deleted_at.is_(None),
        ]
        if party_id:
            conditions.append(Invoice.party_id == party_id)
        if invoice_type:
            conditions.append(Invoice.invoice_type == invoice_type)
        if payment_status:
            conditions.append(Invoice.payment_status == payment_status)
        if status:
            conditions.append(Invoice.status == status)
        if start_date:
            conditions.append(Invoice.invoice_date >= start_date)
        if end_date:
            conditions.append(Invoice.invoice_date <= end_date)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    Invoice.invoice_number.ilike(pattern),
                    Invoice.notes.ilike(pattern),
                )
            )

        count_stmt = select(func.count()).select_from(Invoice).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(*conditions)
            .order_by(Invoice.invoice_date.desc(), Invoice.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total
