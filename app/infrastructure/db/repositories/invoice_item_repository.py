import uuid
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models import InvoiceItem


class InvoiceItemRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: dict[str, Any]) -> InvoiceItem:
        item = InvoiceItem(id=uuid.uuid4(), **data)
        self.db.add(item)
        await self.db.flush()
        return item

    async def list_for_invoice(self, invoice_id: uuid.UUID) -> list[InvoiceItem]:
        stmt = (
            select(InvoiceItem)
            .where(InvoiceItem.invoice_id == invoice_id)
            .order_by(InvoiceItem.sort_order)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, item_id: uuid.UUID) -> None:
        await self.db.execute(delete(InvoiceItem).where(InvoiceItem.id == item_id))
        await self.db.flush()
