import uuid

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models import InvoiceCounter


class InvoiceCounterRepository:
    """
    Row-per-(business, invoice type) counters.

    ``get_for_update`` takes a row lock that lasts until the surrounding
    transaction ends.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_for_update(
        self,
        business_id: uuid.UUID,
        invoice_type: str,
    ) -> InvoiceCounter | None:
        stmt = (
            select(InvoiceCounter)
            .where(
                and_(
                    InvoiceCounter.business_id == business_id,
                    InvoiceCounter.invoice_type == invoice_type,
                )
            )
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        business_id: uuid.UUID,
        invoice_type: str,
        last_number: int = 0,
    ) -> InvoiceCounter:
        """
        Insert a new counter row. A concurrent insert of the same pair raises
        IntegrityError on flush.
        """
        counter = InvoiceCounter(
            business_id=business_id,
            invoice_type=invoice_type,
            last_number=last_number,
        )
        self.db.add(counter)
        await self.db.flush()
        return counter

    async def increment(self, counter: InvoiceCounter) -> int:
        counter.last_number = counter.last_number + 1
        await self.db.flush()
        return counter.last_number

    async def advance(self, counter: InvoiceCounter, last_number: int) -> int:
        """Move the counter forward to ``last_number``; never moves it back."""
        if last_number > counter.last_number:
            counter.last_number = last_number
            await self.db.flush()
        return counter.last_number
