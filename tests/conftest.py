"""Shared test fixtures for the invoicing test suite.

The orchestrator is exercised against in-memory fakes of the three
repositories. ``FakeDatabase`` stands in for the AsyncSession: writes are
staged until ``commit`` and thrown away on ``rollback``, so atomicity can be
asserted without a real database.
"""

import asyncio
import copy
import itertools
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from app.domain.services.invoice_service import InvoiceService


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


# ---------------------------------------------------------------------------
# In-memory persistence
# ---------------------------------------------------------------------------

class FakeDatabase:
    def __init__(self):
        self.tables = {"invoices": {}, "items": {}, "counters": {}}
        self._pending = []
        self._seq = itertools.count(1)
        self.commits = 0
        self.rollbacks = 0

    def next_seq(self):
        return next(self._seq)

    def stage(self, table, key, value):
        """value=None deletes the row."""
        self._pending.append((table, key, value))

    def view(self, table):
        rows = dict(self.tables[table])
        for t, key, value in self._pending:
            if t != table:
                continue
            if value is None:
                rows.pop(key, None)
            else:
                rows[key] = value
        return rows

    async def commit(self):
        for table, key, value in self._pending:
            if value is None:
                self.tables[table].pop(key, None)
            else:
                self.tables[table][key] = value
        self._pending = []
        self.commits += 1

    async def rollback(self):
        self._pending = []
        self.rollbacks += 1


class FakeInvoiceRepository:
    def __init__(self, db):
        self.db = db

    def _with_items(self, row):
        inv = SimpleNamespace(**vars(row))
        inv.items = sorted(
            (SimpleNamespace(**vars(i)) for i in self.db.view("items").values()
             if i.invoice_id == row.id),
            key=lambda i: i.sort_order,
        )
        return inv

    async def create(self, data):
        now = datetime.now(timezone.utc)
        row = SimpleNamespace(
            id=uuid.uuid4(),
            round_off=Decimal("0"),
            paid_amount=Decimal("0"),
            created_at=now,
            updated_at=now,
            deleted_at=None,
            seq=self.db.next_seq(),
            **data,
        )
        self.db.stage("invoices", row.id, row)
        return row

    async def get_by_id(self, invoice_id, business_id=None, *, include_deleted=False):
        row = self.db.view("invoices").get(invoice_id)
        if row is None:
            return None
        if business_id is not None and row.business_id != business_id:
            return None
        if row.deleted_at is not None and not include_deleted:
            return None
        return self._with_items(row)

    async def find_by_number(self, business_id, invoice_number, invoice_type):
        for row in self.db.view("invoices").values():
            if (row.business_id, row.invoice_number, row.invoice_type) == (
                business_id, invoice_number, invoice_type,
            ):
                return row
        return None

    async def get_latest(self, business_id, invoice_type):
        rows = [
            r for r in self.db.view("invoices").values()
            if r.business_id == business_id and r.invoice_type == invoice_type
        ]
        return max(rows, key=lambda r: r.seq) if rows else None

    async def list_numbers(self, business_id, invoice_type):
        return [
            r.invoice_number for r in self.db.view("invoices").values()
            if r.business_id == business_id and r.invoice_type == invoice_type
        ]

    async def update(self, invoice_id, patch):
        row = copy.copy(self.db.view("invoices")[invoice_id])
        for key, value in patch.items():
            setattr(row, key, value)
        self.db.stage("invoices", invoice_id, row)

    async def soft_delete(self, invoice_id):
        await self.update(invoice_id, {"deleted_at": datetime.now(timezone.utc)})

    async def list_for_business(self, business_id, *, limit=20, offset=0, **filters):
        rows = [
            r for r in self.db.view("invoices").values()
            if r.business_id == business_id and r.deleted_at is None
        ]
        if filters.get("invoice_type"):
            rows = [r for r in rows if r.invoice_type == filters["invoice_type"]]
        if filters.get("status"):
            rows = [r for r in rows if r.status == filters["status"]]
        rows.sort(key=lambda r: (r.invoice_date, r.seq), reverse=True)
        return [self._with_items(r) for r in rows[offset:offset + limit]], len(rows)


class FakeInvoiceItemRepository:
    def __init__(self, db, fail_on_create=None):
        self.db = db
        self.fail_on_create = fail_on_create
        self.create_calls = 0

    async def create(self, data):
        self.create_calls += 1
        if self.fail_on_create == self.create_calls:
            raise RuntimeError("connection lost while inserting invoice item")
        row = SimpleNamespace(id=uuid.uuid4(), **data)
        self.db.stage("items", row.id, row)
        return row

    async def list_for_invoice(self, invoice_id):
        return sorted(
            (i for i in self.db.view("items").values() if i.invoice_id == invoice_id),
            key=lambda i: i.sort_order,
        )

    async def delete(self, item_id):
        self.db.stage("items", item_id, None)


class FakeInvoiceCounterRepository:
    def __init__(self, db):
        self.db = db

    async def get_for_update(self, business_id, invoice_type):
        last = self.db.view("counters").get((business_id, invoice_type))
        if last is None:
            return None
        return SimpleNamespace(
            business_id=business_id, invoice_type=invoice_type, last_number=last,
        )

    async def create(self, business_id, invoice_type, last_number=0):
        self.db.stage("counters", (business_id, invoice_type), last_number)
        return SimpleNamespace(
            business_id=business_id, invoice_type=invoice_type, last_number=last_number,
        )

    async def increment(self, counter):
        counter.last_number += 1
        self.db.stage(
            "counters", (counter.business_id, counter.invoice_type), counter.last_number,
        )
        return counter.last_number

    async def advance(self, counter, last_number):
        if last_number > counter.last_number:
            counter.last_number = last_number
            self.db.stage(
                "counters", (counter.business_id, counter.invoice_type), counter.last_number,
            )
        return counter.last_number


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def make_service(fake_db):
    """Build an InvoiceService over fakes; keyword args replace a repository."""

    def _make(invoices=None, items=None, counters=None):
        return InvoiceService(
            fake_db,
            invoices=invoices or FakeInvoiceRepository(fake_db),
            items=items or FakeInvoiceItemRepository(fake_db),
            counters=counters or FakeInvoiceCounterRepository(fake_db),
        )

    return _make


@pytest.fixture
def invoice_service(make_service):
    return make_service()


@pytest.fixture
def business_id():
    return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def user_id():
    return uuid.UUID("22222222-2222-2222-2222-222222222222")


@pytest.fixture
def create_payload():
    """Two-line intrastate sale: 10 x 100 @18% and 5 x 200 less 10% @12%."""
    return {
        "party_id": "33333333-3333-3333-3333-333333333333",
        "invoice_type": "sale",
        "invoice_date": date(2025, 1, 15),
        "is_interstate": False,
        "items": [
            {
                "item_name": "Steel bolts",
                "hsn_code": "7318",
                "unit": "box",
                "quantity": "10",
                "unit_price": "100",
                "tax_rate": "18",
            },
            {
                "item_name": "Copper wire",
                "hsn_code": "7408",
                "unit": "roll",
                "quantity": "5",
                "unit_price": "200",
                "discount_percent": "10",
                "tax_rate": "12",
            },
        ],
    }


@pytest.fixture
def fake_invoice_repo(fake_db):
    return FakeInvoiceRepository(fake_db)


@pytest.fixture
def fake_counter_repo(fake_db):
    return FakeInvoiceCounterRepository(fake_db)


@pytest.fixture
def failing_item_repo(fake_db):
    """Item repository whose n-th ``create`` raises."""

    def _make(fail_on_create):
        return FakeInvoiceItemRepository(fake_db, fail_on_create=fail_on_create)

    return _make


class FlakyInvoiceRepository(FakeInvoiceRepository):
    """Header insert hits the unique constraint for the first ``failures`` calls."""

    def __init__(self, db, failures=1, constraint="uq_invoices_business_number_type"):
        super().__init__(db)
        self.failures = failures
        self.constraint = constraint
        self.create_calls = 0

    async def create(self, data):
        self.create_calls += 1
        if self.create_calls <= self.failures:
            raise IntegrityError(
                "INSERT INTO invoices", {},
                Exception(f'duplicate key value violates unique constraint "{self.constraint}"'),
            )
        return await super().create(data)


class VanishingInvoiceRepository(FakeInvoiceRepository):
    async def get_by_id(self, invoice_id, business_id=None, *, include_deleted=False):
        return None


@pytest.fixture
def flaky_invoice_repo(fake_db):
    def _make(failures, constraint="uq_invoices_business_number_type"):
        return FlakyInvoiceRepository(fake_db, failures=failures, constraint=constraint)

    return _make


@pytest.fixture
def vanishing_invoice_repo(fake_db):
    return VanishingInvoiceRepository(fake_db)
