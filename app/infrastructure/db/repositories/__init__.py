from .invoice_counter_repository import InvoiceCounterRepository
from .invoice_item_repository import InvoiceItemRepository
from .invoice_repository import InvoiceRepository

__all__ = [
    "InvoiceRepository",
    "InvoiceItemRepository",
    "InvoiceCounterRepository",
]
