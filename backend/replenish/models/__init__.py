from .branches import Branch
from .inventory import InventoryRecord, StockLedgerEntry
from .documents import (
    ItemRequest,
    ItemRequestLine,
    Transfer,
    TransferLine,
    PurchaseOrder,
    PurchaseOrderLine,
    DocumentSequence,
)

__all__ = [
    'Branch',
    'InventoryRecord', 'StockLedgerEntry',
    'ItemRequest', 'ItemRequestLine',
    'Transfer', 'TransferLine',
    'PurchaseOrder', 'PurchaseOrderLine',
    'DocumentSequence',
]
