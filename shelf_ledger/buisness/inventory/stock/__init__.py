from shelf_ledger.buisness.inventory.stock.stock_ledger import (
    LedgerChange,
    StockLedger,
    StockProvenance,
)
from shelf_ledger.buisness.inventory.stock.transfer_manager import StockTransferManager, TransferResult

__all__ = [
    'LedgerChange',
    'StockLedger',
    'StockProvenance',
    'StockTransferManager',
    'TransferResult',
]
