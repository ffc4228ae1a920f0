"""Per-location quantity models"""

from shelf_ledger.data.inventory.stock.stock_record import StockRecord
from shelf_ledger.data.inventory.stock.consumable_stock_record import ConsumableStockRecord

__all__ = [
    'StockRecord',
    'ConsumableStockRecord',
]
