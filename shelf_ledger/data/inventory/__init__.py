"""
Physical stock ledger data models

Architecture:
- locations/ - Warehouse location hierarchy
- stock/ - Per-location quantity rows (durable and consumable)
- movements/ - Append-only movement audit trail
- availability/ - Channel availability snapshots written by the publisher
"""

from shelf_ledger.data.inventory.locations import Location, LocationType
from shelf_ledger.data.inventory.stock import StockRecord, ConsumableStockRecord
from shelf_ledger.data.inventory.movements import StockMovement, MovementKind, MovementDirection
from shelf_ledger.data.inventory.availability import ProductStore

__all__ = [
    'Location',
    'LocationType',
    'StockRecord',
    'ConsumableStockRecord',
    'StockMovement',
    'MovementKind',
    'MovementDirection',
    'ProductStore',
]
