"""Movement audit trail models"""

from shelf_ledger.data.inventory.movements.stock_movement import (
    StockMovement,
    MovementKind,
    MovementDirection,
)

__all__ = [
    'StockMovement',
    'MovementKind',
    'MovementDirection',
]
