"""
Stock Transfer Manager

Moves durable stock between two locations as one transaction with two
TRANSFER movements (OUT at the source, IN at the destination), both naming
source and target. Also exposes single-location audited adjustments.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional
from shelf_ledger import db
from shelf_ledger.buisness.core.locks import availability_key, ledger_locks, stock_key
from shelf_ledger.buisness.core.transaction import atomic
from shelf_ledger.buisness.inventory.errors import (
    InsufficientStockError,
    InventoryBadRequestError,
    InventoryNotFoundError,
)
from shelf_ledger.buisness.inventory.stock.stock_ledger import (
    LedgerChange,
    StockLedger,
    StockProvenance,
    validate_units,
)
from shelf_ledger.data.inventory.locations.location import Location
from shelf_ledger.data.inventory.movements.stock_movement import MovementKind, StockMovement
from shelf_ledger.data.inventory.stock.stock_record import StockRecord
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.buisness.inventory.transfer")


@dataclass
class TransferResult:
    """Rows left behind by a transfer; from_record is None when the source emptied"""
    from_record: Optional[StockRecord]
    to_record: StockRecord
    movements: List[StockMovement] = field(default_factory=list)

    def to_dict(self):
        return {
            'from': self.from_record.to_dict() if self.from_record else None,
            'to': self.to_record.to_dict() if self.to_record else None,
            'movements': [movement.to_dict() for movement in self.movements],
        }


class StockTransferManager:
    """
    Business wrapper for multi-step stock moves.

    Handles shelf-to-shelf transfers and provenance-carrying single-location
    adjustments.
    """

    def __init__(self, ledger: Optional[StockLedger] = None):
        self.ledger = ledger or StockLedger()

    def transfer(self, from_location_id: int, to_location_id: int, product_id: int,
                 quantity: int) -> TransferResult:
        """Plain shelf-to-shelf transfer"""
        return self.transfer_with_history(from_location_id, to_location_id, product_id, quantity)

    def transfer_with_history(self, from_location_id: int, to_location_id: int, product_id: int,
                              quantity: int, provenance=None) -> TransferResult:
        """
        Move stock from one location to another.

        Args:
            from_location_id: Source location
            to_location_id: Destination location, must be shelvable
            product_id: Product to move
            quantity: Positive whole units, must be present on the source
            provenance: StockProvenance or dict. kind defaults to TRANSFER
                (PICKING, PACKING_IN etc. for pool moves); order, route,
                reference, notes and user are copied onto both movements

        Returns:
            TransferResult with both stock rows and the two movements

        Raises:
            InventoryNotFoundError: A location does not exist
            InventoryBadRequestError: Same location, or destination not shelvable
            InsufficientStockError: Source holds less than quantity
        """
        quantity = validate_units(quantity)
        if from_location_id == to_location_id:
            raise InventoryBadRequestError("Source and destination locations must differ")

        provenance = StockProvenance.coerce(provenance)
        provenance = replace(
            provenance,
            kind=provenance.kind or MovementKind.TRANSFER,
            source_location_id=from_location_id,
            target_location_id=to_location_id,
        )

        source = db.session.get(Location, from_location_id)
        if source is None:
            raise InventoryNotFoundError(f"Source location with ID {from_location_id} not found")
        destination = db.session.get(Location, to_location_id)
        if destination is None:
            raise InventoryNotFoundError(f"Destination location with ID {to_location_id} not found")
        if not destination.is_shelvable:
            logger.warning(f"Rejected transfer to non-shelvable location {destination.code}")
            raise InventoryBadRequestError(
                f"Destination location '{destination.name}' does not accept stock"
            )

        sync = self.ledger.sync_enabled()
        warehouse_ids = sorted({source.warehouse_id, destination.warehouse_id})
        keys = [stock_key(from_location_id, product_id), stock_key(to_location_id, product_id)]
        if sync:
            keys.extend(availability_key(warehouse_id, product_id) for warehouse_id in warehouse_ids)

        with ledger_locks.hold(*keys):
            with atomic():
                available = self.ledger.get_quantity(from_location_id, product_id)
                if available < quantity:
                    logger.warning(f"Rejected transfer of {quantity} of product {product_id} "
                                   f"from {source.code}: only {available} present")
                    raise InsufficientStockError(quantity, available)

                out_change = self.ledger.debit(from_location_id, product_id, quantity, provenance,
                                               sync=False, strict=True)
                in_change = self.ledger.credit(to_location_id, product_id, quantity, provenance,
                                               sync=False)

                if sync:
                    for warehouse_id in warehouse_ids:
                        self.ledger.publisher.sync_warehouse_product(warehouse_id, product_id)

                result = TransferResult(
                    from_record=out_change.record,
                    to_record=in_change.record,
                    movements=[out_change.movement, in_change.movement],
                )

        logger.info(f"Transferred {quantity} of product {product_id} from location {from_location_id} "
                    f"to {to_location_id} ({provenance.kind.value})")
        return result

    def remove_stock_with_history(self, location_id: int, product_id: int, quantity: int,
                                  provenance=None) -> LedgerChange:
        """
        Audited single-location decrement for manual adjustments.

        Unlike StockLedger.remove_stock this does not clamp: the full
        quantity must be present.

        Raises:
            InsufficientStockError: Location holds less than quantity
        """
        return self.ledger.debit(location_id, product_id, quantity, provenance, strict=True)

    def add_stock_with_history(self, location_id: int, product_id: int, quantity: int,
                               provenance=None) -> LedgerChange:
        """Audited single-location increment (receiving, returns, cancellations)"""
        return self.ledger.credit(location_id, product_id, quantity, provenance)
