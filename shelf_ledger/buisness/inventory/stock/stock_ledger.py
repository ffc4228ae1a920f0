"""
Stock Ledger

Per-location quantities for durable products (integer, audited through the
movement log, published to sales channels) and consumables (decimal, with
reservation, not audited).

Durable removal clamps at zero; consumable removal is strict.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from flask import current_app
from sqlalchemy import func
from shelf_ledger import db
from shelf_ledger.buisness.core.locks import availability_key, consumable_key, ledger_locks, stock_key
from shelf_ledger.buisness.core.transaction import atomic
from shelf_ledger.buisness.inventory.availability.availability_publisher import AvailabilityPublisher
from shelf_ledger.buisness.inventory.errors import (
    InsufficientStockError,
    InventoryBadRequestError,
    InventoryNotFoundError,
)
from shelf_ledger.buisness.inventory.movements.movement_log import MovementLog
from shelf_ledger.data.core.catalog.consumable import Consumable
from shelf_ledger.data.core.catalog.product import Product
from shelf_ledger.data.inventory.locations.location import Location
from shelf_ledger.data.inventory.movements.stock_movement import (
    MovementDirection,
    MovementKind,
    StockMovement,
)
from shelf_ledger.data.inventory.stock.consumable_stock_record import ConsumableStockRecord
from shelf_ledger.data.inventory.stock.stock_record import StockRecord
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.buisness.inventory.stock")

# Matches the Numeric(12, 2) consumable columns
CONSUMABLE_SCALE = Decimal('0.01')


@dataclass
class StockProvenance:
    """Why a durable quantity changed; copied onto the movement row"""
    kind: Optional[MovementKind] = None
    order_id: Optional[int] = None
    route_id: Optional[int] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None
    source_location_id: Optional[int] = None
    target_location_id: Optional[int] = None

    def __post_init__(self):
        if self.kind is not None:
            try:
                self.kind = MovementKind(self.kind)
            except ValueError:
                raise InventoryBadRequestError(f"Invalid movement kind: {self.kind}")

    @classmethod
    def coerce(cls, value) -> 'StockProvenance':
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            try:
                return cls(**value)
            except TypeError as e:
                raise InventoryBadRequestError(f"Invalid provenance: {e}")
        raise InventoryBadRequestError(f"Invalid provenance: {value!r}")

    def movement_fields(self, default_kind=MovementKind.ADJUSTMENT) -> dict:
        fields = asdict(self)
        fields['kind'] = self.kind or default_kind
        return fields


@dataclass
class LedgerChange:
    """Outcome of one durable mutation"""
    record: Optional[StockRecord]
    movement: Optional[StockMovement]
    quantity_before: int
    quantity_after: int

    @property
    def changed(self):
        return self.movement is not None


def validate_units(quantity) -> int:
    """Durable quantities are positive whole units"""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InventoryBadRequestError(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


def validate_amount(quantity) -> Decimal:
    """Consumable quantities are positive decimals"""
    if isinstance(quantity, bool):
        raise InventoryBadRequestError(f"Quantity must be a positive number, got {quantity!r}")
    try:
        amount = Decimal(str(quantity))
    except (InvalidOperation, ValueError):
        raise InventoryBadRequestError(f"Quantity must be a positive number, got {quantity!r}")
    if not amount.is_finite() or amount <= 0:
        raise InventoryBadRequestError(f"Quantity must be a positive number, got {quantity!r}")
    try:
        stored = amount.quantize(CONSUMABLE_SCALE)
    except InvalidOperation:
        raise InventoryBadRequestError(f"Quantity is too large, got {quantity!r}")
    if stored != amount:
        raise InventoryBadRequestError(
            f"Quantity {quantity!r} has more decimal places than the {CONSUMABLE_SCALE} stock unit"
        )
    return stored


class StockLedger:
    """
    Business wrapper around StockRecord and ConsumableStockRecord rows.

    Every durable add/remove writes the row, one movement and the
    availability republish in the same transaction.
    """

    def __init__(self, movement_log: Optional[MovementLog] = None,
                 publisher: Optional[AvailabilityPublisher] = None):
        self.movement_log = movement_log or MovementLog()
        self.publisher = publisher or AvailabilityPublisher()

    # ------------------------------------------------------------------
    # Durable stock
    # ------------------------------------------------------------------
    def add_stock(self, location_id: int, product_id: int, quantity: int, provenance=None) -> StockRecord:
        """
        Put units of a product on a location.

        Args:
            location_id: Target location
            product_id: Product being stored
            quantity: Positive whole units
            provenance: StockProvenance or dict; kind defaults to ADJUSTMENT

        Returns:
            StockRecord: The upserted row
        """
        return self.credit(location_id, product_id, quantity, provenance).record

    def remove_stock(self, location_id: int, product_id: int, quantity: int,
                     provenance=None) -> Optional[StockRecord]:
        """
        Take units of a product off a location, clamping at zero.

        Asking for more than is present removes what is there without error.
        The row is deleted when it reaches zero.

        Returns:
            StockRecord or None when the row no longer exists
        """
        return self.debit(location_id, product_id, quantity, provenance).record

    def credit(self, location_id, product_id, quantity, provenance=None, sync=True) -> LedgerChange:
        """Increment a stock row and record one IN movement"""
        quantity = validate_units(quantity)
        provenance = StockProvenance.coerce(provenance)

        location = self._get_location(location_id)

        with ledger_locks.hold(*self._durable_keys(location, product_id, sync)):
            with atomic():
                self._get_product(product_id)

                record = self._locked_stock_record(location_id, product_id)
                before = record.quantity if record else 0
                if record is None:
                    record = StockRecord(
                        location_id=location_id,
                        product_id=product_id,
                        quantity=0,
                        created_by_id=provenance.user_id,
                    )
                    db.session.add(record)

                record.quantity = before + quantity
                record.updated_by_id = provenance.user_id
                db.session.flush()

                movement = self.movement_log.record(
                    location_id=location_id,
                    product_id=product_id,
                    direction=MovementDirection.IN,
                    quantity=quantity,
                    quantity_before=before,
                    quantity_after=record.quantity,
                    **provenance.movement_fields(),
                )

                if sync:
                    self._sync(product_id, location)

        logger.info(f"Added {quantity} of product {product_id} to location {location_id} "
                    f"({before} -> {record.quantity}, {movement.kind.value})")
        return LedgerChange(record, movement, before, record.quantity)

    def debit(self, location_id, product_id, quantity, provenance=None, sync=True, strict=False) -> LedgerChange:
        """
        Decrement a stock row and record one OUT movement.

        Clamps at zero unless strict, in which case asking for more than is
        present raises InsufficientStockError. Nothing is recorded when the
        location holds none of the product.
        """
        quantity = validate_units(quantity)
        provenance = StockProvenance.coerce(provenance)

        location = self._get_location(location_id)

        with ledger_locks.hold(*self._durable_keys(location, product_id, sync)):
            with atomic():
                record = self._locked_stock_record(location_id, product_id)
                before = record.quantity if record else 0
                if strict and before < quantity:
                    logger.warning(f"Rejected removal of {quantity} of product {product_id} "
                                   f"from location {location_id}: only {before} present")
                    raise InsufficientStockError(quantity, before)

                removed = min(quantity, before)
                if removed == 0:
                    logger.debug(f"Nothing to remove for product {product_id} at location {location_id}")
                    return LedgerChange(None, None, 0, 0)

                after = before - removed
                if after == 0:
                    db.session.delete(record)
                    record = None
                else:
                    record.quantity = after
                    record.updated_by_id = provenance.user_id
                db.session.flush()

                movement = self.movement_log.record(
                    location_id=location_id,
                    product_id=product_id,
                    direction=MovementDirection.OUT,
                    quantity=removed,
                    quantity_before=before,
                    quantity_after=after,
                    **provenance.movement_fields(),
                )

                if sync:
                    self._sync(product_id, location)

        if removed < quantity:
            logger.info(f"Removal of {quantity} of product {product_id} from location {location_id} "
                        f"clamped to {removed}")
        logger.info(f"Removed {removed} of product {product_id} from location {location_id} "
                    f"({before} -> {after}, {movement.kind.value})")
        return LedgerChange(record, movement, before, after)

    def get_quantity(self, location_id: int, product_id: int) -> int:
        record = StockRecord.query.filter_by(location_id=location_id, product_id=product_id).first()
        return record.quantity if record else 0

    def get_stock(self, location_id: int) -> List[StockRecord]:
        """All durable stock rows on a location"""
        self._get_location(location_id)
        return (StockRecord.query
                .filter_by(location_id=location_id)
                .order_by(StockRecord.product_id)
                .all())

    def get_product_total_stock(self, product_id: int, warehouse_id: Optional[int] = None) -> int:
        """Units of a product across all locations, optionally within one warehouse"""
        query = db.session.query(func.coalesce(func.sum(StockRecord.quantity), 0)).filter(
            StockRecord.product_id == product_id
        )
        if warehouse_id is not None:
            query = query.join(Location, Location.id == StockRecord.location_id).filter(
                Location.warehouse_id == warehouse_id
            )
        return int(query.scalar() or 0)

    # ------------------------------------------------------------------
    # Consumables
    # ------------------------------------------------------------------
    def add_consumable_stock(self, location_id: int, consumable_id: int, quantity,
                             user_id: Optional[int] = None) -> ConsumableStockRecord:
        amount = validate_amount(quantity)

        with ledger_locks.hold(consumable_key(location_id, consumable_id)):
            with atomic():
                self._get_location(location_id)
                if db.session.get(Consumable, consumable_id) is None:
                    raise InventoryNotFoundError(f"Consumable with ID {consumable_id} not found")

                record = self._locked_consumable_record(location_id, consumable_id)
                if record is None:
                    record = ConsumableStockRecord(
                        location_id=location_id,
                        consumable_id=consumable_id,
                        quantity=Decimal('0'),
                        reserved_quantity=Decimal('0'),
                        created_by_id=user_id,
                    )
                    db.session.add(record)

                record.quantity = Decimal(record.quantity or 0) + amount
                record.updated_by_id = user_id
                db.session.flush()

        logger.info(f"Added {amount} of consumable {consumable_id} to location {location_id} "
                    f"(now {record.quantity})")
        return record

    def remove_consumable_stock(self, location_id: int, consumable_id: int, quantity,
                                user_id: Optional[int] = None) -> Optional[ConsumableStockRecord]:
        """
        Take a consumable off a location.

        Strict: only unreserved quantity can be removed.

        Raises:
            InventoryBadRequestError: No stock row for the pair
            InsufficientStockError: quantity exceeds available_quantity

        Returns:
            ConsumableStockRecord or None when the row was pruned
        """
        amount = validate_amount(quantity)

        with ledger_locks.hold(consumable_key(location_id, consumable_id)):
            with atomic():
                record = self._require_consumable_record(location_id, consumable_id)
                available = record.available_quantity
                if amount > available:
                    logger.warning(f"Rejected removal of {amount} of consumable {consumable_id} "
                                   f"from location {location_id}: {available} available")
                    raise InsufficientStockError(amount, available)

                record.quantity = Decimal(record.quantity) - amount
                record.updated_by_id = user_id
                record = self._prune_consumable(record)

        logger.info(f"Removed {amount} of consumable {consumable_id} from location {location_id}")
        return record

    def reserve_consumable_stock(self, location_id: int, consumable_id: int, quantity,
                                 user_id: Optional[int] = None) -> ConsumableStockRecord:
        """Earmark available consumable quantity; strict on available_quantity"""
        amount = validate_amount(quantity)

        with ledger_locks.hold(consumable_key(location_id, consumable_id)):
            with atomic():
                record = self._require_consumable_record(location_id, consumable_id)
                available = record.available_quantity
                if amount > available:
                    logger.warning(f"Rejected reservation of {amount} of consumable {consumable_id} "
                                   f"at location {location_id}: {available} available")
                    raise InsufficientStockError(amount, available)

                record.reserved_quantity = Decimal(record.reserved_quantity or 0) + amount
                record.updated_by_id = user_id
                db.session.flush()

        logger.info(f"Reserved {amount} of consumable {consumable_id} at location {location_id}")
        return record

    def release_consumable_reservation(self, location_id: int, consumable_id: int, quantity,
                                       user_id: Optional[int] = None) -> Optional[ConsumableStockRecord]:
        """Return reserved consumable quantity to available; strict on reserved_quantity"""
        amount = validate_amount(quantity)

        with ledger_locks.hold(consumable_key(location_id, consumable_id)):
            with atomic():
                record = self._require_consumable_record(location_id, consumable_id)
                reserved = Decimal(record.reserved_quantity or 0)
                if amount > reserved:
                    raise InsufficientStockError(
                        amount, reserved,
                        message=f"cannot release {amount}, only {reserved} reserved",
                    )

                record.reserved_quantity = reserved - amount
                record.updated_by_id = user_id
                record = self._prune_consumable(record)

        logger.info(f"Released {amount} of consumable {consumable_id} at location {location_id}")
        return record

    def get_consumable_stock(self, location_id: int) -> List[ConsumableStockRecord]:
        self._get_location(location_id)
        return (ConsumableStockRecord.query
                .filter_by(location_id=location_id)
                .order_by(ConsumableStockRecord.consumable_id)
                .all())

    def get_consumable_total_stock(self, consumable_id: int) -> Decimal:
        total = db.session.query(func.coalesce(func.sum(ConsumableStockRecord.quantity), 0)).filter(
            ConsumableStockRecord.consumable_id == consumable_id
        ).scalar()
        return Decimal(str(total or 0))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def sync_enabled():
        return current_app.config.get('AVAILABILITY_SYNC_ENABLED', True)

    def _durable_keys(self, location, product_id, sync):
        """
        Stock key plus, when republishing, the availability key of the
        location's warehouse. Both stay held until the outermost commit so a
        concurrent sync cannot aggregate around an uncommitted change.
        """
        keys = [stock_key(location.id, product_id)]
        if sync and self.sync_enabled():
            keys.append(availability_key(location.warehouse_id, product_id))
        return keys

    def _sync(self, product_id, location):
        if self.sync_enabled():
            self.publisher.sync_warehouse_product(location.warehouse_id, product_id)

    @staticmethod
    def _get_location(location_id) -> Location:
        location = db.session.get(Location, location_id)
        if location is None:
            raise InventoryNotFoundError(f"Location with ID {location_id} not found")
        return location

    @staticmethod
    def _get_product(product_id) -> Product:
        product = db.session.get(Product, product_id)
        if product is None:
            raise InventoryNotFoundError(f"Product with ID {product_id} not found")
        return product

    @staticmethod
    def _locked_stock_record(location_id, product_id) -> Optional[StockRecord]:
        return (StockRecord.query
                .filter_by(location_id=location_id, product_id=product_id)
                .with_for_update()
                .first())

    @staticmethod
    def _locked_consumable_record(location_id, consumable_id) -> Optional[ConsumableStockRecord]:
        return (ConsumableStockRecord.query
                .filter_by(location_id=location_id, consumable_id=consumable_id)
                .with_for_update()
                .first())

    def _require_consumable_record(self, location_id, consumable_id) -> ConsumableStockRecord:
        self._get_location(location_id)
        record = self._locked_consumable_record(location_id, consumable_id)
        if record is None:
            raise InventoryBadRequestError(
                f"No stock of consumable {consumable_id} on location {location_id}"
            )
        return record

    @staticmethod
    def _prune_consumable(record) -> Optional[ConsumableStockRecord]:
        record.quantity = Decimal(record.quantity or 0).quantize(CONSUMABLE_SCALE)
        record.reserved_quantity = Decimal(record.reserved_quantity or 0).quantize(CONSUMABLE_SCALE)
        if record.is_empty:
            db.session.delete(record)
            db.session.flush()
            return None
        db.session.flush()
        return record
