"""
Tests for durable and consumable stock on locations
"""
from decimal import Decimal

import pytest
from shelf_ledger.buisness.inventory.errors import (
    InsufficientStockError,
    InventoryBadRequestError,
    InventoryInvariantViolation,
    InventoryNotFoundError,
)
from shelf_ledger.buisness.inventory.stock.stock_ledger import StockProvenance
from shelf_ledger.data.inventory.movements.stock_movement import (
    MovementDirection,
    MovementKind,
    StockMovement,
)
from shelf_ledger.data.inventory.stock.consumable_stock_record import ConsumableStockRecord
from shelf_ledger.data.inventory.stock.stock_record import StockRecord


def test_add_stock_creates_and_increments(ledger, make_location, product):
    shelf = make_location('A1')

    record = ledger.add_stock(shelf.id, product.id, 5)
    assert record.quantity == 5

    record = ledger.add_stock(shelf.id, product.id, 3)
    assert record.quantity == 8
    assert StockRecord.query.filter_by(location_id=shelf.id, product_id=product.id).count() == 1


def test_add_stock_records_in_movement(ledger, make_location, product):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 5)
    ledger.add_stock(shelf.id, product.id, 3)

    movements = StockMovement.query.order_by(StockMovement.id).all()
    assert len(movements) == 2
    assert movements[1].direction == MovementDirection.IN
    assert movements[1].kind == MovementKind.ADJUSTMENT, "Plain adds default to ADJUSTMENT"
    assert (movements[1].quantity_before, movements[1].quantity_after) == (5, 8)


def test_add_stock_uses_provenance(ledger, make_location, product):
    shelf = make_location('Goods In')
    ledger.add_stock(shelf.id, product.id, 12, provenance={
        'kind': 'RECEIVING', 'reference_number': 'PO-0042', 'user_id': 7,
    })

    movement = StockMovement.query.one()
    assert movement.kind == MovementKind.RECEIVING
    assert movement.reference_number == 'PO-0042'
    assert movement.user_id == 7
    assert StockRecord.query.one().created_by_id == 7


@pytest.mark.parametrize('quantity', [0, -1, 1.5, '3', True, None])
def test_add_stock_rejects_invalid_quantity(ledger, make_location, product, quantity):
    shelf = make_location('A1')
    with pytest.raises(InventoryBadRequestError):
        ledger.add_stock(shelf.id, product.id, quantity)
    assert StockRecord.query.count() == 0


def test_add_stock_unknown_location_or_product(ledger, make_location, product):
    with pytest.raises(InventoryNotFoundError):
        ledger.add_stock(9999, product.id, 1)

    shelf = make_location('A1')
    with pytest.raises(InventoryNotFoundError):
        ledger.add_stock(shelf.id, 9999, 1)


def test_invalid_provenance_kind(ledger, make_location, product):
    shelf = make_location('A1')
    with pytest.raises(InventoryBadRequestError):
        ledger.add_stock(shelf.id, product.id, 1, provenance={'kind': 'TELEPORT'})
    with pytest.raises(InventoryBadRequestError):
        ledger.add_stock(shelf.id, product.id, 1, provenance={'colour': 'red'})


def test_remove_stock_partial(ledger, make_location, product):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 5)

    record = ledger.remove_stock(shelf.id, product.id, 2)

    assert record.quantity == 3
    movement = StockMovement.query.order_by(StockMovement.id.desc()).first()
    assert movement.direction == MovementDirection.OUT
    assert (movement.quantity, movement.quantity_before, movement.quantity_after) == (2, 5, 3)


def test_remove_stock_clamps_at_zero(ledger, make_location, product):
    """Durable removal of more than present empties the shelf without error"""
    shelf = make_location('Y')
    ledger.add_stock(shelf.id, product.id, 5)

    result = ledger.remove_stock(shelf.id, product.id, 9)

    assert result is None
    assert ledger.get_quantity(shelf.id, product.id) == 0
    assert StockRecord.query.filter_by(location_id=shelf.id).count() == 0, "Empty rows are deleted"

    movement = StockMovement.query.order_by(StockMovement.id.desc()).first()
    assert movement.quantity == 5, "Movement reflects the quantity actually removed"
    assert (movement.quantity_before, movement.quantity_after) == (5, 0)


def test_remove_stock_when_nothing_present(ledger, make_location, product):
    shelf = make_location('A1')

    assert ledger.remove_stock(shelf.id, product.id, 3) is None
    assert StockMovement.query.count() == 0


def test_add_then_remove_round_trip(ledger, make_location, product):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 4)

    ledger.add_stock(shelf.id, product.id, 7)
    ledger.remove_stock(shelf.id, product.id, 7)

    assert ledger.get_quantity(shelf.id, product.id) == 4


def test_debit_strict(ledger, make_location, product):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 2)

    with pytest.raises(InsufficientStockError) as excinfo:
        ledger.debit(shelf.id, product.id, 3, strict=True)

    assert isinstance(excinfo.value, InventoryInvariantViolation)
    assert (excinfo.value.requested, excinfo.value.available) == (3, 2)
    assert str(excinfo.value) == "insufficient stock: need 3, have 2"
    assert ledger.get_quantity(shelf.id, product.id) == 2


def test_stock_reads(ledger, make_location, make_warehouse, make_product):
    shelf_a = make_location('A1')
    shelf_b = make_location('B1')
    other = make_warehouse('Izmir Depo')
    remote = make_location('IZMIR', warehouse_id=other.id)
    mug = make_product('Mug')
    board = make_product('Board')

    ledger.add_stock(shelf_a.id, mug.id, 3)
    ledger.add_stock(shelf_a.id, board.id, 1)
    ledger.add_stock(shelf_b.id, mug.id, 4)
    ledger.add_stock(remote.id, mug.id, 10)

    assert [r.product_id for r in ledger.get_stock(shelf_a.id)] == sorted([mug.id, board.id])
    assert ledger.get_product_total_stock(mug.id) == 17
    assert ledger.get_product_total_stock(mug.id, warehouse_id=shelf_a.warehouse_id) == 7
    assert ledger.get_product_total_stock(9999) == 0


def test_ledger_change_reports_before_and_after(ledger, make_location, product):
    shelf = make_location('A1')
    change = ledger.credit(shelf.id, product.id, 6, StockProvenance(kind=MovementKind.RETURN))

    assert change.changed
    assert (change.quantity_before, change.quantity_after) == (0, 6)
    assert change.movement.kind == MovementKind.RETURN


# ----------------------------------------------------------------------
# Consumables
# ----------------------------------------------------------------------

def test_consumable_add_decimals(ledger, make_location, consumable):
    packing = make_location('Packing')

    ledger.add_consumable_stock(packing.id, consumable.id, '2.5')
    record = ledger.add_consumable_stock(packing.id, consumable.id, Decimal('1.25'))

    assert record.quantity == Decimal('3.75')
    assert record.available_quantity == Decimal('3.75')
    assert ledger.get_consumable_total_stock(consumable.id) == Decimal('3.75')
    assert StockMovement.query.count() == 0, "Consumables are not written to the movement log"


def test_consumable_removal_is_strict_on_available(ledger, make_location, consumable):
    """quantity=10, reserved=3: removing 8 fails because only 7 are available"""
    shelf = make_location('X')
    ledger.add_consumable_stock(shelf.id, consumable.id, 10)
    ledger.reserve_consumable_stock(shelf.id, consumable.id, 3)

    with pytest.raises(InventoryBadRequestError):
        ledger.remove_consumable_stock(shelf.id, consumable.id, 8)

    record = ConsumableStockRecord.query.one()
    assert record.quantity == Decimal('10')
    assert record.reserved_quantity == Decimal('3')

    record = ledger.remove_consumable_stock(shelf.id, consumable.id, 7)
    assert record.quantity == Decimal('3')
    assert record.available_quantity == Decimal('0')


def test_consumable_removal_without_row(ledger, make_location, consumable):
    shelf = make_location('X')
    with pytest.raises(InventoryBadRequestError):
        ledger.remove_consumable_stock(shelf.id, consumable.id, 1)


def test_consumable_removal_prunes_empty_row(ledger, make_location, consumable):
    shelf = make_location('X')
    ledger.add_consumable_stock(shelf.id, consumable.id, '4.5')

    assert ledger.remove_consumable_stock(shelf.id, consumable.id, '4.5') is None
    assert ConsumableStockRecord.query.count() == 0


def test_consumable_rejects_amounts_finer_than_a_hundredth(ledger, make_location, consumable, db):
    """Stored at two decimal places, so 0.004 would silently become 0.00"""
    shelf = make_location('X')

    with pytest.raises(InventoryBadRequestError):
        ledger.add_consumable_stock(shelf.id, consumable.id, '0.004')
    assert ConsumableStockRecord.query.count() == 0

    ledger.add_consumable_stock(shelf.id, consumable.id, 1)
    with pytest.raises(InventoryBadRequestError):
        ledger.remove_consumable_stock(shelf.id, consumable.id, '0.999')

    db.session.expire_all()
    record = ConsumableStockRecord.query.one()
    assert record.quantity == Decimal('1')


def test_consumable_prunes_with_trailing_zeros(ledger, make_location, consumable, db):
    shelf = make_location('X')
    ledger.add_consumable_stock(shelf.id, consumable.id, '1.5')
    ledger.reserve_consumable_stock(shelf.id, consumable.id, '0.25')

    assert ledger.remove_consumable_stock(shelf.id, consumable.id, '1.250') is not None
    assert ledger.release_consumable_reservation(shelf.id, consumable.id, '0.2500') is not None
    assert ledger.remove_consumable_stock(shelf.id, consumable.id, '0.250') is None

    db.session.expire_all()
    assert ConsumableStockRecord.query.count() == 0


def test_consumable_reserve_and_release(ledger, make_location, consumable):
    shelf = make_location('X')
    ledger.add_consumable_stock(shelf.id, consumable.id, 5)

    with pytest.raises(InsufficientStockError):
        ledger.reserve_consumable_stock(shelf.id, consumable.id, 6)

    record = ledger.reserve_consumable_stock(shelf.id, consumable.id, 5)
    assert record.available_quantity == Decimal('0')

    with pytest.raises(InsufficientStockError):
        ledger.release_consumable_reservation(shelf.id, consumable.id, 6)

    record = ledger.release_consumable_reservation(shelf.id, consumable.id, 2)
    assert record.reserved_quantity == Decimal('3')
    assert record.available_quantity == Decimal('2')


@pytest.mark.parametrize('quantity', [0, '-1', 'abc', 'NaN', True])
def test_consumable_rejects_invalid_quantity(ledger, make_location, consumable, quantity):
    shelf = make_location('X')
    with pytest.raises(InventoryBadRequestError):
        ledger.add_consumable_stock(shelf.id, consumable.id, quantity)


def test_consumable_reads(ledger, make_location, make_consumable):
    shelf = make_location('Packing')
    box = make_consumable('Box')
    tape = make_consumable('Tape')
    ledger.add_consumable_stock(shelf.id, box.id, 10)
    ledger.add_consumable_stock(shelf.id, tape.id, '2.5')

    rows = ledger.get_consumable_stock(shelf.id)
    assert [row.consumable_id for row in rows] == sorted([box.id, tape.id])
    assert rows[0].to_dict()['available_quantity'] in ('10', '10.00')
