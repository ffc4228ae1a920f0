"""
Tests for the location hierarchy: paths, codes, type policy, uniqueness,
re-parenting, tree reads and guarded removal.
"""
import pytest
from shelf_ledger.buisness.inventory.errors import (
    InventoryBadRequestError,
    InventoryConflictError,
    InventoryNotFoundError,
)
from shelf_ledger.data.inventory.locations.location import Location
from shelf_ledger.data.inventory.locations.location_type import LOCATION_TYPE_POLICY, LocationType
from shelf_ledger.utils.text import natural_key, slugify


def test_root_and_child_path_and_code(make_location):
    """MERKEZ -> /merkez, child A -> /merkez/a with a pick-label code"""
    root = make_location('MERKEZ')
    assert root.path == '/merkez'
    assert root.code == 'MERKEZ'
    assert root.is_root

    child = make_location('A', parent=root)
    assert child.path == '/merkez/a'
    assert child.code == 'MERKEZ > A'
    assert child.parent_id == root.id


def test_no_depth_limit(make_location):
    parent = make_location('MERKEZ')
    for name in ['A', 'A1', 'Level 3', 'Bin 4', 'Box 5', 'Slot 6']:
        parent = make_location(name, parent=parent)

    assert parent.path == '/merkez/a/a1/level-3/bin-4/box-5/slot-6'
    assert parent.code == 'MERKEZ > A > A1 > Level 3 > Bin 4 > Box 5 > Slot 6'


def test_slug_collapses_whitespace_runs(make_location):
    location = make_location('  Cold   Room 2 ')
    assert location.name == 'Cold   Room 2'
    assert location.path == '/cold-room-2'


def test_explicit_code_is_kept(make_location):
    location = make_location('A1', code='8690000000999')
    assert location.code == '8690000000999'


def test_create_rejects_empty_name(make_location):
    with pytest.raises(InventoryBadRequestError):
        make_location('   ')


def test_create_with_missing_parent_fails(location_tree, warehouse):
    with pytest.raises(InventoryNotFoundError):
        location_tree.create(name='A', warehouse_id=warehouse.id, parent_id=9999)


def test_create_with_missing_warehouse_fails(location_tree):
    with pytest.raises(InventoryNotFoundError):
        location_tree.create(name='A', warehouse_id=9999)


def test_create_with_parent_in_other_warehouse_fails(make_location, make_warehouse):
    other = make_warehouse('Izmir Depo')
    foreign_root = make_location('IZMIR', warehouse_id=other.id)

    with pytest.raises(InventoryBadRequestError):
        make_location('A', parent=foreign_root)


def test_global_slot_conflict_names_holder(make_location):
    make_location('Shelf One', global_slot=1000)

    with pytest.raises(InventoryConflictError) as excinfo:
        make_location('Shelf Two', global_slot=1000)

    assert "Shelf One" in excinfo.value.message, "Conflict message should name the existing holder"
    assert Location.query.filter_by(name='Shelf Two').count() == 0


def test_external_id_conflict_names_holder(make_location):
    make_location('Shelf One', external_id=77)

    with pytest.raises(InventoryConflictError) as excinfo:
        make_location('Shelf Two', external_id=77)

    assert "Shelf One" in str(excinfo.value)


def test_duplicate_code_conflicts(make_location, make_warehouse):
    make_location('MERKEZ')
    other = make_warehouse('Second')

    with pytest.raises(InventoryConflictError):
        make_location('MERKEZ', warehouse_id=other.id)


@pytest.mark.parametrize('location_type', list(LocationType))
def test_type_policy_defaults(make_location, location_type):
    location = make_location(f"Area {location_type.value}", type=location_type)
    expected = LOCATION_TYPE_POLICY[location_type]

    assert location.type == location_type
    assert location.is_sellable == expected['is_sellable']
    assert location.is_reservable == expected['is_reservable']
    assert location.is_shelvable is True


def test_type_accepts_string_value(make_location):
    location = make_location('Goods In', type='RECEIVING')
    assert location.type == LocationType.RECEIVING
    assert location.is_sellable is False


def test_unknown_type_rejected(make_location):
    with pytest.raises(InventoryBadRequestError):
        make_location('Somewhere', type='ATTIC')


def test_explicit_flags_override_policy(make_location):
    location = make_location('Damaged Sellable', type=LocationType.DAMAGED, is_sellable=True)
    assert location.is_sellable is True
    assert location.is_reservable is False


def test_find_tree_orders_naturally(location_tree, make_location, warehouse):
    root = make_location('MERKEZ')
    for name in ['A10', 'A2', 'A1']:
        make_location(name, parent=root)

    roots = location_tree.find_tree(warehouse.id)

    assert [node.name for node in roots] == ['MERKEZ']
    assert [child.name for child in roots[0].children] == ['A1', 'A2', 'A10']


def test_find_tree_sort_order_wins_over_name(location_tree, make_location, warehouse):
    root = make_location('MERKEZ')
    make_location('Picking Pool', parent=root, type=LocationType.PICKING, sort_order=90)
    make_location('B', parent=root)
    make_location('A', parent=root)

    roots = location_tree.find_tree(warehouse.id)

    assert [child.name for child in roots[0].children] == ['A', 'B', 'Picking Pool']


def test_find_tree_totals_are_per_location(location_tree, ledger, make_location, make_product, warehouse):
    root = make_location('MERKEZ')
    shelf = make_location('A1', parent=root)
    mug = make_product('Mug')
    board = make_product('Board')
    ledger.add_stock(shelf.id, mug.id, 4)
    ledger.add_stock(shelf.id, board.id, 6)

    roots = location_tree.find_tree(warehouse.id)
    nodes = {node.name: node for node in roots[0].walk()}

    assert nodes['A1'].total_quantity == 10
    assert nodes['MERKEZ'].total_quantity == 0, "Totals are not rolled up to ancestors"
    assert roots[0].to_dict()['children'][0]['total_quantity'] == 10


def test_find_tree_scoped_to_warehouse(location_tree, make_location, make_warehouse, warehouse):
    other = make_warehouse('Izmir Depo')
    make_location('MERKEZ')
    make_location('IZMIR', warehouse_id=other.id)

    assert [node.name for node in location_tree.find_tree(other.id)] == ['IZMIR']


def test_find_tree_unknown_warehouse(location_tree):
    with pytest.raises(InventoryNotFoundError):
        location_tree.find_tree(9999)


def test_rename_rederives_subtree_paths_and_keeps_codes(location_tree, make_location):
    root = make_location('MERKEZ')
    aisle = make_location('A', parent=root)
    shelf = make_location('A1', parent=aisle)

    location_tree.update(aisle.id, name='Aisle A')

    assert location_tree.find_one(aisle.id).path == '/merkez/aisle-a'
    assert location_tree.find_one(shelf.id).path == '/merkez/aisle-a/a1'
    assert location_tree.find_one(shelf.id).code == 'MERKEZ > A > A1', "Printed codes are not rewritten"


def test_reparent_moves_subtree(location_tree, make_location):
    root = make_location('MERKEZ')
    aisle_a = make_location('A', parent=root)
    aisle_b = make_location('B', parent=root)
    shelf = make_location('A1', parent=aisle_a)
    bin_ = make_location('Bin 1', parent=shelf)

    location_tree.update(shelf.id, parent_id=aisle_b.id)

    assert location_tree.find_one(shelf.id).parent_id == aisle_b.id
    assert location_tree.find_one(shelf.id).path == '/merkez/b/a1'
    assert location_tree.find_one(bin_.id).path == '/merkez/b/a1/bin-1'


def test_two_pass_import(location_tree, make_location):
    """Hierarchy import: create everything flat, then attach parents"""
    root = make_location('MERKEZ')
    child = make_location('A1', code='IMPORT-A1')

    location_tree.update(child.id, parent_id=root.id)

    assert location_tree.find_one(child.id).path == '/merkez/a1'


def test_reparent_rejects_cycle(location_tree, make_location):
    root = make_location('MERKEZ')
    aisle = make_location('A', parent=root)
    shelf = make_location('A1', parent=aisle)

    with pytest.raises(InventoryBadRequestError):
        location_tree.update(root.id, parent_id=shelf.id)
    with pytest.raises(InventoryBadRequestError):
        location_tree.update(aisle.id, parent_id=aisle.id)

    assert location_tree.find_one(root.id).parent_id is None


def test_reparent_rejects_other_warehouse(location_tree, make_location, make_warehouse):
    other = make_warehouse('Izmir Depo')
    foreign = make_location('IZMIR', warehouse_id=other.id)
    local = make_location('MERKEZ')

    with pytest.raises(InventoryBadRequestError):
        location_tree.update(local.id, parent_id=foreign.id)


def test_type_change_reapplies_policy(location_tree, make_location):
    location = make_location('Shelf')
    assert location.is_sellable is True

    location_tree.update(location.id, type=LocationType.DAMAGED)
    updated = location_tree.find_one(location.id)
    assert updated.is_sellable is False
    assert updated.is_reservable is False

    location_tree.update(location.id, type=LocationType.PICKING, is_reservable=False)
    updated = location_tree.find_one(location.id)
    assert updated.is_sellable is True
    assert updated.is_reservable is False, "Caller-supplied flag wins over policy"


def test_update_uniqueness_excludes_self(location_tree, make_location):
    first = make_location('Shelf One', global_slot=1000)
    second = make_location('Shelf Two', global_slot=2000)

    location_tree.update(first.id, global_slot=1000, sort_order=3)
    assert location_tree.find_one(first.id).sort_order == 3

    with pytest.raises(InventoryConflictError) as excinfo:
        location_tree.update(second.id, global_slot=1000)
    assert "Shelf One" in excinfo.value.message
    assert location_tree.find_one(second.id).global_slot == 2000


def test_update_unknown_field_rejected(location_tree, make_location):
    location = make_location('Shelf')
    with pytest.raises(InventoryBadRequestError):
        location_tree.update(location.id, colour='red')


@pytest.mark.parametrize('field', ['code', 'type', 'is_sellable', 'is_shelvable', 'sort_order'])
def test_update_cannot_clear_required_field(location_tree, make_location, field):
    location = make_location('Shelf')

    with pytest.raises(InventoryBadRequestError) as excinfo:
        location_tree.update(location.id, **{field: None})
    assert field in excinfo.value.message
    assert location_tree.find_one(location.id).code == 'Shelf'


def test_update_missing_location(location_tree):
    with pytest.raises(InventoryNotFoundError):
        location_tree.update(9999, name='Ghost')


def test_remove_leaf(location_tree, make_location):
    root = make_location('MERKEZ')
    leaf = make_location('A', parent=root)

    assert location_tree.remove(leaf.id) is True
    assert Location.query.filter_by(id=leaf.id).first() is None


def test_remove_rejects_parent(location_tree, make_location):
    root = make_location('MERKEZ')
    make_location('A', parent=root)

    with pytest.raises(InventoryBadRequestError):
        location_tree.remove(root.id)


def test_remove_rejects_location_with_stock(location_tree, ledger, make_location, product, consumable):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 1)
    with pytest.raises(InventoryBadRequestError):
        location_tree.remove(shelf.id)

    packing = make_location('Packing', type=LocationType.PACKING)
    ledger.add_consumable_stock(packing.id, consumable.id, 5)
    with pytest.raises(InventoryBadRequestError):
        location_tree.remove(packing.id)


def test_remove_rejects_location_with_history(location_tree, ledger, make_location, product):
    shelf = make_location('A1')
    ledger.add_stock(shelf.id, product.id, 2)
    ledger.remove_stock(shelf.id, product.id, 2)

    with pytest.raises(InventoryBadRequestError):
        location_tree.remove(shelf.id)


def test_remove_missing_location(location_tree):
    with pytest.raises(InventoryNotFoundError):
        location_tree.remove(9999)


def test_lookups(location_tree, make_location, warehouse):
    root = make_location('MERKEZ')
    goods_in = make_location('Goods In', parent=root, type=LocationType.RECEIVING)
    make_location('Goods In 2', parent=root, type=LocationType.RECEIVING, sort_order=5)
    pool = make_location('Picking Pool', parent=root, type=LocationType.PICKING)

    assert location_tree.find_by_code('MERKEZ > Goods In').id == goods_in.id
    assert location_tree.find_by_code('NOPE') is None
    assert [loc.name for loc in location_tree.get_receiving_locations(warehouse.id)] == ['Goods In', 'Goods In 2']
    assert location_tree.get_pool_location(LocationType.PICKING, warehouse.id).id == pool.id
    assert location_tree.get_pool_location(LocationType.PACKING, warehouse.id) is None
    assert len(location_tree.find_all(warehouse.id)) == 4
    assert len(location_tree.get_locations_by_type('RECEIVING')) == 2


def test_find_one_missing(location_tree):
    with pytest.raises(InventoryNotFoundError):
        location_tree.find_one(9999)


def test_natural_key_and_slugify():
    assert sorted(['A10', 'a2', 'A1', 'B'], key=natural_key) == ['A1', 'a2', 'A10', 'B']
    assert sorted(['Shelf 10', 'Shelf 9'], key=natural_key) == ['Shelf 9', 'Shelf 10']
    assert slugify('Raf\tA  10') == 'raf-a-10'
