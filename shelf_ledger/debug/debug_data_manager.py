#!/usr/bin/env python3
"""
Demo Data Manager
Central controller for demo data insertion

Handles:
- Loading the demo warehouse JSON file
- Checking if data is already present
- Inserting catalog rows with find_or_create_from_dict
- Building the location hierarchy and opening stock through the ledger
- Fail-fast error handling
"""

from pathlib import Path
import json
from shelf_ledger import db
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.debug.demo_data")

DEMO_FILE = Path(__file__).parent / 'data' / 'demo_warehouse.json'
DEMO_REFERENCE = 'DEMO-OPENING'


def insert_demo_data(enabled=True, data_file=DEMO_FILE, user_id=None):
    """
    Insert the demo warehouse

    Args:
        enabled (bool): Whether to insert demo data (default: True)
        data_file (Path): JSON file to load
        user_id (int, optional): User ID for audit fields

    Returns:
        dict: Summary of inserted data

    Raises:
        Exception: If any insertion fails (fail-fast)
    """
    if not enabled:
        logger.info("Demo data insertion is disabled")
        return {}

    demo_data = _load_demo_data_file(data_file)
    if not demo_data:
        logger.info(f"No demo data file found at {data_file}, skipping")
        return {'status': 'skipped', 'reason': 'file_not_found'}

    if _check_demo_data_present(demo_data):
        logger.info("Demo data already present, skipping")
        return {'status': 'skipped', 'reason': 'data_present'}

    try:
        core = demo_data.get('Core', {})
        inventory = demo_data.get('Inventory', {})

        summary = {'status': 'inserted'}
        summary['warehouses'] = _insert_warehouses(core.get('Warehouses', []), user_id)
        summary['stores'] = _insert_stores(core.get('Stores', []), user_id)
        summary['products'] = _insert_catalog('product', core.get('Products', []), user_id)
        summary['consumables'] = _insert_catalog('consumable', core.get('Consumables', []), user_id)
        db.session.commit()

        summary['locations'] = _insert_locations(inventory.get('Locations', []), user_id)
        summary['stock'] = _insert_stock(inventory.get('Stock', []), user_id)
        summary['consumable_stock'] = _insert_consumable_stock(inventory.get('Consumable_Stock', []), user_id)

    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert demo data: {e}")
        raise

    logger.info(f"Demo data insertion completed successfully: {summary}")
    return summary


def _load_demo_data_file(data_file):
    data_file = Path(data_file)
    if not data_file.exists():
        return None

    try:
        with open(data_file, 'r') as f:
            data = json.load(f)
        logger.debug(f"Loaded demo data file: {data_file}")
        return data
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {data_file}: {e}")
        raise


def _check_demo_data_present(demo_data):
    """Demo data counts as present when any demo warehouse already exists"""
    from shelf_ledger.data.core.warehouse import Warehouse

    for warehouse_data in demo_data.get('Core', {}).get('Warehouses', []):
        if Warehouse.query.filter_by(name=warehouse_data['name']).first():
            return True
    return False


def _warehouse_id(name):
    from shelf_ledger.data.core.warehouse import Warehouse

    warehouse = Warehouse.query.filter_by(name=name).first()
    if warehouse is None:
        raise ValueError(f"Demo data references unknown warehouse '{name}'")
    return warehouse.id


def _insert_warehouses(warehouses_data, user_id):
    from shelf_ledger.data.core.warehouse import Warehouse

    for warehouse_data in warehouses_data:
        Warehouse.find_or_create_from_dict(warehouse_data, user_id=user_id,
                                           lookup_fields=['name'], commit=False)
        logger.debug(f"Inserted warehouse: {warehouse_data.get('name')}")
    return len(warehouses_data)


def _insert_stores(stores_data, user_id):
    from shelf_ledger.data.core.store import Store

    for store_data in stores_data:
        data = dict(store_data)
        data['warehouse_id'] = _warehouse_id(data.pop('warehouse'))
        Store.find_or_create_from_dict(data, user_id=user_id,
                                       lookup_fields=['name', 'warehouse_id'], commit=False)
        logger.debug(f"Inserted store: {data.get('name')}")
    return len(stores_data)


def _insert_catalog(kind, items_data, user_id):
    from shelf_ledger.data.core.catalog import Consumable, Product

    model = Product if kind == 'product' else Consumable
    for item_data in items_data:
        model.find_or_create_from_dict(item_data, user_id=user_id,
                                       lookup_fields=['sku'], commit=False)
        logger.debug(f"Inserted {kind}: {item_data.get('sku')}")
    return len(items_data)


def _insert_locations(roots_data, user_id):
    """Create the nested location hierarchy depth first, parents before children"""
    from shelf_ledger.buisness.inventory.locations.location_tree import LocationTree

    tree = LocationTree()
    created = 0
    stack = []
    for root in roots_data:
        stack.append((root, None, _warehouse_id(root['warehouse'])))

    while stack:
        node, parent_id, warehouse_id = stack.pop()
        fields = {key: value for key, value in node.items() if key not in ('children', 'warehouse')}
        location = tree.create(warehouse_id=warehouse_id, parent_id=parent_id, user_id=user_id, **fields)
        created += 1
        for child in reversed(node.get('children', [])):
            stack.append((child, location.id, warehouse_id))

    return created


def _insert_stock(stock_data, user_id):
    from shelf_ledger.buisness.inventory.stock.stock_ledger import StockLedger
    from shelf_ledger.data.core.catalog.product import Product

    ledger = StockLedger()
    for entry in stock_data:
        location = _location_by_code(entry['location'])
        product = Product.query.filter_by(sku=entry['sku']).first()
        if product is None:
            raise ValueError(f"Demo stock references unknown product '{entry['sku']}'")
        ledger.add_stock(location.id, product.id, entry['quantity'], provenance={
            'kind': entry.get('kind'),
            'reference_number': DEMO_REFERENCE,
            'user_id': user_id,
        })
    return len(stock_data)


def _insert_consumable_stock(stock_data, user_id):
    from shelf_ledger.buisness.inventory.stock.stock_ledger import StockLedger
    from shelf_ledger.data.core.catalog.consumable import Consumable

    ledger = StockLedger()
    for entry in stock_data:
        location = _location_by_code(entry['location'])
        consumable = Consumable.query.filter_by(sku=entry['sku']).first()
        if consumable is None:
            raise ValueError(f"Demo stock references unknown consumable '{entry['sku']}'")
        ledger.add_consumable_stock(location.id, consumable.id, entry['quantity'], user_id=user_id)
    return len(stock_data)


def _location_by_code(code):
    from shelf_ledger.buisness.inventory.locations.location_tree import LocationTree

    location = LocationTree().find_by_code(code)
    if location is None:
        raise ValueError(f"Demo data references unknown location '{code}'")
    return location
