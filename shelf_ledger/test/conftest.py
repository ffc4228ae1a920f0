"""
Pytest configuration and fixtures for the stock ledger tests

Each test gets a fresh in-memory SQLite schema.
"""
import itertools
import os

# Keep test runs from writing log files; must be set before the logger is configured
os.environ.setdefault('LOG_TO_FILE', 'false')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import pytest
from shelf_ledger import create_app
from shelf_ledger import db as _db
from shelf_ledger.buisness.inventory.availability.availability_publisher import AvailabilityPublisher
from shelf_ledger.buisness.inventory.locations.location_tree import LocationTree
from shelf_ledger.buisness.inventory.movements.movement_log import MovementLog
from shelf_ledger.buisness.inventory.stock.stock_ledger import StockLedger
from shelf_ledger.buisness.inventory.stock.transfer_manager import StockTransferManager
from shelf_ledger.data.core.catalog.consumable import Consumable
from shelf_ledger.data.core.catalog.product import Product
from shelf_ledger.data.core.store import Store
from shelf_ledger.data.core.warehouse import Warehouse


@pytest.fixture(scope='function')
def app():
    """Create Flask application bound to an in-memory database"""
    app = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'TESTING': True,
        'AVAILABILITY_SYNC_ENABLED': True,
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def db(app):
    return _db


@pytest.fixture
def location_tree(app):
    return LocationTree()


@pytest.fixture
def movement_log(app):
    return MovementLog()


@pytest.fixture
def publisher(app):
    return AvailabilityPublisher()


@pytest.fixture
def ledger(app, movement_log, publisher):
    return StockLedger(movement_log=movement_log, publisher=publisher)


@pytest.fixture
def transfers(ledger):
    return StockTransferManager(ledger=ledger)


@pytest.fixture
def make_warehouse(app):
    """Factory for warehouses"""
    counter = itertools.count(1)

    def _make(name=None, **kwargs):
        warehouse = Warehouse(name=name or f"Warehouse {next(counter)}", **kwargs)
        _db.session.add(warehouse)
        _db.session.commit()
        return warehouse

    return _make


@pytest.fixture
def warehouse(make_warehouse):
    return make_warehouse('Merkez Depo')


@pytest.fixture
def make_store(app):
    """Factory for sales channels bound to a warehouse"""
    counter = itertools.count(1)

    def _make(warehouse, name=None, **kwargs):
        store = Store(name=name or f"Store {next(counter)}", warehouse_id=warehouse.id, **kwargs)
        _db.session.add(store)
        _db.session.commit()
        return store

    return _make


@pytest.fixture
def make_product(app):
    """Factory for durable products"""
    counter = itertools.count(1)

    def _make(name=None, **kwargs):
        n = next(counter)
        kwargs.setdefault('sku', f"SKU-{n:04d}")
        product = Product(name=name or f"Product {n}", **kwargs)
        _db.session.add(product)
        _db.session.commit()
        return product

    return _make


@pytest.fixture
def product(make_product):
    return make_product('Ceramic Mug')


@pytest.fixture
def make_consumable(app):
    """Factory for consumables"""
    counter = itertools.count(1)

    def _make(name=None, **kwargs):
        n = next(counter)
        kwargs.setdefault('sku', f"CNS-{n:04d}")
        consumable = Consumable(name=name or f"Consumable {n}", **kwargs)
        _db.session.add(consumable)
        _db.session.commit()
        return consumable

    return _make


@pytest.fixture
def consumable(make_consumable):
    return make_consumable('Shipping Box')


@pytest.fixture
def make_location(location_tree, warehouse):
    """Factory for locations; defaults to the shared warehouse"""

    def _make(name, parent=None, warehouse_id=None, **kwargs):
        return location_tree.create(
            name=name,
            warehouse_id=warehouse_id or warehouse.id,
            parent_id=parent.id if parent is not None else None,
            **kwargs,
        )

    return _make
