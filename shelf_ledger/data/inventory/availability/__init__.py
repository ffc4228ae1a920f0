"""Published availability snapshots"""

from shelf_ledger.data.inventory.availability.product_store import ProductStore

__all__ = [
    'ProductStore',
]
