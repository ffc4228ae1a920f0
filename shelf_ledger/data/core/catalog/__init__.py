"""Catalog records referenced by the ledger (owned by the catalog subsystem)"""

from shelf_ledger.data.core.catalog.product import Product
from shelf_ledger.data.core.catalog.consumable import Consumable

__all__ = [
    'Product',
    'Consumable',
]
