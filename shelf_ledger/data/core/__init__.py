"""
Core models shared with the surrounding back office
"""

from .warehouse import Warehouse
from .store import Store
from .catalog import Product, Consumable

__all__ = [
    'Warehouse',
    'Store',
    'Product',
    'Consumable',
]
