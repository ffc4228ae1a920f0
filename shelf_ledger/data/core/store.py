"""
Store Model

A sales channel (marketplace shop, web store) bound to exactly one warehouse.
Owned by the channel subsystem; the ledger only reads the warehouse binding.
"""

from shelf_ledger.data.core.user_created_base import UserCreatedBase
from shelf_ledger import db


class Store(UserCreatedBase):
    """Sales channel fed by a warehouse's physical stock"""
    __tablename__ = 'stores'

    name = db.Column(db.String(255), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey('warehouses.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    warehouse = db.relationship('Warehouse', back_populates='stores')

    def __repr__(self):
        return f'<Store {self.name} (warehouse {self.warehouse_id})>'
