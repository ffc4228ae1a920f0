"""
Location Model

A node in a warehouse's storage hierarchy (zone, aisle, shelf, bin).
Hierarchy is stored as a parent_id foreign key plus a materialized path
("/merkez/a/a1") so subtrees can be loaded with one query.
"""

from shelf_ledger import db
from shelf_ledger.data.core.user_created_base import UserCreatedBase
from shelf_ledger.data.inventory.locations.location_type import LocationType


class Location(UserCreatedBase):
    """Physical storage location inside a warehouse"""
    __tablename__ = 'locations'

    # Basic Fields
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(1000), unique=True, nullable=False)  # Barcode / pick label ("MERKEZ > A > A1")
    type = db.Column(db.Enum(LocationType, native_enum=False, length=20), nullable=False, default=LocationType.NORMAL)
    path = db.Column(db.String(1000), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    # Global numbering
    global_slot = db.Column(db.Integer, unique=True, nullable=True)
    external_id = db.Column(db.Integer, unique=True, nullable=True)

    # Policy flags
    is_sellable = db.Column(db.Boolean, nullable=False, default=True)
    is_reservable = db.Column(db.Boolean, nullable=False, default=True)
    is_shelvable = db.Column(db.Boolean, nullable=False, default=True)

    # Foreign Keys
    warehouse_id = db.Column(db.Integer, db.ForeignKey('warehouses.id'), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=True, index=True)

    # Relationships
    warehouse = db.relationship('Warehouse')
    parent = db.relationship('Location', remote_side='Location.id', foreign_keys=[parent_id])

    def __repr__(self):
        return f'<Location {self.code} ({self.type.value if self.type else "?"})>'

    @property
    def is_root(self):
        return self.parent_id is None
