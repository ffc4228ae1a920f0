"""
Stock Movement Model

Append-only audit trail of every durable-item quantity change on a location.
Each row describes one directional change:
quantity_after = quantity_before + quantity (IN) or - quantity (OUT).
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import event
from shelf_ledger import db


class MovementKind(str, Enum):
    PICKING = 'PICKING'          # Shelf -> picking pool
    PACKING_IN = 'PACKING_IN'    # Picking pool -> packing area
    PACKING_OUT = 'PACKING_OUT'  # Packing area -> shipped
    RECEIVING = 'RECEIVING'      # Goods-in
    TRANSFER = 'TRANSFER'        # Shelf -> shelf
    ADJUSTMENT = 'ADJUSTMENT'    # Manual correction
    RETURN = 'RETURN'            # Customer return
    CANCEL = 'CANCEL'            # Stock put back after cancellation


class MovementDirection(str, Enum):
    IN = 'IN'
    OUT = 'OUT'


class StockMovement(db.Model):
    """Immutable audit entry; never updated or deleted once flushed"""
    __tablename__ = 'stock_movements'

    id = db.Column(db.Integer, primary_key=True)

    # Core Fields
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)

    # Movement Details
    kind = db.Column(db.Enum(MovementKind, native_enum=False, length=20), nullable=False)
    direction = db.Column(db.Enum(MovementDirection, native_enum=False, length=3), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False, default=0)
    quantity_after = db.Column(db.Integer, nullable=False, default=0)

    # External process references
    order_id = db.Column(db.Integer, nullable=True, index=True)
    route_id = db.Column(db.Integer, nullable=True, index=True)
    reference_number = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, nullable=True)

    # Transfer Fields
    source_location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=True)
    target_location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    location = db.relationship('Location', foreign_keys=[location_id])
    source_location = db.relationship('Location', foreign_keys=[source_location_id])
    target_location = db.relationship('Location', foreign_keys=[target_location_id])
    product = db.relationship('Product')

    def __repr__(self):
        return (f'<StockMovement {self.kind.value if self.kind else "?"} {self.direction.value if self.direction else "?"}: '
                f'Product {self.product_id} @ {self.location_id} {self.quantity_before}->{self.quantity_after}>')

    @property
    def signed_quantity(self):
        """Quantity with sign applied: positive for IN, negative for OUT"""
        return self.quantity if self.direction == MovementDirection.IN else -self.quantity

    @property
    def is_transfer_leg(self):
        return self.source_location_id is not None and self.target_location_id is not None

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'location_id': self.location_id,
            'product_id': self.product_id,
            'kind': self.kind.value if self.kind else None,
            'direction': self.direction.value if self.direction else None,
            'quantity': self.quantity,
            'quantity_before': self.quantity_before,
            'quantity_after': self.quantity_after,
            'order_id': self.order_id,
            'route_id': self.route_id,
            'source_location_id': self.source_location_id,
            'target_location_id': self.target_location_id,
            'reference_number': self.reference_number,
            'notes': self.notes,
            'user_id': self.user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


@event.listens_for(StockMovement, 'before_update')
def _reject_movement_update(mapper, connection, target):
    from shelf_ledger.buisness.inventory.errors import InventoryInvariantViolation
    raise InventoryInvariantViolation(f"Stock movement {target.id} is immutable and cannot be updated")


@event.listens_for(StockMovement, 'before_delete')
def _reject_movement_delete(mapper, connection, target):
    from shelf_ledger.buisness.inventory.errors import InventoryInvariantViolation
    raise InventoryInvariantViolation(f"Stock movement {target.id} is immutable and cannot be deleted")
