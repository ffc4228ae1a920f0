from decimal import Decimal
from shelf_ledger import db
from shelf_ledger.data.core.user_created_base import UserCreatedBase


class ConsumableStockRecord(UserCreatedBase):
    """
    Quantity of a consumable material on one location, with reservation.

    available_quantity = quantity - reserved_quantity; reserved never exceeds quantity.
    """
    __tablename__ = 'consumable_stock_records'

    # Foreign Keys
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False, index=True)
    consumable_id = db.Column(db.Integer, db.ForeignKey('consumables.id'), nullable=False, index=True)

    # Quantities
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    reserved_quantity = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))

    __table_args__ = (
        db.UniqueConstraint('location_id', 'consumable_id', name='uix_consumable_location_consumable'),
        db.CheckConstraint('quantity >= 0', name='ck_consumable_quantity_non_negative'),
        db.CheckConstraint('reserved_quantity >= 0', name='ck_consumable_reserved_non_negative'),
        db.CheckConstraint('reserved_quantity <= quantity', name='ck_consumable_reserved_within_quantity'),
    )

    # Relationships
    location = db.relationship('Location')
    consumable = db.relationship('Consumable')

    def __repr__(self):
        return (f'<ConsumableStockRecord Location:{self.location_id} Consumable:{self.consumable_id} '
                f'Qty:{self.quantity} Reserved:{self.reserved_quantity}>')

    @property
    def available_quantity(self):
        """Quantity not earmarked by a reservation"""
        return Decimal(self.quantity or 0) - Decimal(self.reserved_quantity or 0)

    @property
    def is_empty(self):
        return not self.quantity and not self.reserved_quantity

    def to_dict(self, include_relationships=False, include_audit_fields=True):
        result = super().to_dict(include_relationships=include_relationships,
                                 include_audit_fields=include_audit_fields)
        result['available_quantity'] = str(self.available_quantity)
        return result
