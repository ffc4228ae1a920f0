from shelf_ledger.data.core.user_created_base import UserCreatedBase
from shelf_ledger import db


class Consumable(UserCreatedBase):
    """Packing material (box, bag, tape) stocked on shelves in fractional units"""
    __tablename__ = 'consumables'

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), unique=True, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default='COUNT')  # COUNT / METER
    is_active = db.Column(db.Boolean, default=True)

    def __repr__(self):
        return f'<Consumable {self.sku}>'
