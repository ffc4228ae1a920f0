from shelf_ledger import db
from shelf_ledger.data.core.user_created_base import UserCreatedBase


class StockRecord(UserCreatedBase):
    """
    Quantity of a durable product physically present on one location.

    Rows are sparse: a record whose quantity reaches zero is deleted by the ledger.
    """
    __tablename__ = 'stock_records'

    # Foreign Keys
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)

    # Quantities
    quantity = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('location_id', 'product_id', name='uix_stock_location_product'),
        db.CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )

    # Relationships
    location = db.relationship('Location')
    product = db.relationship('Product')

    def __repr__(self):
        return f'<StockRecord Location:{self.location_id} Product:{self.product_id} Qty:{self.quantity}>'
