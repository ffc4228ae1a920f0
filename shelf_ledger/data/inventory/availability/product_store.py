"""
ProductStore Model

Per-(product, store) published availability. The row belongs to the sales
channel subsystem: it owns committed_quantity (open orders) and the row's
lifecycle. The availability publisher overwrites the three physical figures.
"""

from shelf_ledger import db
from shelf_ledger.data.core.user_created_base import UserCreatedBase


class ProductStore(UserCreatedBase):
    """Channel-visible stock snapshot for one product in one store"""
    __tablename__ = 'product_stores'

    # Foreign Keys
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False, index=True)

    # Published quantities
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    sellable_quantity = db.Column(db.Integer, nullable=False, default=0)
    reservable_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Maintained by the order subsystem
    committed_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (
        db.UniqueConstraint('product_id', 'store_id', name='uix_product_store'),
    )

    # Relationships
    product = db.relationship('Product')
    store = db.relationship('Store')

    def __repr__(self):
        return (f'<ProductStore Product:{self.product_id} Store:{self.store_id} '
                f'Stock:{self.stock_quantity} Sellable:{self.sellable_quantity}>')
