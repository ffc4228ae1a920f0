from shelf_ledger.data.core.user_created_base import UserCreatedBase
from shelf_ledger import db


class Product(UserCreatedBase):
    """Durable stock-keeping unit (catalog-owned, referenced by the ledger)"""
    __tablename__ = 'products'

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), unique=True, nullable=True)
    barcode = db.Column(db.String(100), unique=True, nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    def __repr__(self):
        return f'<Product {self.sku or self.name}>'
