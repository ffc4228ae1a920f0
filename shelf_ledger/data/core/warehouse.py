from shelf_ledger.data.core.user_created_base import UserCreatedBase
from shelf_ledger import db


class Warehouse(UserCreatedBase):
    """Physical warehouse; owns a location hierarchy and feeds the stores bound to it"""
    __tablename__ = 'warehouses'

    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships (no backrefs)
    stores = db.relationship('Store', back_populates='warehouse', lazy='select')

    def __repr__(self):
        return f'<Warehouse {self.name}>'
