"""
Availability Publisher

Aggregates durable stock of a product across one warehouse and writes the
result into every store (sales channel) bound to that warehouse:

    stock_quantity      = total on all locations
    sellable_quantity   = max(0, total on sellable locations - committed_quantity)
    reservable_quantity = total on sellable locations

committed_quantity is owned by the order subsystem and only read here.
"""

from typing import List, Optional
from sqlalchemy import func
from shelf_ledger import db
from shelf_ledger.buisness.core.locks import availability_key, ledger_locks
from shelf_ledger.buisness.core.transaction import atomic
from shelf_ledger.buisness.inventory.errors import InventoryNotFoundError
from shelf_ledger.data.core.store import Store
from shelf_ledger.data.inventory.availability.product_store import ProductStore
from shelf_ledger.data.inventory.locations.location import Location
from shelf_ledger.data.inventory.stock.stock_record import StockRecord
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.buisness.inventory.availability")


class AvailabilityPublisher:
    """Republishes warehouse stock into ProductStore snapshots"""

    def sync(self, product_id: int, triggering_location_id: int) -> List[ProductStore]:
        """
        Republish a product for the warehouse of the location that changed.

        Raises:
            InventoryNotFoundError: Location does not exist
        """
        location = db.session.get(Location, triggering_location_id)
        if location is None:
            raise InventoryNotFoundError(f"Location with ID {triggering_location_id} not found")
        return self.sync_warehouse_product(location.warehouse_id, product_id)

    def sync_warehouse_product(self, warehouse_id: int, product_id: int) -> List[ProductStore]:
        """
        Recompute and write the snapshots of one (warehouse, product) pair.

        Snapshots missing for a store are created with committed_quantity 0.
        Running it twice without stock changes writes the same values.

        Returns:
            The snapshots of every store of the warehouse
        """
        with ledger_locks.hold(availability_key(warehouse_id, product_id)):
            with atomic():
                # Snapshot rows are locked before reading stock so the
                # aggregate cannot be older than the rows it overwrites
                locked = {
                    snapshot.store_id: snapshot
                    for snapshot in (ProductStore.query
                                     .join(Store, Store.id == ProductStore.store_id)
                                     .filter(Store.warehouse_id == warehouse_id,
                                             ProductStore.product_id == product_id)
                                     .order_by(ProductStore.store_id)
                                     .with_for_update(of=ProductStore)
                                     .all())
                }
                total, sellable = self._aggregate(warehouse_id, product_id)

                stores = Store.query.filter_by(warehouse_id=warehouse_id).order_by(Store.id).all()
                snapshots = []
                for store in stores:
                    snapshot = locked.get(store.id)
                    if snapshot is None:
                        snapshot = ProductStore(
                            product_id=product_id,
                            store_id=store.id,
                            committed_quantity=0,
                        )
                        db.session.add(snapshot)

                    committed = snapshot.committed_quantity or 0
                    snapshot.stock_quantity = total
                    snapshot.sellable_quantity = max(0, sellable - committed)
                    snapshot.reservable_quantity = sellable
                    snapshots.append(snapshot)

                db.session.flush()

        logger.debug(f"Synced product {product_id} in warehouse {warehouse_id}: "
                     f"total={total}, sellable={sellable}, stores={len(snapshots)}")
        return snapshots

    def sync_all(self, warehouse_id: Optional[int] = None) -> int:
        """
        Administrative re-sync of every product that has stock or a snapshot.

        Each (warehouse, product) pair is republished in its own transaction.

        Args:
            warehouse_id: Limit to one warehouse

        Returns:
            int: Number of (warehouse, product) pairs republished
        """
        stocked = (db.session.query(Location.warehouse_id, StockRecord.product_id)
                   .join(Location, Location.id == StockRecord.location_id))
        published = (db.session.query(Store.warehouse_id, ProductStore.product_id)
                     .join(Store, Store.id == ProductStore.store_id))
        if warehouse_id is not None:
            stocked = stocked.filter(Location.warehouse_id == warehouse_id)
            published = published.filter(Store.warehouse_id == warehouse_id)

        pairs = sorted(set(stocked.distinct().all()) | set(published.distinct().all()))

        for pair_warehouse_id, product_id in pairs:
            self.sync_warehouse_product(pair_warehouse_id, product_id)

        logger.info(f"Availability re-sync complete: {len(pairs)} warehouse/product pairs"
                    + (f" in warehouse {warehouse_id}" if warehouse_id is not None else ""))
        return len(pairs)

    @staticmethod
    def _aggregate(warehouse_id, product_id):
        base = (db.session.query(func.coalesce(func.sum(StockRecord.quantity), 0))
                .join(Location, Location.id == StockRecord.location_id)
                .filter(Location.warehouse_id == warehouse_id,
                        StockRecord.product_id == product_id))
        total = int(base.scalar() or 0)
        sellable = int(base.filter(Location.is_sellable.is_(True)).scalar() or 0)
        return total, sellable
