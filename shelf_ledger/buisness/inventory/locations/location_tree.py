"""
Location Tree

Owns the warehouse location hierarchy: creation with materialized path and
pick-label code, type-driven sellable/reservable defaults, global slot and
external id uniqueness, re-parenting, and tree reconstruction for display.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from shelf_ledger import db
from shelf_ledger.buisness.core.transaction import atomic
from shelf_ledger.buisness.inventory.errors import (
    InventoryBadRequestError,
    InventoryConflictError,
    InventoryNotFoundError,
)
from shelf_ledger.data.core.warehouse import Warehouse
from shelf_ledger.data.inventory.locations.location import Location
from shelf_ledger.data.inventory.locations.location_type import LocationType, policy_for
from shelf_ledger.data.inventory.stock.stock_record import StockRecord
from shelf_ledger.data.inventory.stock.consumable_stock_record import ConsumableStockRecord
from shelf_ledger.data.inventory.movements.stock_movement import StockMovement
from shelf_ledger.utils.logger import get_logger
from shelf_ledger.utils.text import natural_key, slugify

logger = get_logger("shelf_ledger.buisness.inventory.locations")

CODE_SEPARATOR = " > "

UPDATABLE_FIELDS = {
    'name', 'code', 'type', 'parent_id', 'global_slot', 'external_id',
    'is_sellable', 'is_reservable', 'is_shelvable', 'sort_order', 'user_id',
}

POLICY_FLAGS = ('is_sellable', 'is_reservable')

# Columns that cannot be cleared through update()
NON_NULLABLE_FIELDS = ('code', 'type', 'is_sellable', 'is_reservable', 'is_shelvable', 'sort_order')


@dataclass
class LocationNode:
    """Detached tree node built from a Location row"""
    id: int
    name: str
    code: str
    type: LocationType
    path: str
    parent_id: Optional[int]
    global_slot: Optional[int]
    external_id: Optional[int]
    is_sellable: bool
    is_reservable: bool
    is_shelvable: bool
    sort_order: int
    total_quantity: int = 0
    children: List['LocationNode'] = field(default_factory=list)

    @classmethod
    def from_location(cls, location: Location, total_quantity: int = 0) -> 'LocationNode':
        return cls(
            id=location.id,
            name=location.name,
            code=location.code,
            type=location.type,
            path=location.path,
            parent_id=location.parent_id,
            global_slot=location.global_slot,
            external_id=location.external_id,
            is_sellable=location.is_sellable,
            is_reservable=location.is_reservable,
            is_shelvable=location.is_shelvable,
            sort_order=location.sort_order or 0,
            total_quantity=int(total_quantity or 0),
        )

    def walk(self):
        """Yield this node and every descendant, depth first"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'type': self.type.value if self.type else None,
            'path': self.path,
            'parent_id': self.parent_id,
            'global_slot': self.global_slot,
            'external_id': self.external_id,
            'is_sellable': self.is_sellable,
            'is_reservable': self.is_reservable,
            'is_shelvable': self.is_shelvable,
            'sort_order': self.sort_order,
            'total_quantity': self.total_quantity,
            'children': [child.to_dict() for child in self.children],
        }


def _tree_sort_key(node: LocationNode):
    return (node.sort_order, natural_key(node.name), node.id)


class LocationTree:
    """
    Business wrapper around the Location rows of all warehouses.

    Handles creating, updating, removing and reading locations.
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def find_one(self, location_id: int) -> Location:
        """
        Get a location by ID

        Raises:
            InventoryNotFoundError: If the location does not exist
        """
        location = db.session.get(Location, location_id)
        if location is None:
            raise InventoryNotFoundError(f"Location with ID {location_id} not found")
        return location

    def find_by_code(self, code: str) -> Optional[Location]:
        return Location.query.filter_by(code=code).first()

    def find_all(self, warehouse_id: Optional[int] = None) -> List[Location]:
        query = Location.query
        if warehouse_id is not None:
            query = query.filter_by(warehouse_id=warehouse_id)
        return query.order_by(Location.sort_order, Location.name).all()

    def get_locations_by_type(self, location_type, warehouse_id: Optional[int] = None) -> List[Location]:
        query = Location.query.filter_by(type=self._coerce_type(location_type))
        if warehouse_id is not None:
            query = query.filter_by(warehouse_id=warehouse_id)
        return query.order_by(Location.sort_order, Location.name).all()

    def get_receiving_locations(self, warehouse_id: int) -> List[Location]:
        """Goods-in locations of a warehouse, used for receipt suggestions"""
        return self.get_locations_by_type(LocationType.RECEIVING, warehouse_id)

    def get_pool_location(self, location_type, warehouse_id: Optional[int] = None) -> Optional[Location]:
        """
        First location of a pool type (picking pool, packing area).

        Returns:
            Location or None when the warehouse has no such area
        """
        query = Location.query.filter_by(type=self._coerce_type(location_type))
        if warehouse_id is not None:
            query = query.filter_by(warehouse_id=warehouse_id)
        return query.order_by(Location.sort_order, Location.id).first()

    def find_tree(self, warehouse_id: int) -> List[LocationNode]:
        """
        Build the location forest of a warehouse.

        Loads every location of the warehouse in one query and links nodes
        through an id -> node map. Siblings are ordered by sort_order, then
        naturally by name ("A2" before "A10"). Each node carries the total
        quantity of StockRecords on that exact location (not descendants).

        Args:
            warehouse_id: Warehouse to read

        Returns:
            Root nodes with children attached
        """
        if db.session.get(Warehouse, warehouse_id) is None:
            raise InventoryNotFoundError(f"Warehouse with ID {warehouse_id} not found")

        locations = Location.query.filter_by(warehouse_id=warehouse_id).all()

        totals_query = (
            db.session.query(StockRecord.location_id, func.sum(StockRecord.quantity))
            .join(Location, Location.id == StockRecord.location_id)
            .filter(Location.warehouse_id == warehouse_id)
            .group_by(StockRecord.location_id)
        )
        totals = {location_id: total for location_id, total in totals_query.all()}

        nodes: Dict[int, LocationNode] = {
            loc.id: LocationNode.from_location(loc, totals.get(loc.id, 0)) for loc in locations
        }

        roots = []
        for node in nodes.values():
            parent = nodes.get(node.parent_id) if node.parent_id is not None else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)

        roots.sort(key=_tree_sort_key)
        stack = list(roots)
        while stack:
            node = stack.pop()
            node.children.sort(key=_tree_sort_key)
            stack.extend(node.children)

        return roots

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(self, name: str, warehouse_id: int, parent_id: Optional[int] = None,
               code: Optional[str] = None, type=LocationType.NORMAL,
               global_slot: Optional[int] = None, external_id: Optional[int] = None,
               is_sellable: Optional[bool] = None, is_reservable: Optional[bool] = None,
               is_shelvable: Optional[bool] = None, sort_order: int = 0,
               user_id: Optional[int] = None) -> Location:
        """
        Create a location.

        The parent is resolved first. Path is the parent's path plus the
        slugified name; code is "<parent code> > <name>" (just the name for
        roots) unless given explicitly. Sellable/reservable default from the
        type policy when not supplied.

        Raises:
            InventoryNotFoundError: Warehouse or parent does not exist
            InventoryConflictError: Global slot, external id or code already in use
            InventoryBadRequestError: Empty name or parent in another warehouse
        """
        name = (name or '').strip()
        if not name:
            raise InventoryBadRequestError("Location name is required")

        location_type = self._coerce_type(type)

        try:
            with atomic():
                if db.session.get(Warehouse, warehouse_id) is None:
                    raise InventoryNotFoundError(f"Warehouse with ID {warehouse_id} not found")

                parent = None
                if parent_id is not None:
                    parent = db.session.get(Location, parent_id)
                    if parent is None:
                        raise InventoryNotFoundError(f"Parent location with ID {parent_id} not found")
                    if parent.warehouse_id != warehouse_id:
                        raise InventoryBadRequestError(
                            f"Parent location '{parent.name}' belongs to another warehouse"
                        )

                if code is None:
                    code = f"{parent.code}{CODE_SEPARATOR}{name}" if parent else name

                self._check_unique(global_slot=global_slot, external_id=external_id, code=code)

                defaults = policy_for(location_type)
                location = Location(
                    name=name,
                    code=code,
                    type=location_type,
                    warehouse_id=warehouse_id,
                    parent_id=parent.id if parent else None,
                    path=self._child_path(parent.path if parent else None, name),
                    global_slot=global_slot,
                    external_id=external_id,
                    is_sellable=defaults['is_sellable'] if is_sellable is None else is_sellable,
                    is_reservable=defaults['is_reservable'] if is_reservable is None else is_reservable,
                    is_shelvable=True if is_shelvable is None else is_shelvable,
                    sort_order=sort_order or 0,
                    created_by_id=user_id,
                    updated_by_id=user_id,
                )
                db.session.add(location)
                db.session.flush()
        except IntegrityError as e:
            logger.warning(f"Location create for '{name}' hit a uniqueness race: {e.orig}")
            raise InventoryConflictError(f"Location '{name}' conflicts with an existing location") from e

        logger.info(f"Created location {location.code} (id={location.id}, path={location.path})")
        return location

    def update(self, location_id: int, **changes) -> Location:
        """
        Update a location in place.

        Only the keys passed are changed. A type change re-applies the type's
        sellable/reservable defaults unless the caller sets those flags in the
        same call. Changing name or parent re-derives the path of the location
        and all its descendants; codes are kept unless a new code is passed.

        Args:
            location_id: ID of the location to update
            **changes: Any of name, code, type, parent_id, global_slot,
                external_id, is_sellable, is_reservable, is_shelvable,
                sort_order, user_id

        Raises:
            InventoryNotFoundError: Location or new parent does not exist
            InventoryConflictError: Global slot, external id or code already in use
            InventoryBadRequestError: Unknown or emptied field, cycle, or
                cross-warehouse parent
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InventoryBadRequestError(f"Unknown location field(s): {', '.join(sorted(unknown))}")

        cleared = [name for name in NON_NULLABLE_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise InventoryBadRequestError(f"Location field(s) cannot be empty: {', '.join(cleared)}")

        user_id = changes.pop('user_id', None)

        try:
            with atomic():
                location = self.find_one(location_id)

                if 'name' in changes:
                    changes['name'] = (changes['name'] or '').strip()
                    if not changes['name']:
                        raise InventoryBadRequestError("Location name is required")

                if 'type' in changes:
                    changes['type'] = self._coerce_type(changes['type'])
                    if changes['type'] != location.type:
                        defaults = policy_for(changes['type'])
                        for flag in POLICY_FLAGS:
                            changes.setdefault(flag, defaults[flag])

                self._check_unique(
                    global_slot=changes.get('global_slot'),
                    external_id=changes.get('external_id'),
                    code=changes.get('code'),
                    exclude_id=location.id,
                )

                reparented = 'parent_id' in changes and changes['parent_id'] != location.parent_id
                if reparented:
                    self._validate_new_parent(location, changes['parent_id'])

                renamed = 'name' in changes and changes['name'] != location.name

                for key, value in changes.items():
                    setattr(location, key, value)
                if user_id is not None:
                    location.updated_by_id = user_id

                if reparented or renamed:
                    self._rederive_paths(location)

                db.session.flush()
        except IntegrityError as e:
            logger.warning(f"Location update for id={location_id} hit a uniqueness race: {e.orig}")
            raise InventoryConflictError(f"Location {location_id} conflicts with an existing location") from e

        logger.info(f"Updated location {location.code} (id={location.id}): {', '.join(sorted(changes)) or 'no fields'}")
        return location

    def remove(self, location_id: int) -> bool:
        """
        Delete a leaf location that holds no stock and has no movement history.

        Raises:
            InventoryNotFoundError: Location does not exist
            InventoryBadRequestError: Location has children, stock rows or movements
        """
        with atomic():
            location = self.find_one(location_id)

            child_count = Location.query.filter_by(parent_id=location.id).count()
            if child_count > 0:
                raise InventoryBadRequestError(
                    f"Cannot delete location '{location.name}': {child_count} child locations exist"
                )

            stock_count = StockRecord.query.filter_by(location_id=location.id).count()
            stock_count += ConsumableStockRecord.query.filter_by(location_id=location.id).count()
            if stock_count > 0:
                raise InventoryBadRequestError(
                    f"Cannot delete location '{location.name}': {stock_count} stock records exist"
                )

            movement_count = StockMovement.query.filter(or_(
                StockMovement.location_id == location.id,
                StockMovement.source_location_id == location.id,
                StockMovement.target_location_id == location.id,
            )).count()
            if movement_count > 0:
                raise InventoryBadRequestError(
                    f"Cannot delete location '{location.name}': {movement_count} stock movements reference it"
                )

            code = location.code
            db.session.delete(location)
            db.session.flush()

        logger.info(f"Removed location {code} (id={location_id})")
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _coerce_type(location_type) -> LocationType:
        try:
            return LocationType(location_type)
        except ValueError:
            raise InventoryBadRequestError(f"Unknown location type: {location_type}")

    @staticmethod
    def _child_path(parent_path: Optional[str], name: str) -> str:
        return f"{parent_path or ''}/{slugify(name)}"

    @staticmethod
    def _check_unique(global_slot=None, external_id=None, code=None, exclude_id=None):
        checks = (
            ('global_slot', global_slot, "Global slot {value} is already assigned to location '{holder}'"),
            ('external_id', external_id, "External id {value} is already assigned to location '{holder}'"),
            ('code', code, "Code '{value}' is already used by location '{holder}'"),
        )
        for column, value, message in checks:
            if value is None:
                continue
            query = Location.query.filter(getattr(Location, column) == value)
            if exclude_id is not None:
                query = query.filter(Location.id != exclude_id)
            holder = query.first()
            if holder is not None:
                logger.warning(f"Rejected duplicate {column}={value}; held by location id={holder.id}")
                raise InventoryConflictError(message.format(value=value, holder=holder.name))

    def _validate_new_parent(self, location: Location, parent_id: Optional[int]) -> None:
        if parent_id is None:
            return
        if parent_id == location.id:
            raise InventoryBadRequestError("A location cannot be its own parent")

        parent = db.session.get(Location, parent_id)
        if parent is None:
            raise InventoryNotFoundError(f"Parent location with ID {parent_id} not found")
        if parent.warehouse_id != location.warehouse_id:
            raise InventoryBadRequestError(f"Parent location '{parent.name}' belongs to another warehouse")

        parents = dict(
            db.session.query(Location.id, Location.parent_id)
            .filter(Location.warehouse_id == location.warehouse_id)
            .all()
        )
        seen = set()
        current = parent.id
        while current is not None and current not in seen:
            if current == location.id:
                raise InventoryBadRequestError(
                    f"Cannot move '{location.name}' under its own descendant '{parent.name}'"
                )
            seen.add(current)
            current = parents.get(current)

    def _rederive_paths(self, location: Location) -> None:
        """Recompute path for location and every descendant"""
        db.session.flush()
        siblings = Location.query.filter_by(warehouse_id=location.warehouse_id).all()
        by_id = {loc.id: loc for loc in siblings}
        children: Dict[Optional[int], List[Location]] = {}
        for loc in siblings:
            children.setdefault(loc.parent_id, []).append(loc)

        parent = by_id.get(location.parent_id) if location.parent_id is not None else None
        location.path = self._child_path(parent.path if parent else None, location.name)

        stack = [location]
        updated = 0
        while stack:
            node = stack.pop()
            for child in children.get(node.id, []):
                child.path = self._child_path(node.path, child.name)
                updated += 1
                stack.append(child)

        logger.debug(f"Re-derived path for location id={location.id} and {updated} descendants")
