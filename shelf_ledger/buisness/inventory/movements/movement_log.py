"""
Movement Log

Append-only audit trail for durable stock. Entries are written inside the
caller's transaction and never committed here; reads are paginated newest
first.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from flask import current_app
from shelf_ledger import db
from shelf_ledger.buisness.inventory.errors import (
    InventoryBadRequestError,
    InventoryInvariantViolation,
)
from shelf_ledger.data.inventory.movements.stock_movement import (
    MovementDirection,
    MovementKind,
    StockMovement,
)
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.buisness.inventory.movements")

REQUIRED_FIELDS = (
    'location_id', 'product_id', 'kind', 'direction',
    'quantity', 'quantity_before', 'quantity_after',
)

OPTIONAL_FIELDS = (
    'order_id', 'route_id', 'source_location_id', 'target_location_id',
    'reference_number', 'notes', 'user_id',
)

FILTER_FIELDS = (
    'location_id', 'product_id', 'order_id', 'route_id',
    'kind', 'direction', 'date_from', 'date_to',
)

DEFAULT_PAGE_SIZE = 50


class MovementLog:
    """Writes and reads StockMovement rows"""

    def record(self, **params) -> StockMovement:
        """
        Append one movement to the current transaction.

        Args:
            **params: location_id, product_id, kind, direction, quantity,
                quantity_before, quantity_after and any of order_id, route_id,
                source_location_id, target_location_id, reference_number,
                notes, user_id

        Returns:
            StockMovement: Flushed movement (id assigned, not committed)

        Raises:
            InventoryBadRequestError: Missing or unknown fields
            InventoryInvariantViolation: Before/after do not match quantity
        """
        missing = [name for name in REQUIRED_FIELDS if params.get(name) is None]
        if missing:
            raise InventoryBadRequestError(f"Movement is missing required field(s): {', '.join(missing)}")

        unknown = set(params) - set(REQUIRED_FIELDS) - set(OPTIONAL_FIELDS)
        if unknown:
            raise InventoryBadRequestError(f"Unknown movement field(s): {', '.join(sorted(unknown))}")

        kind = self._coerce(MovementKind, params['kind'], 'kind')
        direction = self._coerce(MovementDirection, params['direction'], 'direction')
        quantity = params['quantity']
        before = params['quantity_before']
        after = params['quantity_after']

        if quantity <= 0:
            raise InventoryBadRequestError(f"Movement quantity must be positive, got {quantity}")
        if before < 0 or after < 0:
            raise InventoryInvariantViolation(
                f"Movement quantities cannot be negative (before={before}, after={after})"
            )

        expected = before + quantity if direction == MovementDirection.IN else before - quantity
        if after != expected:
            raise InventoryInvariantViolation(
                f"Movement {direction.value} of {quantity} from {before} must end at {expected}, not {after}"
            )

        movement = StockMovement(
            location_id=params['location_id'],
            product_id=params['product_id'],
            kind=kind,
            direction=direction,
            quantity=quantity,
            quantity_before=before,
            quantity_after=after,
            **{name: params.get(name) for name in OPTIONAL_FIELDS},
        )
        db.session.add(movement)
        db.session.flush()

        logger.debug(f"Recorded movement {movement!r}")
        return movement

    def query(self, filters: Optional[dict] = None, page: int = 1, limit: int = DEFAULT_PAGE_SIZE):
        """
        Filtered, paginated movement history, newest first.

        Args:
            filters: Any of location_id, product_id, order_id, route_id, kind,
                direction, date_from, date_to (inclusive bounds; a bare date
                as date_to covers that whole day)
            page: 1-based page number
            limit: Page size, capped at MOVEMENT_PAGE_SIZE_MAX

        Returns:
            Pagination object with items, total, page, per_page
        """
        filters = {key: value for key, value in (filters or {}).items() if value is not None}
        unknown = set(filters) - set(FILTER_FIELDS)
        if unknown:
            raise InventoryBadRequestError(f"Unknown movement filter(s): {', '.join(sorted(unknown))}")

        query = StockMovement.query

        for name in ('location_id', 'product_id', 'order_id', 'route_id'):
            if name in filters:
                query = query.filter(getattr(StockMovement, name) == filters[name])

        if 'kind' in filters:
            query = query.filter(StockMovement.kind == self._coerce(MovementKind, filters['kind'], 'kind'))
        if 'direction' in filters:
            query = query.filter(
                StockMovement.direction == self._coerce(MovementDirection, filters['direction'], 'direction')
            )
        if 'date_from' in filters:
            start, _ = self._coerce_date(filters['date_from'])
            query = query.filter(StockMovement.created_at >= start)
        if 'date_to' in filters:
            end, whole_day = self._coerce_date(filters['date_to'])
            if whole_day:
                # A bare date includes everything recorded on that day
                query = query.filter(StockMovement.created_at < end + timedelta(days=1))
            else:
                query = query.filter(StockMovement.created_at <= end)

        page_size_max = current_app.config.get('MOVEMENT_PAGE_SIZE_MAX', 200)
        try:
            per_page = max(1, min(int(limit or DEFAULT_PAGE_SIZE), page_size_max))
            page = max(1, int(page or 1))
        except (TypeError, ValueError):
            raise InventoryBadRequestError(f"Invalid pagination: page={page!r}, limit={limit!r}")

        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    def history_for_location(self, location_id: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE):
        return self.query({'location_id': location_id}, page=page, limit=limit)

    def history_for_product(self, product_id: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE):
        return self.query({'product_id': product_id}, page=page, limit=limit)

    def transfer_pair(self, movement: StockMovement) -> Optional[StockMovement]:
        """
        Find the other leg of a transfer.

        The OUT leg is written first, so its partner is the nearest later IN
        row at the target location; the IN leg looks backwards.

        Returns:
            The counterpart movement, or None for non-transfer movements
        """
        if not movement.is_transfer_leg:
            return None

        if movement.direction == MovementDirection.OUT:
            other_location_id = movement.target_location_id
            other_direction = MovementDirection.IN
        else:
            other_location_id = movement.source_location_id
            other_direction = MovementDirection.OUT

        query = StockMovement.query.filter(
            StockMovement.location_id == other_location_id,
            StockMovement.product_id == movement.product_id,
            StockMovement.direction == other_direction,
            StockMovement.kind == movement.kind,
            StockMovement.quantity == movement.quantity,
            StockMovement.source_location_id == movement.source_location_id,
            StockMovement.target_location_id == movement.target_location_id,
        )
        if other_direction == MovementDirection.IN:
            query = query.filter(StockMovement.id > movement.id).order_by(StockMovement.id.asc())
        else:
            query = query.filter(StockMovement.id < movement.id).order_by(StockMovement.id.desc())
        return query.first()

    @staticmethod
    def _coerce(enum_cls, value, field_name):
        try:
            return enum_cls(value)
        except ValueError:
            raise InventoryBadRequestError(f"Invalid movement {field_name}: {value}")

    @staticmethod
    def _coerce_date(value):
        """Parse a date filter; the flag is True when no time of day was given"""
        if isinstance(value, datetime):
            return value, False
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day), True
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InventoryBadRequestError(f"Invalid date filter: {value}")
        return parsed, not any(sep in text for sep in ('T', ' ', ':'))
