"""Location hierarchy models"""

from shelf_ledger.data.inventory.locations.location_type import LocationType, LOCATION_TYPE_POLICY
from shelf_ledger.data.inventory.locations.location import Location

__all__ = [
    'Location',
    'LocationType',
    'LOCATION_TYPE_POLICY',
]
