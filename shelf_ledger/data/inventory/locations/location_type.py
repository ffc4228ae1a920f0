"""
Location types and the sellable/reservable policy attached to each.
"""

from enum import Enum


class LocationType(str, Enum):
    NORMAL = 'NORMAL'                  # Regular stock shelf
    DAMAGED = 'DAMAGED'                # Damaged goods
    PACKING = 'PACKING'                # Packing area
    PICKING = 'PICKING'                # Picking pool
    RECEIVING = 'RECEIVING'            # Goods-in area
    RETURN = 'RETURN'                  # Customer returns
    RETURN_DAMAGED = 'RETURN_DAMAGED'  # Damaged customer returns


# Default flags per type; explicit values passed by the caller win.
LOCATION_TYPE_POLICY = {
    LocationType.NORMAL: {'is_sellable': True, 'is_reservable': True},
    LocationType.DAMAGED: {'is_sellable': False, 'is_reservable': False},
    LocationType.PACKING: {'is_sellable': False, 'is_reservable': False},
    LocationType.PICKING: {'is_sellable': True, 'is_reservable': True},
    LocationType.RECEIVING: {'is_sellable': False, 'is_reservable': False},
    LocationType.RETURN: {'is_sellable': False, 'is_reservable': False},
    LocationType.RETURN_DAMAGED: {'is_sellable': False, 'is_reservable': False},
}


def policy_for(location_type):
    """Return the default flag dict for a LocationType (or its string value)"""
    return LOCATION_TYPE_POLICY[LocationType(location_type)]
