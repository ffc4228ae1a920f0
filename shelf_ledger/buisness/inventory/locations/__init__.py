from shelf_ledger.buisness.inventory.locations.location_tree import LocationTree, LocationNode

__all__ = ['LocationTree', 'LocationNode']
