from shelf_ledger.buisness.inventory.availability.availability_publisher import AvailabilityPublisher

__all__ = ['AvailabilityPublisher']
