from shelf_ledger.buisness.inventory.movements.movement_log import MovementLog

__all__ = ['MovementLog']
