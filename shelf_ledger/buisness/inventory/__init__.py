"""
Inventory business layer

Architecture:
- locations/ - LocationTree (hierarchy, codes, paths, type policy)
- stock/ - StockLedger (durable and consumable quantities) and StockTransferManager
- movements/ - MovementLog (append-only audit trail)
- availability/ - AvailabilityPublisher (channel snapshots)
"""
