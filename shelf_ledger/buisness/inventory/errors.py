"""
Domain exceptions for the stock ledger

These exceptions represent business rule violations and domain-specific errors.
They are raised by the business layer and surfaced to callers unchanged;
every message is suitable for direct display to an operator.
"""


class InventoryDomainError(Exception):
    """Base exception for all stock ledger domain errors"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InventoryNotFoundError(InventoryDomainError):
    """Raised when a referenced location or stock row does not exist"""
    pass


class InventoryConflictError(InventoryDomainError):
    """Raised when a uniqueness rule is violated (global slot, external id, code)"""
    pass


class InventoryBadRequestError(InventoryDomainError):
    """Raised when a request is invalid for the current state"""
    pass


class InventoryInvariantViolation(InventoryBadRequestError):
    """Raised when an operation would break a ledger invariant"""
    pass


class InsufficientStockError(InventoryInvariantViolation):
    """Raised when a strict decrement asks for more than is available"""

    def __init__(self, requested, available, message=None):
        self.requested = requested
        self.available = available
        super().__init__(message or f"insufficient stock: need {requested}, have {available}")
