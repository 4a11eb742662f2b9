class InventoryError(ValueError):
    """Base class for rejected stock operations."""


class NegativeStockError(InventoryError):
    pass


class InsufficientStockError(InventoryError):
    pass
