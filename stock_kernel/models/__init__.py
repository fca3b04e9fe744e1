"""ORM models.  Importing this package registers every table on Base.metadata."""

from stock_kernel.models.stock_movement import StockMovementModel

__all__ = ["StockMovementModel"]
