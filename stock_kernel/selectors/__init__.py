"""Read-only selectors over the stock ledger tables."""

from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.movement_selector import MovementSelector

__all__ = ["BaseSelector", "MovementSelector"]
