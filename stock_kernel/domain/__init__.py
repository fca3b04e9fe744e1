"""Pure domain layer: movement records, validation, constructors, clock."""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.movement import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    MovementFilter,
    MovementRecord,
    MovementType,
    StockKey,
)
from stock_kernel.domain.movement_factory import (
    build_movement,
    create_adjustment,
    create_complete_transfer,
    create_stock_in,
    create_stock_out,
    create_transfer_in,
    create_transfer_out,
)
from stock_kernel.domain.movement_validator import ensure_valid, validate_movement

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "INBOUND_TYPES",
    "OUTBOUND_TYPES",
    "MovementFilter",
    "MovementRecord",
    "MovementType",
    "StockKey",
    "build_movement",
    "create_adjustment",
    "create_complete_transfer",
    "create_stock_in",
    "create_stock_out",
    "create_transfer_in",
    "create_transfer_out",
    "ensure_valid",
    "validate_movement",
]
