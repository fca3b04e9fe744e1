"""
ORM-Level Immutability Enforcement for the stock ledger.

The ledger is append-only: a movement row, once flushed, is never updated or
deleted.  Corrections are new ADJUSTMENT movements.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database:

    session.flush()
         |
         v
    [before_update] --> _check_movement_update() --> ImmutabilityViolationError
    [before_delete] --> _check_movement_delete() --> ImmutabilityViolationError

If a check fails the flush aborts and the database is never modified.  Bulk
``UPDATE``/``DELETE`` statements bypass mapper events; production databases
should additionally revoke UPDATE/DELETE on ``stock_movements``.
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_movement import StockMovementModel

logger = get_logger("db.immutability")

_registered = False


def _check_movement_update(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements are append-only; record an adjustment instead",
    )


def _check_movement_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """Register the append-only listeners (idempotent)."""
    global _registered
    if _registered:
        return
    event.listen(StockMovementModel, "before_update", _check_movement_update)
    event.listen(StockMovementModel, "before_delete", _check_movement_delete)
    _registered = True
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove the listeners.  FOR TESTING ONLY."""
    global _registered
    if not _registered:
        return
    event.remove(StockMovementModel, "before_update", _check_movement_update)
    event.remove(StockMovementModel, "before_delete", _check_movement_delete)
    _registered = False
