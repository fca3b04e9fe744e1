"""
Module: stock_kernel.selectors.movement_selector
Responsibility: Read-only query access to ``stock_movements`` rows, returned
    as frozen ``MovementRecord`` DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Results are ordered by ledger id (append order).
    - Date bounds are inclusive and compared in UTC, the storage timezone.

Failure modes:
    - Returns an empty tuple when nothing matches (never raises on absence).
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.movement import MovementFilter, MovementRecord
from stock_kernel.models.stock_movement import StockMovementModel
from stock_kernel.selectors.base import BaseSelector


def _utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


class MovementSelector(BaseSelector[StockMovementModel]):
    """Selector for ledger movements of one company."""

    def __init__(self, session: Session):
        super().__init__(session)

    def query(
        self,
        company_id: int,
        filters: MovementFilter | None = None,
    ) -> tuple[MovementRecord, ...]:
        stmt = select(StockMovementModel).where(
            StockMovementModel.company_id == company_id,
        )
        if filters is not None:
            if filters.site_id is not None:
                stmt = stmt.where(StockMovementModel.site_id == filters.site_id)
            if filters.book_id is not None:
                stmt = stmt.where(StockMovementModel.book_id == filters.book_id)
            if filters.start is not None:
                stmt = stmt.where(StockMovementModel.movement_date >= _utc(filters.start))
            if filters.end is not None:
                stmt = stmt.where(StockMovementModel.movement_date <= _utc(filters.end))
        stmt = stmt.order_by(StockMovementModel.id)

        return tuple(row.to_dto() for row in self.session.scalars(stmt))

    def get(self, movement_id: int) -> MovementRecord | None:
        row = self.session.get(StockMovementModel, movement_id)
        return row.to_dto() if row is not None else None

    def count(self, company_id: int) -> int:
        stmt = select(func.count()).select_from(StockMovementModel).where(
            StockMovementModel.company_id == company_id,
        )
        return self.session.scalar(stmt) or 0
