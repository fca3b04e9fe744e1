"""
SqlLedgerStore -- SQLAlchemy-backed ledger.

Responsibility:
    Persists movement records to the ``stock_movements`` table and reads
    them back through ``MovementSelector``.  Each call runs in its own
    transaction obtained from the session factory.

Architecture position:
    Kernel > Services.  Uses models/, selectors/ and db/.

Invariants enforced:
    - Records are validated before they reach the session.
    - ORM immutability listeners are registered on construction, so a
      flushed row can never be updated or deleted through the ORM.
    - The database sequence assigns identities.

Failure modes:
    - ``MovementValidationError`` / ``MovementAlreadyAppendedError`` before
      any SQL is issued.
    - SQLAlchemy errors propagate after the transaction is rolled back.
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.movement import MovementFilter, MovementRecord
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_movement import StockMovementModel
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.services.ledger_store import LedgerStore, check_appendable

logger = get_logger("services.sql_ledger_store")


class SqlLedgerStore(LedgerStore):
    """Ledger stored in a relational database."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        register_immutability_listeners()

    def append(self, record: MovementRecord) -> int:
        check_appendable(record)
        with session_scope(self._session_factory) as session:
            row = StockMovementModel.from_dto(record)
            session.add(row)
            session.flush()
            movement_id = row.id

        logger.info("movement_appended", extra={
            "movement_id": movement_id,
            "movement_type": record.movement_type.value,
            "site_id": record.site_id,
            "book_id": record.book_id,
            "quantity": record.quantity,
        })
        return movement_id

    def append_many(self, records) -> list[int]:
        """Append all records in one transaction; any rejection appends none."""
        records = [check_appendable(r) for r in records]
        with session_scope(self._session_factory) as session:
            rows = [StockMovementModel.from_dto(r) for r in records]
            session.add_all(rows)
            session.flush()
            ids = [row.id for row in rows]
        logger.info("movements_appended", extra={"count": len(ids)})
        return ids

    def query(
        self,
        company_id: int,
        filters: MovementFilter | None = None,
    ) -> tuple[MovementRecord, ...]:
        with session_scope(self._session_factory) as session:
            return MovementSelector(session).query(company_id, filters)
