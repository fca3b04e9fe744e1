"""
LedgerStore -- append-only storage of movement records.

Responsibility:
    Defines the storage contract every ledger backend honours and ships the
    in-memory backend used by tests, the CLI and embedded callers.

Architecture position:
    Kernel > Services -- imperative shell.  Engines never see a store; the
    service layer reads one snapshot from it and hands that to the engines.

Invariants enforced:
    - Only records passing ``validate_movement`` are ever appended.
    - Identities are a strictly increasing sequence assigned on append.
    - There is no update or delete path.
    - ``query`` returns records ordered by id.

Failure modes:
    - ``MovementValidationError`` when the record breaks an ingestion rule.
    - ``MovementAlreadyAppendedError`` when the record already has an id.
"""

from __future__ import annotations

import dataclasses
import threading
from abc import ABC, abstractmethod

from stock_kernel.domain.movement import MovementFilter, MovementRecord
from stock_kernel.domain.movement_validator import ensure_valid
from stock_kernel.exceptions import MovementAlreadyAppendedError
from stock_kernel.logging_config import get_logger

logger = get_logger("services.ledger_store")


class LedgerStore(ABC):
    """
    Append-only movement log.

    Contract:
        ``append`` validates, assigns the next identity and returns it.
        ``query`` returns a finite tuple that callers may iterate any
        number of times.

    Non-goals:
        - No update/delete; corrections are new ADJUSTMENT records.
    """

    @abstractmethod
    def append(self, record: MovementRecord) -> int:
        ...

    @abstractmethod
    def query(
        self,
        company_id: int,
        filters: MovementFilter | None = None,
    ) -> tuple[MovementRecord, ...]:
        ...

    def append_many(self, records) -> list[int]:
        """Append records one by one, stopping at the first rejection."""
        return [self.append(record) for record in records]


def check_appendable(record: MovementRecord) -> MovementRecord:
    """Shared pre-append checks for every backend."""
    if record.id is not None:
        logger.warning("movement_already_appended", extra={"movement_id": record.id})
        raise MovementAlreadyAppendedError(record.id)
    return ensure_valid(record)


class InMemoryLedgerStore(LedgerStore):
    """
    Thread-safe list-backed ledger.

    Guarantees:
        - Appends are serialised by a lock, so ids are gap-free from 1.
        - ``query`` copies under the lock; a concurrent append is either
          fully visible or not visible at all.
    """

    def __init__(self):
        self._records: list[MovementRecord] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def append(self, record: MovementRecord) -> int:
        check_appendable(record)
        with self._lock:
            movement_id = self._next_id
            self._records.append(dataclasses.replace(record, id=movement_id))
            self._next_id += 1

        logger.info("movement_appended", extra={
            "movement_id": movement_id,
            "movement_type": record.movement_type.value,
            "site_id": record.site_id,
            "book_id": record.book_id,
            "quantity": record.quantity,
        })
        return movement_id

    def query(
        self,
        company_id: int,
        filters: MovementFilter | None = None,
    ) -> tuple[MovementRecord, ...]:
        with self._lock:
            records = tuple(self._records)
        return tuple(
            r for r in records
            if r.company_id == company_id and (filters is None or filters.matches(r))
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
