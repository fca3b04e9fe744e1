"""
Movement -- Immutable stock ledger entries.

Responsibility:
    Defines the closed vocabulary of movement types and the frozen
    ``MovementRecord`` value object that every ledger entry is stored as.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Construction goes through
    ``stock_kernel.domain.movement_factory``; validation lives in
    ``stock_kernel.domain.movement_validator``.

Invariants enforced:
    - Records are frozen; there is no update path.  Corrections are new
      ADJUSTMENT records referencing the original.
    - Quantity is a non-negative magnitude for every type except ADJUSTMENT,
      whose sign is meaningful.  Direction comes from ``movement_type``.
    - ``total_cost`` is derived, never stored on the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import NamedTuple


class MovementType(str, Enum):
    """Kind of inventory event."""

    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    ADJUSTMENT = "adjustment"

    @classmethod
    def parse(cls, raw: MovementType | str) -> MovementType:
        """
        Parse an enum member, its value, or a display label such as
        ``"Stock In"`` or ``"transfer-out"``.

        Raises:
            ValueError: If ``raw`` names no movement type.
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"Invalid movement type: {raw!r}")
        normalized = raw.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid movement type: {raw!r}") from None

    @property
    def is_transfer(self) -> bool:
        return self in (MovementType.TRANSFER_IN, MovementType.TRANSFER_OUT)


INBOUND_TYPES = frozenset({MovementType.STOCK_IN, MovementType.TRANSFER_IN})
OUTBOUND_TYPES = frozenset({MovementType.STOCK_OUT, MovementType.TRANSFER_OUT})


class StockKey(NamedTuple):
    """Grouping key for derived stock: one book at one site."""

    site_id: int
    book_id: int


@dataclass(frozen=True)
class MovementRecord:
    """
    One immutable inventory transaction.

    ``id`` is assigned by the ledger store on append and is ``None`` before
    that.  Ids are a monotonic sequence, so a higher id means a later
    append.
    """

    company_id: int
    site_id: int
    book_id: int
    movement_type: MovementType
    quantity: int
    timestamp: datetime
    unit_cost: Decimal | None = None
    reference_type: str | None = None
    reference_id: int | None = None
    from_site_id: int | None = None
    to_site_id: int | None = None
    created_by: int | None = None
    description: str | None = None
    id: int | None = None

    @property
    def key(self) -> StockKey:
        return StockKey(self.site_id, self.book_id)

    @property
    def total_cost(self) -> Decimal | None:
        """``quantity * unit_cost``; ``None`` when no unit cost is recorded."""
        if self.unit_cost is None:
            return None
        return self.unit_cost * self.quantity

    @property
    def is_positive(self) -> bool:
        """True if this movement increases stock."""
        if self.movement_type in INBOUND_TYPES:
            return True
        return self.movement_type == MovementType.ADJUSTMENT and self.quantity > 0

    @property
    def is_negative(self) -> bool:
        """True if this movement decreases stock."""
        if self.movement_type in OUTBOUND_TYPES:
            return True
        return self.movement_type == MovementType.ADJUSTMENT and self.quantity < 0

    @property
    def is_transfer(self) -> bool:
        return self.movement_type in (MovementType.TRANSFER_IN, MovementType.TRANSFER_OUT)

    @property
    def is_adjustment(self) -> bool:
        return self.movement_type == MovementType.ADJUSTMENT

    @property
    def has_reference(self) -> bool:
        return bool(self.reference_type)

    @property
    def inventory_impact(self) -> int:
        """Signed effect on stock at ``site_id``."""
        if self.is_positive:
            return abs(self.quantity)
        if self.is_negative:
            return -abs(self.quantity)
        return 0

    def recency_key(self) -> tuple[datetime, int]:
        """
        Ordering used to pick the latest movement.

        Equal timestamps fall back to the ledger id; records not yet
        appended rank below any appended record.
        """
        return (self.timestamp, self.id if self.id is not None else -1)


@dataclass(frozen=True)
class MovementFilter:
    """Optional restrictions for ledger queries.  Date bounds are inclusive."""

    site_id: int | None = None
    book_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("MovementFilter start must not be after end")

    def matches(self, record: MovementRecord) -> bool:
        if self.site_id is not None and record.site_id != self.site_id:
            return False
        if self.book_id is not None and record.book_id != self.book_id:
            return False
        if self.start is not None and record.timestamp < self.start:
            return False
        if self.end is not None and record.timestamp > self.end:
            return False
        return True
