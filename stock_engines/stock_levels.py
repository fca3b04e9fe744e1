"""
Module: stock_engines.stock_levels
Responsibility:
    Replay ledger movements into derived stock per (site, book).  Stock
    is never stored; every level returned here equals a full replay of the
    movements it was given.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain and stock_kernel.logging_config.

Invariants enforced:
    - Purity: no clock access; the cutoff ``as_of`` is always passed in.
    - Conservation: ``current_stock == stock_in - stock_out`` for every key.
    - Order independence: sums are commutative and the last movement is
      chosen by ``MovementRecord.recency_key`` (timestamp, then highest id),
      so any permutation of the input yields the same summary.
    - Missing unit costs are excluded from the average, never counted as 0.
    - Negative stock is reported as-is; the engine does not clamp.

Failure modes:
    - None for well-formed records: an empty input yields an empty summary.

Usage:
    from stock_engines.stock_levels import aggregate_stock_levels

    summary = aggregate_stock_levels(movements=records, as_of=clock.now())
    level = summary.lookup(site_id=1, book_id=7)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from stock_kernel.domain.movement import MovementRecord, MovementType, StockKey
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.stock_levels")


@dataclass(frozen=True)
class StockLevel:
    """
    Derived stock of one book at one site.

    Contract:
        Frozen snapshot produced by the aggregator; never persisted.
    Guarantees:
        - ``current_stock == stock_in - stock_out``.
        - ``average_cost`` is None when no positive movement had a cost.
    """

    site_id: int
    book_id: int
    stock_in: int
    stock_out: int
    last_movement_date: datetime | None
    last_movement_type: MovementType | None
    last_movement_id: int | None
    average_cost: Decimal | None
    movement_count: int = 0
    costed_receipt_count: int = 0

    @property
    def key(self) -> StockKey:
        return StockKey(self.site_id, self.book_id)

    @property
    def current_stock(self) -> int:
        return self.stock_in - self.stock_out

    @property
    def stock_value(self) -> Decimal | None:
        """``current_stock * average_cost``; None without an average cost."""
        if self.average_cost is None:
            return None
        return self.average_cost * self.current_stock


class _RunningLevel:
    __slots__ = (
        "stock_in", "stock_out", "cost_sum", "cost_count",
        "movement_count", "last",
    )

    def __init__(self):
        self.stock_in = 0
        self.stock_out = 0
        self.cost_sum = Decimal("0")
        self.cost_count = 0
        self.movement_count = 0
        self.last: MovementRecord | None = None


class StockLevelAccumulator:
    """
    Streaming fold over movements.

    Contract:
        ``add`` consumes one record at a time, so arbitrarily long
        histories (including single-pass generators) are aggregated without
        materialising them.  Records after ``as_of`` are ignored.
    Non-goals:
        - Not thread-safe; one accumulator per aggregation.
    """

    def __init__(self, as_of: datetime):
        self.as_of = as_of
        self._running: dict[StockKey, _RunningLevel] = {}
        self.skipped_after_cutoff = 0

    def add(self, record: MovementRecord) -> None:
        if record.timestamp > self.as_of:
            self.skipped_after_cutoff += 1
            return

        running = self._running.get(record.key)
        if running is None:
            running = _RunningLevel()
            self._running[record.key] = running

        running.movement_count += 1
        magnitude = abs(record.quantity)
        if record.is_positive:
            running.stock_in += magnitude
            if record.unit_cost is not None:
                running.cost_sum += record.unit_cost
                running.cost_count += 1
        elif record.is_negative:
            running.stock_out += magnitude

        if running.last is None or record.recency_key() > running.last.recency_key():
            running.last = record

    def extend(self, records: Iterable[MovementRecord]) -> None:
        for record in records:
            self.add(record)

    def result(self) -> StockLevelSummary:
        levels: dict[StockKey, StockLevel] = {}
        for key in sorted(self._running):
            running = self._running[key]
            last = running.last
            average_cost = None
            if running.cost_count:
                average_cost = running.cost_sum / running.cost_count
            levels[key] = StockLevel(
                site_id=key.site_id,
                book_id=key.book_id,
                stock_in=running.stock_in,
                stock_out=running.stock_out,
                last_movement_date=last.timestamp if last else None,
                last_movement_type=last.movement_type if last else None,
                last_movement_id=last.id if last else None,
                average_cost=average_cost,
                movement_count=running.movement_count,
                costed_receipt_count=running.cost_count,
            )
        return StockLevelSummary(as_of=self.as_of, levels=levels)


@dataclass(frozen=True)
class StockLevelSummary:
    """
    All derived stock levels as of one cutoff.

    Guarantees:
        - ``levels`` is ordered by (site_id, book_id).
    """

    as_of: datetime
    levels: dict[StockKey, StockLevel] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.levels)

    def __iter__(self):
        return iter(self.levels.values())

    def lookup(self, site_id: int, book_id: int) -> StockLevel | None:
        return self.levels.get(StockKey(site_id, book_id))

    def for_site(self, site_id: int) -> tuple[StockLevel, ...]:
        return tuple(level for level in self.levels.values() if level.site_id == site_id)

    def for_book(self, book_id: int) -> tuple[StockLevel, ...]:
        return tuple(level for level in self.levels.values() if level.book_id == book_id)

    @property
    def total_stock_in(self) -> int:
        return sum(level.stock_in for level in self.levels.values())

    @property
    def total_stock_out(self) -> int:
        return sum(level.stock_out for level in self.levels.values())

    @property
    def total_current_stock(self) -> int:
        return sum(level.current_stock for level in self.levels.values())


@traced_engine("stock_levels", "1.0", fingerprint_fields=("as_of",))
def aggregate_stock_levels(
    movements: Iterable[MovementRecord],
    as_of: datetime,
) -> StockLevelSummary:
    """
    Replay ``movements`` into a ``StockLevelSummary``.

    Args:
        movements: Any iterable of records; consumed exactly once.
        as_of: Cutoff; records with ``timestamp > as_of`` are ignored.
    """
    accumulator = StockLevelAccumulator(as_of)
    accumulator.extend(movements)
    summary = accumulator.result()

    logger.info("stock_levels_aggregated", extra={
        "as_of": as_of.isoformat(),
        "level_count": len(summary),
        "skipped_after_cutoff": accumulator.skipped_after_cutoff,
        "total_current_stock": summary.total_current_stock,
    })
    return summary
