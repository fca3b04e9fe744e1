"""
Module: stock_engines.aging
Responsibility:
    Classify stock on hand by time since its last movement into
    slow-moving and dead stock.  Used for clearance and reorder reviews.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes a
    ``StockLevelSummary``; ``as_of`` is always passed in.

Invariants enforced:
    - Only levels with ``current_stock > 0`` and a last movement date are
      considered; zero or negative stock never appears in either list.
    - Dead: ``as_of - last_movement_date > dead_stock_days``.
      Slow-moving: ``> slow_moving_days`` and not dead.  The two lists
      are disjoint.

Failure modes:
    - ValueError when a threshold is negative or slow_moving_days exceeds
      dead_stock_days.

Usage:
    from stock_engines.aging import analyze_aging

    report = analyze_aging(summary=summary, as_of=clock.now())
    for entry in report.dead_stock:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from stock_kernel.domain.movement import StockKey
from stock_kernel.logging_config import get_logger
from stock_engines.stock_levels import StockLevelSummary
from stock_engines.tracer import traced_engine

logger = get_logger("engines.aging")

DEFAULT_SLOW_MOVING_DAYS = 90
DEFAULT_DEAD_STOCK_DAYS = 180


class AgingClass(str, Enum):
    SLOW_MOVING = "slow_moving"
    DEAD = "dead"


@dataclass(frozen=True)
class AgingEntry:
    """
    One aged (site, book) level.

    ``value`` is ``current_stock * average_cost`` or None when the level
    has no average cost.
    """

    site_id: int
    book_id: int
    current_stock: int
    last_movement_date: datetime
    age_days: int
    average_cost: Decimal | None
    value: Decimal | None
    aging_class: AgingClass

    @property
    def key(self) -> StockKey:
        return StockKey(self.site_id, self.book_id)


@dataclass(frozen=True)
class AgingReport:
    as_of: datetime
    slow_moving_days: int
    dead_stock_days: int
    slow_moving: tuple[AgingEntry, ...]
    dead_stock: tuple[AgingEntry, ...]

    @property
    def total_slow_moving_value(self) -> Decimal:
        return sum((e.value for e in self.slow_moving if e.value is not None), Decimal("0"))

    @property
    def total_dead_stock_value(self) -> Decimal:
        return sum((e.value for e in self.dead_stock if e.value is not None), Decimal("0"))

    @property
    def total_slow_moving_quantity(self) -> int:
        return sum(e.current_stock for e in self.slow_moving)

    @property
    def total_dead_stock_quantity(self) -> int:
        return sum(e.current_stock for e in self.dead_stock)


def _entry_order(entry: AgingEntry):
    # value descending with unknown values last, then key
    if entry.value is None:
        return (1, Decimal("0"), entry.site_id, entry.book_id)
    return (0, -entry.value, entry.site_id, entry.book_id)


@traced_engine(
    "aging", "1.0", fingerprint_fields=("as_of", "slow_moving_days", "dead_stock_days"),
)
def analyze_aging(
    summary: StockLevelSummary,
    as_of: datetime,
    slow_moving_days: int = DEFAULT_SLOW_MOVING_DAYS,
    dead_stock_days: int = DEFAULT_DEAD_STOCK_DAYS,
) -> AgingReport:
    """
    Split positive stock into slow-moving and dead lists.

    Raises:
        ValueError: negative thresholds or slow_moving_days > dead_stock_days.
    """
    if slow_moving_days < 0 or dead_stock_days < 0:
        raise ValueError("Aging thresholds cannot be negative")
    if slow_moving_days > dead_stock_days:
        raise ValueError("slow_moving_days cannot exceed dead_stock_days")

    slow_limit = timedelta(days=slow_moving_days)
    dead_limit = timedelta(days=dead_stock_days)

    slow: list[AgingEntry] = []
    dead: list[AgingEntry] = []
    for level in summary:
        if level.current_stock <= 0 or level.last_movement_date is None:
            continue
        age = as_of - level.last_movement_date
        if age > dead_limit:
            aging_class = AgingClass.DEAD
        elif age > slow_limit:
            aging_class = AgingClass.SLOW_MOVING
        else:
            continue

        entry = AgingEntry(
            site_id=level.site_id,
            book_id=level.book_id,
            current_stock=level.current_stock,
            last_movement_date=level.last_movement_date,
            age_days=age.days,
            average_cost=level.average_cost,
            value=level.stock_value,
            aging_class=aging_class,
        )
        (dead if aging_class is AgingClass.DEAD else slow).append(entry)

    report = AgingReport(
        as_of=as_of,
        slow_moving_days=slow_moving_days,
        dead_stock_days=dead_stock_days,
        slow_moving=tuple(sorted(slow, key=_entry_order)),
        dead_stock=tuple(sorted(dead, key=_entry_order)),
    )

    logger.info("aging_analyzed", extra={
        "as_of": as_of.isoformat(),
        "slow_moving_count": len(report.slow_moving),
        "dead_stock_count": len(report.dead_stock),
    })
    return report
