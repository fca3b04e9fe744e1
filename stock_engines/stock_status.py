"""
Module: stock_engines.stock_status
Responsibility:
    Classify derived stock against minimum / reorder / maximum thresholds
    and compute reorder quantities.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``0 <= minimum_stock <= reorder_level <= maximum_stock``.
    - Status precedence: OUT_OF_STOCK, LOW_STOCK, REORDER_REQUIRED,
      OVERSTOCKED, NORMAL.

Failure modes:
    - ValueError from ``StockThresholds`` listing every problem.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from stock_kernel.domain.movement import StockKey
from stock_kernel.logging_config import get_logger
from stock_engines.stock_levels import StockLevelSummary
from stock_engines.tracer import traced_engine

logger = get_logger("engines.stock_status")


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    REORDER_REQUIRED = "reorder_required"
    OVERSTOCKED = "overstocked"
    NORMAL = "normal"


@dataclass(frozen=True)
class StockThresholds:
    """Per-level stock policy."""

    minimum_stock: int = 5
    reorder_level: int = 10
    maximum_stock: int = 100

    def __post_init__(self) -> None:
        problems = []
        for name in ("minimum_stock", "reorder_level", "maximum_stock"):
            if getattr(self, name) < 0:
                problems.append(f"{name} cannot be negative")
        if self.minimum_stock > self.reorder_level:
            problems.append("minimum_stock cannot exceed reorder_level")
        if self.reorder_level > self.maximum_stock:
            problems.append("reorder_level cannot exceed maximum_stock")
        if problems:
            raise ValueError("; ".join(problems))


def classify_stock_status(current_stock: int, thresholds: StockThresholds) -> StockStatus:
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= thresholds.minimum_stock:
        return StockStatus.LOW_STOCK
    if current_stock <= thresholds.reorder_level:
        return StockStatus.REORDER_REQUIRED
    if current_stock >= thresholds.maximum_stock:
        return StockStatus.OVERSTOCKED
    return StockStatus.NORMAL


def reorder_quantity(current_stock: int, thresholds: StockThresholds) -> int:
    return max(0, thresholds.reorder_level - current_stock)


@dataclass(frozen=True)
class StockStatusLine:
    site_id: int
    book_id: int
    current_stock: int
    status: StockStatus
    reorder_quantity: int
    thresholds: StockThresholds


@dataclass(frozen=True)
class StockStatusReport:
    as_of: datetime
    lines: tuple[StockStatusLine, ...]

    def count_by_status(self) -> dict[StockStatus, int]:
        counts = {status: 0 for status in StockStatus}
        for line in self.lines:
            counts[line.status] += 1
        return counts

    def needing_reorder(self) -> tuple[StockStatusLine, ...]:
        return tuple(line for line in self.lines if line.reorder_quantity > 0)


@traced_engine("stock_status", "1.0")
def stock_status_report(
    summary: StockLevelSummary,
    thresholds: StockThresholds | None = None,
    overrides: Mapping[StockKey, StockThresholds] | None = None,
) -> StockStatusReport:
    """
    Status of every level in ``summary``.

    ``overrides`` replaces the default thresholds for specific
    (site, book) keys.
    """
    default = thresholds or StockThresholds()
    overrides = overrides or {}

    lines = []
    for level in summary:
        policy = overrides.get(level.key, default)
        lines.append(StockStatusLine(
            site_id=level.site_id,
            book_id=level.book_id,
            current_stock=level.current_stock,
            status=classify_stock_status(level.current_stock, policy),
            reorder_quantity=reorder_quantity(level.current_stock, policy),
            thresholds=policy,
        ))

    report = StockStatusReport(as_of=summary.as_of, lines=tuple(lines))
    logger.info("stock_status_reported", extra={
        "line_count": len(lines),
        "reorder_count": len(report.needing_reorder()),
    })
    return report
