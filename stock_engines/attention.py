"""
Module: stock_engines.attention
Responsibility:
    Rule-based detection of recent movements that deserve a human look:
    high value, large adjustments, high quantities, uncosted transfers and
    unreferenced issues.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Rules are evaluated in a fixed precedence order; a movement's
      priority is the rank of the first rule it matches (1 = highest)
      while every matching reason is still reported.
    - Movements matching no rule are dropped.
    - Output is sorted ascending by priority and keeps input order within
      a priority (stable sort).

Failure modes:
    - ValueError for negative thresholds or lookback.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.attention")


class AttentionReason(str, Enum):
    """Attention rules in precedence order."""

    HIGH_VALUE = "High value movement"
    LARGE_ADJUSTMENT = "Large stock adjustment"
    HIGH_QUANTITY = "High quantity movement"
    TRANSFER_WITHOUT_COST = "Transfer without cost information"
    STOCK_OUT_WITHOUT_REFERENCE = "Stock out without reference"

    @property
    def priority(self) -> int:
        return list(AttentionReason).index(self) + 1


@dataclass(frozen=True)
class AttentionItem:
    movement: MovementRecord
    reasons: tuple[AttentionReason, ...]

    @property
    def priority(self) -> int:
        return self.reasons[0].priority

    @property
    def reason_text(self) -> str:
        return "; ".join(r.value for r in self.reasons)


@dataclass(frozen=True)
class AttentionReport:
    as_of: datetime
    lookback_start: datetime
    high_value_threshold: Decimal
    high_quantity_threshold: int
    large_adjustment_threshold: int
    items: tuple[AttentionItem, ...]
    scanned_count: int

    def __len__(self) -> int:
        return len(self.items)

    def count_by_reason(self) -> dict[AttentionReason, int]:
        counts = {reason: 0 for reason in AttentionReason}
        for item in self.items:
            for reason in item.reasons:
                counts[reason] += 1
        return counts

    def with_priority(self, priority: int) -> tuple[AttentionItem, ...]:
        return tuple(i for i in self.items if i.priority == priority)


class AttentionFlagger:
    """
    Flags recent movements against configurable thresholds.

    Contract:
        Pure -- ``flag`` reads its arguments only.
    Guarantees:
        - Comparisons are strict (``>``): a movement exactly at a
          threshold is not flagged by that rule.
    """

    def __init__(
        self,
        high_value_threshold: Decimal | int = Decimal("1000"),
        high_quantity_threshold: int = 100,
        large_adjustment_threshold: int = 10,
        lookback_days: int = 30,
    ):
        problems = []
        if Decimal(high_value_threshold) < 0:
            problems.append("high_value_threshold")
        if high_quantity_threshold < 0:
            problems.append("high_quantity_threshold")
        if large_adjustment_threshold < 0:
            problems.append("large_adjustment_threshold")
        if lookback_days < 0:
            problems.append("lookback_days")
        if problems:
            raise ValueError(f"Attention settings cannot be negative: {', '.join(problems)}")

        self.high_value_threshold = Decimal(high_value_threshold)
        self.high_quantity_threshold = high_quantity_threshold
        self.large_adjustment_threshold = large_adjustment_threshold
        self.lookback_days = lookback_days

    def reasons_for(self, record: MovementRecord) -> tuple[AttentionReason, ...]:
        """Every rule ``record`` matches, in precedence order."""
        reasons: list[AttentionReason] = []
        total_cost = record.total_cost
        if total_cost is not None and total_cost > self.high_value_threshold:
            reasons.append(AttentionReason.HIGH_VALUE)
        if record.is_adjustment and abs(record.quantity) > self.large_adjustment_threshold:
            reasons.append(AttentionReason.LARGE_ADJUSTMENT)
        if abs(record.quantity) > self.high_quantity_threshold:
            reasons.append(AttentionReason.HIGH_QUANTITY)
        if record.is_transfer and record.unit_cost is None:
            reasons.append(AttentionReason.TRANSFER_WITHOUT_COST)
        if record.movement_type == MovementType.STOCK_OUT and not record.has_reference:
            reasons.append(AttentionReason.STOCK_OUT_WITHOUT_REFERENCE)
        return tuple(reasons)

    @traced_engine("attention", "1.0", fingerprint_fields=("as_of",))
    def flag(
        self,
        movements: Iterable[MovementRecord],
        as_of: datetime,
    ) -> AttentionReport:
        """
        Flag movements with ``timestamp >= as_of - lookback_days``.

        The window start keeps the time of day of ``as_of``; it is not
        rounded down to midnight.  There is no upper bound.
        """
        lookback_start = as_of - timedelta(days=self.lookback_days)

        items: list[AttentionItem] = []
        scanned = 0
        for record in movements:
            if record.timestamp < lookback_start:
                continue
            scanned += 1
            reasons = self.reasons_for(record)
            if reasons:
                items.append(AttentionItem(movement=record, reasons=reasons))

        items.sort(key=lambda item: item.priority)

        report = AttentionReport(
            as_of=as_of,
            lookback_start=lookback_start,
            high_value_threshold=self.high_value_threshold,
            high_quantity_threshold=self.high_quantity_threshold,
            large_adjustment_threshold=self.large_adjustment_threshold,
            items=tuple(items),
            scanned_count=scanned,
        )

        logger.info("attention_flagged", extra={
            "as_of": as_of.isoformat(),
            "scanned_count": scanned,
            "flagged_count": len(items),
        })
        return report
