"""
Module: stock_engines.abc
Responsibility:
    ABC value analysis: rank books by the value of their movements in a
    period and assign tiers A (top 80 % of value), B (next 15 %) and C.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only movements inside the inclusive period with a ``total_cost``
      contribute; a book's value is the sum of ``|total_cost|``.
    - Ranking is by value descending.  Equal values keep the order in
      which the books first appear in the input (stable sort).
    - Categories are monotonic along the ranking (A before B before C).
    - A zero grand total ranks every book as C at 0 %.

Failure modes:
    - ValueError for an inverted period or thresholds outside
      ``0 <= a_threshold <= b_threshold <= 100``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from stock_kernel.domain.movement import MovementRecord
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.abc")

DEFAULT_A_THRESHOLD = Decimal("80")
DEFAULT_B_THRESHOLD = Decimal("95")

_HUNDRED = Decimal("100")


class ABCCategory(str, Enum):
    A = "A"
    B = "B"
    C = "C"


@dataclass(frozen=True)
class ABCAssignment:
    """Tier of one book for the analysed period."""

    book_id: int
    rank: int
    total_value: Decimal
    total_quantity: int
    movement_count: int
    value_percentage: Decimal
    cumulative_percentage: Decimal
    category: ABCCategory


@dataclass(frozen=True)
class ABCCategorySummary:
    category: ABCCategory
    item_count: int
    total_value: Decimal
    value_percentage: Decimal


@dataclass(frozen=True)
class ABCReport:
    """
    Ranked ABC assignments plus per-category totals.

    Guarantees:
        - ``assignments`` ordered by rank (1-based).
        - ``categories`` always holds A, B and C, in that order.
    """

    period_start: datetime
    period_end: datetime
    a_threshold: Decimal
    b_threshold: Decimal
    assignments: tuple[ABCAssignment, ...]
    categories: tuple[ABCCategorySummary, ...]
    total_value: Decimal

    def category_of(self, book_id: int) -> ABCCategory | None:
        for assignment in self.assignments:
            if assignment.book_id == book_id:
                return assignment.category
        return None

    def summary_for(self, category: ABCCategory) -> ABCCategorySummary:
        return next(c for c in self.categories if c.category == category)


class _BookTotals:
    __slots__ = ("value", "quantity", "count")

    def __init__(self):
        self.value = Decimal("0")
        self.quantity = 0
        self.count = 0


def _categorize(
    cumulative: Decimal,
    a_threshold: Decimal,
    b_threshold: Decimal,
) -> ABCCategory:
    if cumulative <= a_threshold:
        return ABCCategory.A
    if cumulative <= b_threshold:
        return ABCCategory.B
    return ABCCategory.C


@traced_engine(
    "abc",
    "1.0",
    fingerprint_fields=("period_start", "period_end", "a_threshold", "b_threshold"),
)
def classify_abc(
    movements: Iterable[MovementRecord],
    period_start: datetime,
    period_end: datetime,
    a_threshold: Decimal | int = DEFAULT_A_THRESHOLD,
    b_threshold: Decimal | int = DEFAULT_B_THRESHOLD,
) -> ABCReport:
    """
    Classify books by movement value in ``[period_start, period_end]``.

    Raises:
        ValueError: inverted period or inconsistent thresholds.
    """
    if period_start > period_end:
        raise ValueError("period_start must not be after period_end")
    a_threshold = Decimal(a_threshold)
    b_threshold = Decimal(b_threshold)
    if not (0 <= a_threshold <= b_threshold <= _HUNDRED):
        raise ValueError(
            "ABC thresholds must satisfy 0 <= a_threshold <= b_threshold <= 100"
        )

    # dicts preserve insertion order, which is first appearance in the input
    totals: dict[int, _BookTotals] = {}
    for record in movements:
        if not (period_start <= record.timestamp <= period_end):
            continue
        total_cost = record.total_cost
        if total_cost is None:
            continue
        book = totals.get(record.book_id)
        if book is None:
            book = _BookTotals()
            totals[record.book_id] = book
        book.value += abs(total_cost)
        book.quantity += abs(record.quantity)
        book.count += 1

    ranked = sorted(totals.items(), key=lambda item: item[1].value, reverse=True)
    grand_total = sum((book.value for _, book in ranked), Decimal("0"))

    assignments: list[ABCAssignment] = []
    cumulative = Decimal("0")
    for rank, (book_id, book) in enumerate(ranked, start=1):
        if grand_total == 0:
            percentage = Decimal("0")
            category = ABCCategory.C
        else:
            percentage = book.value / grand_total * _HUNDRED
            cumulative += percentage
            category = _categorize(cumulative, a_threshold, b_threshold)
        assignments.append(ABCAssignment(
            book_id=book_id,
            rank=rank,
            total_value=book.value,
            total_quantity=book.quantity,
            movement_count=book.count,
            value_percentage=percentage,
            cumulative_percentage=cumulative,
            category=category,
        ))

    categories = []
    for category in ABCCategory:
        members = [a for a in assignments if a.category == category]
        value = sum((a.total_value for a in members), Decimal("0"))
        categories.append(ABCCategorySummary(
            category=category,
            item_count=len(members),
            total_value=value,
            value_percentage=(value / grand_total * _HUNDRED) if grand_total else Decimal("0"),
        ))

    report = ABCReport(
        period_start=period_start,
        period_end=period_end,
        a_threshold=a_threshold,
        b_threshold=b_threshold,
        assignments=tuple(assignments),
        categories=tuple(categories),
        total_value=grand_total,
    )

    logger.info("abc_classified", extra={
        "book_count": len(assignments),
        "total_value": str(grand_total),
        "a_count": categories[0].item_count,
        "b_count": categories[1].item_count,
        "c_count": categories[2].item_count,
    })
    return report
