"""
Module: stock_engines.valuation
Responsibility:
    Weighted-average valuation of derived stock: ``current_stock *
    average_cost`` per (site, book), with a per-book rollup and totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes a
    ``StockLevelSummary``; never reads movements directly.

Invariants enforced:
    - Levels with ``current_stock <= 0`` or no ``average_cost`` contribute
      no line and nothing to the totals; their keys are listed in
      ``excluded`` so the omission is visible.
    - Decimal-only arithmetic.

Failure modes:
    - None.  An empty summary yields an empty report with zero totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from stock_kernel.domain.movement import StockKey
from stock_kernel.logging_config import get_logger
from stock_engines.stock_levels import StockLevelSummary
from stock_engines.tracer import traced_engine

logger = get_logger("engines.valuation")


@dataclass(frozen=True)
class ValuationLine:
    site_id: int
    book_id: int
    quantity: int
    average_cost: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class BookValuation:
    """Valuation lines of one book summed across sites."""

    book_id: int
    quantity: int
    total_value: Decimal
    site_count: int


@dataclass(frozen=True)
class ValuationReport:
    """
    Stock valuation as of the summary's cutoff.

    Guarantees:
        - ``total_value`` equals the sum of ``lines[i].total_value``.
        - ``by_book`` totals equal the line totals.
    """

    as_of: datetime
    site_id: int | None
    lines: tuple[ValuationLine, ...]
    by_book: tuple[BookValuation, ...]
    excluded: tuple[StockKey, ...]

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_value(self) -> Decimal:
        return sum((line.total_value for line in self.lines), Decimal("0"))

    @property
    def book_count(self) -> int:
        return len(self.by_book)


@traced_engine("valuation", "1.0", fingerprint_fields=("site_id",))
def value_stock(
    summary: StockLevelSummary,
    site_id: int | None = None,
) -> ValuationReport:
    """Value every level of ``summary``, optionally restricted to one site."""
    lines: list[ValuationLine] = []
    excluded: list[StockKey] = []

    for level in summary:
        if site_id is not None and level.site_id != site_id:
            continue
        if level.current_stock <= 0 or level.average_cost is None:
            excluded.append(level.key)
            continue
        lines.append(ValuationLine(
            site_id=level.site_id,
            book_id=level.book_id,
            quantity=level.current_stock,
            average_cost=level.average_cost,
            total_value=level.average_cost * level.current_stock,
        ))

    books: dict[int, list[ValuationLine]] = {}
    for line in lines:
        books.setdefault(line.book_id, []).append(line)
    by_book = tuple(
        BookValuation(
            book_id=book_id,
            quantity=sum(line.quantity for line in book_lines),
            total_value=sum((line.total_value for line in book_lines), Decimal("0")),
            site_count=len(book_lines),
        )
        for book_id, book_lines in sorted(books.items())
    )

    report = ValuationReport(
        as_of=summary.as_of,
        site_id=site_id,
        lines=tuple(lines),
        by_book=by_book,
        excluded=tuple(excluded),
    )

    logger.info("stock_valued", extra={
        "site_id": site_id,
        "line_count": len(report.lines),
        "excluded_count": len(report.excluded),
        "total_value": str(report.total_value),
    })
    return report
