"""
Module: stock_engines.activity
Responsibility:
    Movement activity summaries: period totals broken down by type, site,
    day and book, and the per-(book, site) movement summary shown on a
    stock card.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Period bounds are inclusive.
    - Quantities are summed as magnitudes; values sum ``|total_cost|`` and
      treat a missing cost as zero.
    - Calendar days are UTC dates.

Failure modes:
    - ValueError for an inverted period or a negative ``recent`` count.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.activity")

TOP_BOOK_LIMIT = 10
DEFAULT_RECENT_COUNT = 5


@dataclass(frozen=True)
class ActivityBucket:
    """Count, quantity and value of the movements sharing one key."""

    key: object
    movement_count: int
    total_quantity: int
    total_value: Decimal


@dataclass(frozen=True)
class ActivityReport:
    start: datetime
    end: datetime
    movement_count: int
    total_quantity: int
    total_value: Decimal
    by_type: tuple[ActivityBucket, ...]
    by_site: tuple[ActivityBucket, ...]
    daily: tuple[ActivityBucket, ...]
    top_books: tuple[ActivityBucket, ...]


@dataclass(frozen=True)
class BookSiteSummary:
    """Movement history of one book at one site."""

    book_id: int
    site_id: int
    movement_count: int
    positive_count: int
    positive_quantity: int
    positive_value: Decimal
    negative_count: int
    negative_quantity: int
    negative_value: Decimal
    last_movement_date: datetime | None
    average_unit_cost: Decimal | None
    recent_movements: tuple[MovementRecord, ...]

    @property
    def net_quantity(self) -> int:
        return self.positive_quantity - self.negative_quantity


class _Tally:
    __slots__ = ("count", "quantity", "value")

    def __init__(self):
        self.count = 0
        self.quantity = 0
        self.value = Decimal("0")

    def add(self, record: MovementRecord) -> None:
        self.count += 1
        self.quantity += abs(record.quantity)
        if record.total_cost is not None:
            self.value += abs(record.total_cost)

    def bucket(self, key) -> ActivityBucket:
        return ActivityBucket(key, self.count, self.quantity, self.value)


def _day(record: MovementRecord) -> date:
    return record.timestamp.astimezone(UTC).date()


@traced_engine("activity", "1.0", fingerprint_fields=("start", "end"))
def summarize_activity(
    movements: Iterable[MovementRecord],
    start: datetime,
    end: datetime,
) -> ActivityReport:
    """Totals and breakdowns of movements in ``[start, end]``."""
    if start > end:
        raise ValueError("start must not be after end")

    overall = _Tally()
    by_type: dict[MovementType, _Tally] = {}
    by_site: dict[int, _Tally] = {}
    daily: dict[date, _Tally] = {}
    by_book: dict[int, _Tally] = {}

    for record in movements:
        if not (start <= record.timestamp <= end):
            continue
        overall.add(record)
        by_type.setdefault(record.movement_type, _Tally()).add(record)
        by_site.setdefault(record.site_id, _Tally()).add(record)
        daily.setdefault(_day(record), _Tally()).add(record)
        by_book.setdefault(record.book_id, _Tally()).add(record)

    type_order = list(MovementType)
    books = sorted(by_book.items(), key=lambda kv: (-kv[1].quantity, kv[0]))

    report = ActivityReport(
        start=start,
        end=end,
        movement_count=overall.count,
        total_quantity=overall.quantity,
        total_value=overall.value,
        by_type=tuple(
            by_type[t].bucket(t)
            for t in sorted(by_type, key=type_order.index)
        ),
        by_site=tuple(by_site[s].bucket(s) for s in sorted(by_site)),
        daily=tuple(daily[d].bucket(d) for d in sorted(daily)),
        top_books=tuple(t.bucket(b) for b, t in books[:TOP_BOOK_LIMIT]),
    )

    logger.info("activity_summarized", extra={
        "movement_count": report.movement_count,
        "day_count": len(report.daily),
    })
    return report


@traced_engine("book_site_summary", "1.0", fingerprint_fields=("book_id", "site_id", "recent"))
def summarize_book_site(
    movements: Iterable[MovementRecord],
    book_id: int,
    site_id: int,
    recent: int = DEFAULT_RECENT_COUNT,
) -> BookSiteSummary:
    """Counts, quantities and values for one (book, site)."""
    if recent < 0:
        raise ValueError("recent cannot be negative")

    positive = _Tally()
    negative = _Tally()
    cost_sum = Decimal("0")
    cost_count = 0
    matching: list[MovementRecord] = []

    for record in movements:
        if record.book_id != book_id or record.site_id != site_id:
            continue
        matching.append(record)
        if record.is_positive:
            positive.add(record)
        elif record.is_negative:
            negative.add(record)
        if record.unit_cost is not None:
            cost_sum += record.unit_cost
            cost_count += 1

    latest_first = sorted(matching, key=MovementRecord.recency_key, reverse=True)

    return BookSiteSummary(
        book_id=book_id,
        site_id=site_id,
        movement_count=len(matching),
        positive_count=positive.count,
        positive_quantity=positive.quantity,
        positive_value=positive.value,
        negative_count=negative.count,
        negative_quantity=negative.quantity,
        negative_value=negative.value,
        last_movement_date=latest_first[0].timestamp if latest_first else None,
        average_unit_cost=(cost_sum / cost_count) if cost_count else None,
        recent_movements=tuple(latest_first[:recent]),
    )
