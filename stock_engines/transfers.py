"""
Module: stock_engines.transfers
Responsibility:
    Reconcile outbound transfer legs with the inbound legs recorded at the
    destination site, and summarise completion, duration and routes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every TRANSFER_OUT in the period appears in exactly one pair, matched
      or pending, so ``completed + pending == transfer_out_count``.
    - Match predicate: same book, inbound ``from_site_id`` equals outbound
      ``site_id``, inbound ``site_id`` equals outbound ``to_site_id`` and
      the timestamps differ by at most the window.
    - The matching policy is a pluggable ``TransferMatchStrategy``.  The
      default ``FirstMatchStrategy`` keeps the historical first-candidate
      heuristic, under which one inbound leg may satisfy several outbound
      legs on the same route.

Failure modes:
    - ValueError for a negative window or an inverted period.
    - An outbound leg with no candidate is pending, never an error.

Usage:
    from stock_engines.transfers import OneToOneStrategy, TransferReconciler

    report = TransferReconciler(strategy=OneToOneStrategy()).reconcile(
        movements=records, period_start=start, period_end=end,
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.transfers")

DEFAULT_WINDOW_DAYS = 7
TOP_BOOK_LIMIT = 10

_MICROSECONDS_PER_DAY = Decimal(86_400_000_000)


def timedelta_to_days(delta: timedelta) -> Decimal:
    """Exact Decimal day count of a timedelta."""
    return Decimal(delta // timedelta(microseconds=1)) / _MICROSECONDS_PER_DAY


def is_candidate(
    outbound: MovementRecord,
    inbound: MovementRecord,
    window: timedelta,
) -> bool:
    """True if ``inbound`` can complete ``outbound``."""
    return (
        inbound.book_id == outbound.book_id
        and inbound.from_site_id == outbound.site_id
        and inbound.site_id == outbound.to_site_id
        and abs(inbound.timestamp - outbound.timestamp) <= window
    )


# =============================================================================
# Matching strategies
# =============================================================================


class TransferMatchStrategy(ABC):
    """
    Policy that picks at most one inbound leg for each outbound leg.

    Contract:
        ``match`` returns a list aligned with ``outbound``: element ``i``
        is the inbound record chosen for ``outbound[i]`` or None.
    """

    name: str = "abstract"

    @abstractmethod
    def match(
        self,
        outbound: Sequence[MovementRecord],
        inbound: Sequence[MovementRecord],
        window: timedelta,
    ) -> list[MovementRecord | None]:
        ...


class FirstMatchStrategy(TransferMatchStrategy):
    """First candidate in input order wins; inbound legs may be reused."""

    name = "first_match"

    def match(self, outbound, inbound, window):
        matches: list[MovementRecord | None] = []
        for out in outbound:
            matches.append(
                next((inn for inn in inbound if is_candidate(out, inn, window)), None)
            )
        return matches


class NearestByDateStrategy(TransferMatchStrategy):
    """Candidate closest in time wins, ties by input order; reuse allowed."""

    name = "nearest_by_date"

    def match(self, outbound, inbound, window):
        matches: list[MovementRecord | None] = []
        for out in outbound:
            best: tuple[timedelta, int] | None = None
            for index, inn in enumerate(inbound):
                if not is_candidate(out, inn, window):
                    continue
                rank = (abs(inn.timestamp - out.timestamp), index)
                if best is None or rank < best:
                    best = rank
            matches.append(inbound[best[1]] if best is not None else None)
        return matches


class OneToOneStrategy(TransferMatchStrategy):
    """
    Greedy one-to-one assignment.

    Outbound legs are visited chronologically (input order on equal
    timestamps); each takes the nearest inbound leg not already used.
    """

    name = "one_to_one"

    def match(self, outbound, inbound, window):
        matches: list[MovementRecord | None] = [None] * len(outbound)
        used: set[int] = set()
        order = sorted(range(len(outbound)), key=lambda i: (outbound[i].timestamp, i))
        for out_index in order:
            out = outbound[out_index]
            best: tuple[timedelta, int] | None = None
            for index, inn in enumerate(inbound):
                if index in used or not is_candidate(out, inn, window):
                    continue
                rank = (abs(inn.timestamp - out.timestamp), index)
                if best is None or rank < best:
                    best = rank
            if best is not None:
                used.add(best[1])
                matches[out_index] = inbound[best[1]]
        return matches


STRATEGIES: dict[str, type[TransferMatchStrategy]] = {
    FirstMatchStrategy.name: FirstMatchStrategy,
    NearestByDateStrategy.name: NearestByDateStrategy,
    OneToOneStrategy.name: OneToOneStrategy,
}


def strategy_for(name: str) -> TransferMatchStrategy:
    """
    Instantiate a strategy by name.

    Raises:
        ValueError: for an unknown name.
    """
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown transfer match strategy {name!r}; "
            f"expected one of {sorted(STRATEGIES)}"
        ) from None


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class TransferPair:
    """One outbound leg and the inbound leg that completed it, if any."""

    outbound: MovementRecord
    inbound: MovementRecord | None = None

    @property
    def is_completed(self) -> bool:
        return self.inbound is not None

    @property
    def route(self) -> tuple[int, int]:
        return (self.outbound.site_id, self.outbound.to_site_id)

    @property
    def duration(self) -> timedelta | None:
        if self.inbound is None:
            return None
        return self.inbound.timestamp - self.outbound.timestamp

    @property
    def duration_days(self) -> Decimal | None:
        duration = self.duration
        return timedelta_to_days(duration) if duration is not None else None


@dataclass(frozen=True)
class RouteSummary:
    """Matched transfers on one (from, to) route."""

    from_site_id: int
    to_site_id: int
    transfer_count: int
    total_quantity: int
    average_duration_days: Decimal


@dataclass(frozen=True)
class BookTransferSummary:
    book_id: int
    transfer_count: int
    total_quantity: int


@dataclass(frozen=True)
class TransferReport:
    """
    Transfer reconciliation result.

    Guarantees:
        - ``len(pairs) == transfer_out_count``.
        - ``completed + pending == transfer_out_count``.
    """

    strategy: str
    window_days: int
    period_start: datetime | None
    period_end: datetime | None
    pairs: tuple[TransferPair, ...]
    transfer_out_count: int
    transfer_in_count: int
    routes: tuple[RouteSummary, ...]
    top_books: tuple[BookTransferSummary, ...]

    @property
    def completed_pairs(self) -> tuple[TransferPair, ...]:
        return tuple(p for p in self.pairs if p.is_completed)

    @property
    def pending_pairs(self) -> tuple[TransferPair, ...]:
        return tuple(p for p in self.pairs if not p.is_completed)

    @property
    def completed(self) -> int:
        return sum(1 for p in self.pairs if p.is_completed)

    @property
    def pending(self) -> int:
        return self.transfer_out_count - self.completed

    @property
    def completion_rate(self) -> Decimal | None:
        """Percent of outbound legs completed; None without outbound legs."""
        if self.transfer_out_count == 0:
            return None
        return Decimal(self.completed) * 100 / Decimal(self.transfer_out_count)

    @property
    def average_duration_days(self) -> Decimal | None:
        durations = [p.duration_days for p in self.pairs if p.is_completed]
        if not durations:
            return None
        return sum(durations, Decimal("0")) / len(durations)


# =============================================================================
# Reconciler
# =============================================================================


class TransferReconciler:
    """
    Pairs TRANSFER_OUT legs with TRANSFER_IN legs.

    Contract:
        Pure -- ``reconcile`` reads its arguments only.
    Non-goals:
        - Does not check quantities agree; a matched pair may differ in
          quantity and the report carries the outbound quantity.
    """

    def __init__(
        self,
        strategy: TransferMatchStrategy | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        if window_days < 0:
            raise ValueError("window_days cannot be negative")
        self.strategy = strategy or FirstMatchStrategy()
        self.window_days = window_days

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.window_days)

    @traced_engine(
        "transfers", "1.0", fingerprint_fields=("period_start", "period_end"),
    )
    def reconcile(
        self,
        movements: Iterable[MovementRecord],
        period_start: datetime | None = None,
        period_end: datetime | None = None,
    ) -> TransferReport:
        if period_start is not None and period_end is not None and period_start > period_end:
            raise ValueError("period_start must not be after period_end")

        outbound: list[MovementRecord] = []
        inbound: list[MovementRecord] = []
        for record in movements:
            if not record.is_transfer:
                continue
            if period_start is not None and record.timestamp < period_start:
                continue
            if period_end is not None and record.timestamp > period_end:
                continue
            if record.movement_type == MovementType.TRANSFER_OUT:
                outbound.append(record)
            else:
                inbound.append(record)

        matches = self.strategy.match(outbound, inbound, self.window)
        pairs = tuple(TransferPair(out, inn) for out, inn in zip(outbound, matches))

        report = TransferReport(
            strategy=self.strategy.name,
            window_days=self.window_days,
            period_start=period_start,
            period_end=period_end,
            pairs=pairs,
            transfer_out_count=len(outbound),
            transfer_in_count=len(inbound),
            routes=_summarize_routes(pairs),
            top_books=_top_books(outbound),
        )

        logger.info("transfers_reconciled", extra={
            "strategy": self.strategy.name,
            "transfer_out_count": report.transfer_out_count,
            "transfer_in_count": report.transfer_in_count,
            "completed": report.completed,
            "pending": report.pending,
        })
        return report


def _summarize_routes(pairs: Sequence[TransferPair]) -> tuple[RouteSummary, ...]:
    grouped: dict[tuple[int, int], list[TransferPair]] = {}
    for pair in pairs:
        if pair.is_completed:
            grouped.setdefault(pair.route, []).append(pair)

    routes = [
        RouteSummary(
            from_site_id=route[0],
            to_site_id=route[1],
            transfer_count=len(members),
            total_quantity=sum(p.outbound.quantity for p in members),
            average_duration_days=(
                sum((p.duration_days for p in members), Decimal("0")) / len(members)
            ),
        )
        for route, members in grouped.items()
    ]
    routes.sort(key=lambda r: (-r.transfer_count, r.from_site_id, r.to_site_id))
    return tuple(routes)


def _top_books(outbound: Sequence[MovementRecord]) -> tuple[BookTransferSummary, ...]:
    """
    Rank books by transferred quantity.

    Only TRANSFER_OUT legs are counted, so a transfer whose inbound leg is
    also recorded counts once rather than twice.
    """
    counts: dict[int, list[int]] = {}
    for record in outbound:
        entry = counts.setdefault(record.book_id, [0, 0])
        entry[0] += 1
        entry[1] += record.quantity

    books = [
        BookTransferSummary(book_id=book_id, transfer_count=count, total_quantity=quantity)
        for book_id, (count, quantity) in counts.items()
    ]
    books.sort(key=lambda b: (-b.total_quantity, b.book_id))
    return tuple(books[:TOP_BOOK_LIMIT])
