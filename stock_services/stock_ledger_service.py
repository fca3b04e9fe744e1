"""
stock_services.stock_ledger_service -- Inventory reporting facade over one ledger.

Responsibility:
    The single entry point callers use to append movements and obtain
    derived inventory reports for one company.  Reads one consistent
    snapshot from the ledger store per logical report, feeds it to the
    pure engines and returns their frozen result objects.

Architecture position:
    Services -- imperative shell over stock_engines + stock_kernel.
    Configuration arrives as a ``LedgerConfig`` (stock_config); "now"
    arrives from an injected ``Clock``.  Engines never see either.

Invariants enforced:
    - Snapshot discipline: every engine invoked for one report (and every
      engine of ``inventory_overview``) reads the same ``LedgerSnapshot``,
      so a record appended mid-report is visible to all of them or none.
    - Reports accept ``snapshot=`` so callers can share one read across
      several calls.
    - Appends go through the store, which validates before storing.

Failure modes:
    - ``MovementValidationError`` / ``MovementAlreadyAppendedError`` from
      ``append_movement``.
    - ``ValueError`` for a snapshot of another company, an inverted period
      or inconsistent thresholds.

Usage:
    service = StockLedgerService(
        store=InMemoryLedgerStore(), company_id=1, clock=SystemClock(),
    )
    service.append_movement(create_stock_in(1, 1, 7, 100, Decimal("10")))
    snapshot = service.snapshot()
    levels = service.current_stock_levels(snapshot=snapshot)
    valuation = service.valuation(snapshot=snapshot)
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from stock_config import LedgerConfig
from stock_engines.abc import ABCReport, classify_abc
from stock_engines.activity import (
    ActivityReport,
    BookSiteSummary,
    summarize_activity,
    summarize_book_site,
)
from stock_engines.aging import AgingReport, analyze_aging
from stock_engines.attention import AttentionFlagger, AttentionReport
from stock_engines.stock_levels import StockLevelSummary, aggregate_stock_levels
from stock_engines.stock_status import (
    StockStatusReport,
    StockThresholds,
    stock_status_report,
)
from stock_engines.transfers import (
    TransferMatchStrategy,
    TransferReconciler,
    TransferReport,
    strategy_for,
)
from stock_engines.valuation import ValuationReport, value_stock
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.movement import MovementFilter, MovementRecord, StockKey
from stock_kernel.domain.movement_validator import validate_movement
from stock_kernel.exceptions import MovementValidationError, Violation
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.stock_ledger")


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    One consistent read of a company's ledger.

    Contract:
        Immutable; iterating it any number of times yields the same
        records in id order.
    """

    company_id: int
    taken_at: datetime
    movements: tuple[MovementRecord, ...]
    snapshot_id: str
    filters: MovementFilter | None = None

    def __len__(self) -> int:
        return len(self.movements)

    def __iter__(self):
        return iter(self.movements)


@dataclass(frozen=True)
class InventoryOverview:
    """Every summary-level report computed from one snapshot."""

    snapshot_id: str
    as_of: datetime
    stock_levels: StockLevelSummary
    valuation: ValuationReport
    aging: AgingReport
    attention: AttentionReport
    transfers: TransferReport
    stock_status: StockStatusReport


class StockLedgerService:
    """
    Reporting facade for one company's stock ledger.

    Contract:
        Receives store, config and clock via constructor injection.
    Guarantees:
        - Report methods never mutate the ledger.
        - Omitted report parameters take their values from ``config``.
    Non-goals:
        - Catalog metadata (titles, site names) is a presentation concern.
    """

    def __init__(
        self,
        store: LedgerStore,
        company_id: int,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        max_workers: int = 4,
    ):
        self._store = store
        self.company_id = company_id
        self.config = config or LedgerConfig()
        self._clock = clock or SystemClock()
        self._max_workers = max_workers

    # ------------------------------------------------------------------
    # Ledger access
    # ------------------------------------------------------------------

    def append_movement(self, record: MovementRecord) -> int:
        """
        Append ``record`` to the ledger and return its id.

        Raises:
            MovementValidationError: broken ingestion rule, including a
                record addressed to another company.
            MovementAlreadyAppendedError: record already has an id.
        """
        self._check_company(record)
        with LogContext.bind(company_id=str(self.company_id)):
            return self._store.append(record)

    def append_movements(self, records: Iterable[MovementRecord]) -> list[int]:
        records = list(records)
        for record in records:
            self._check_company(record)
        with LogContext.bind(company_id=str(self.company_id)):
            return self._store.append_many(records)

    def query_movements(
        self,
        filters: MovementFilter | None = None,
    ) -> tuple[MovementRecord, ...]:
        return self._store.query(self.company_id, filters)

    def snapshot(self, filters: MovementFilter | None = None) -> LedgerSnapshot:
        """Take one consistent read of the ledger."""
        taken_at = self._clock.now()
        movements = self._store.query(self.company_id, filters)
        snapshot = LedgerSnapshot(
            company_id=self.company_id,
            taken_at=taken_at,
            movements=movements,
            snapshot_id=uuid4().hex,
            filters=filters,
        )
        logger.debug("ledger_snapshot_taken", extra={
            "snapshot_id": snapshot.snapshot_id,
            "movement_count": len(movements),
        })
        return snapshot

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def current_stock_levels(
        self,
        as_of: datetime | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> StockLevelSummary:
        snapshot = self._resolve(snapshot)
        with self._bind("stock_levels", snapshot):
            return aggregate_stock_levels(
                movements=snapshot.movements,
                as_of=as_of or snapshot.taken_at,
            )

    def valuation(
        self,
        site_id: int | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> ValuationReport:
        snapshot = self._resolve(snapshot)
        summary = self.current_stock_levels(snapshot=snapshot)
        with self._bind("valuation", snapshot):
            return value_stock(summary=summary, site_id=site_id)

    def abc_analysis(
        self,
        period_start: datetime,
        period_end: datetime,
        snapshot: LedgerSnapshot | None = None,
    ) -> ABCReport:
        snapshot = self._resolve(snapshot)
        with self._bind("abc", snapshot):
            return classify_abc(
                movements=snapshot.movements,
                period_start=period_start,
                period_end=period_end,
                a_threshold=self.config.abc.a_threshold,
                b_threshold=self.config.abc.b_threshold,
            )

    def aging_report(
        self,
        slow_moving_days: int | None = None,
        dead_stock_days: int | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> AgingReport:
        snapshot = self._resolve(snapshot)
        summary = self.current_stock_levels(snapshot=snapshot)
        with self._bind("aging", snapshot):
            return analyze_aging(
                summary=summary,
                as_of=snapshot.taken_at,
                slow_moving_days=(
                    slow_moving_days
                    if slow_moving_days is not None
                    else self.config.aging.slow_moving_days
                ),
                dead_stock_days=(
                    dead_stock_days
                    if dead_stock_days is not None
                    else self.config.aging.dead_stock_days
                ),
            )

    def attention_report(
        self,
        high_value_threshold: Decimal | int | None = None,
        high_quantity_threshold: int | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> AttentionReport:
        snapshot = self._resolve(snapshot)
        settings = self.config.attention
        flagger = AttentionFlagger(
            high_value_threshold=(
                high_value_threshold
                if high_value_threshold is not None
                else settings.high_value_threshold
            ),
            high_quantity_threshold=(
                high_quantity_threshold
                if high_quantity_threshold is not None
                else settings.high_quantity_threshold
            ),
            large_adjustment_threshold=settings.large_adjustment_threshold,
            lookback_days=settings.lookback_days,
        )
        with self._bind("attention", snapshot):
            return flagger.flag(movements=snapshot.movements, as_of=snapshot.taken_at)

    def transfer_report(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        strategy: TransferMatchStrategy | str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> TransferReport:
        snapshot = self._resolve(snapshot)
        if strategy is None:
            strategy = self.config.transfers.strategy
        if isinstance(strategy, str):
            strategy = strategy_for(strategy)
        reconciler = TransferReconciler(
            strategy=strategy,
            window_days=self.config.transfers.window_days,
        )
        with self._bind("transfers", snapshot):
            return reconciler.reconcile(
                movements=snapshot.movements,
                period_start=start,
                period_end=end,
            )

    def activity_report(
        self,
        start: datetime,
        end: datetime,
        snapshot: LedgerSnapshot | None = None,
    ) -> ActivityReport:
        snapshot = self._resolve(snapshot)
        with self._bind("activity", snapshot):
            return summarize_activity(movements=snapshot.movements, start=start, end=end)

    def book_site_summary(
        self,
        book_id: int,
        site_id: int,
        recent: int = 5,
        snapshot: LedgerSnapshot | None = None,
    ) -> BookSiteSummary:
        snapshot = self._resolve(snapshot)
        with self._bind("book_site_summary", snapshot):
            return summarize_book_site(
                movements=snapshot.movements,
                book_id=book_id,
                site_id=site_id,
                recent=recent,
            )

    def stock_status_report(
        self,
        thresholds: StockThresholds | None = None,
        overrides: Mapping[StockKey, StockThresholds] | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> StockStatusReport:
        snapshot = self._resolve(snapshot)
        if thresholds is None:
            settings = self.config.stock_status
            thresholds = StockThresholds(
                minimum_stock=settings.minimum_stock,
                reorder_level=settings.reorder_level,
                maximum_stock=settings.maximum_stock,
            )
        summary = self.current_stock_levels(snapshot=snapshot)
        with self._bind("stock_status", snapshot):
            return stock_status_report(
                summary=summary, thresholds=thresholds, overrides=overrides,
            )

    def inventory_overview(
        self,
        snapshot: LedgerSnapshot | None = None,
    ) -> InventoryOverview:
        """
        Run every summary report concurrently over one snapshot.

        The stock level summary is computed once and shared by the
        valuation, aging and status engines; attention and transfer
        reconciliation read the snapshot directly.
        """
        snapshot = self._resolve(snapshot)
        summary = self.current_stock_levels(snapshot=snapshot)

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            def submit(fn, **kwargs):
                # worker threads do not inherit LogContext
                return executor.submit(contextvars.copy_context().run, fn, **kwargs)

            valuation = submit(self._value_summary, summary=summary, snapshot=snapshot)
            aging = submit(self.aging_report, snapshot=snapshot)
            attention = submit(self.attention_report, snapshot=snapshot)
            transfers = submit(self.transfer_report, snapshot=snapshot)
            status = submit(self.stock_status_report, snapshot=snapshot)

            overview = InventoryOverview(
                snapshot_id=snapshot.snapshot_id,
                as_of=snapshot.taken_at,
                stock_levels=summary,
                valuation=valuation.result(),
                aging=aging.result(),
                attention=attention.result(),
                transfers=transfers.result(),
                stock_status=status.result(),
            )

        logger.info("inventory_overview_completed", extra={
            "snapshot_id": snapshot.snapshot_id,
            "level_count": len(summary),
            "attention_count": len(overview.attention.items),
        })
        return overview

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _value_summary(
        self,
        summary: StockLevelSummary,
        snapshot: LedgerSnapshot,
    ) -> ValuationReport:
        with self._bind("valuation", snapshot):
            return value_stock(summary=summary, site_id=None)

    def _resolve(self, snapshot: LedgerSnapshot | None) -> LedgerSnapshot:
        if snapshot is None:
            return self.snapshot()
        if snapshot.company_id != self.company_id:
            raise ValueError(
                f"Snapshot of company {snapshot.company_id} passed to the "
                f"service of company {self.company_id}"
            )
        return snapshot

    def _bind(self, report: str, snapshot: LedgerSnapshot):
        return LogContext.bind(
            company_id=str(self.company_id),
            report=report,
            snapshot_id=snapshot.snapshot_id,
        )

    def _check_company(self, record: MovementRecord) -> None:
        """Reject a foreign record with every rule it breaks, not just the company."""
        if record.company_id == self.company_id:
            return
        violations = [Violation(
            "COMPANY_MISMATCH",
            "company_id",
            f"Movement belongs to company {record.company_id}, "
            f"not {self.company_id}",
        )]
        violations.extend(validate_movement(record))
        logger.warning("movement_rejected", extra={
            "violation_codes": [v.code for v in violations],
            "movement_company_id": record.company_id,
        })
        raise MovementValidationError(violations)
