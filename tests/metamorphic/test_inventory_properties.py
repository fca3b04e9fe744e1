"""
Metamorphic properties of the derived inventory engines.

Generated ledgers are pushed through the engines and checked against
relations that must hold for any input:

1. Order independence: any permutation of the ledger derives the same
   stock levels.
2. Split equivalence: folding a ledger in two halves equals folding it
   at once.
3. Conservation: derived stock equals the signed sum of movements.
4. ABC completeness and monotonic tiers.
5. Aging lists are disjoint and hold positive stock only.
6. Every outbound transfer is reconciled exactly once, under every
   matching strategy.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from stock_engines.abc import ABCCategory, classify_abc
from stock_engines.aging import analyze_aging
from stock_engines.stock_levels import StockLevelAccumulator, aggregate_stock_levels
from stock_engines.stock_status import StockStatus, stock_status_report
from stock_engines.transfers import STRATEGIES, TransferReconciler
from stock_engines.valuation import value_stock
from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.domain.movement_validator import validate_movement

BASE = datetime(2024, 1, 1, tzinfo=UTC)
AS_OF = BASE + timedelta(days=120)
SITES = (1, 2, 3)

PROPERTY_SETTINGS = settings(
    max_examples=75,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


@composite
def movement(draw, movement_id: int) -> MovementRecord:
    movement_type = draw(st.sampled_from(list(MovementType)))
    site_id = draw(st.sampled_from(SITES))
    other_site = draw(st.sampled_from([s for s in SITES if s != site_id]))

    if movement_type == MovementType.ADJUSTMENT:
        quantity = draw(st.integers(min_value=-200, max_value=200).filter(bool))
    else:
        quantity = draw(st.integers(min_value=1, max_value=500))

    unit_cost = draw(st.none() | st.decimals(
        min_value=Decimal("0"), max_value=Decimal("100"), places=2,
        allow_nan=False, allow_infinity=False,
    ))
    minutes = draw(st.integers(min_value=0, max_value=60 * 24 * 150))

    return MovementRecord(
        id=movement_id,
        company_id=1,
        site_id=site_id,
        book_id=draw(st.integers(min_value=1, max_value=4)),
        movement_type=movement_type,
        quantity=quantity,
        timestamp=BASE + timedelta(minutes=minutes),
        unit_cost=unit_cost,
        to_site_id=other_site if movement_type == MovementType.TRANSFER_OUT else None,
        from_site_id=other_site if movement_type == MovementType.TRANSFER_IN else None,
    )


@composite
def ledgers(draw, max_size: int = 40) -> list[MovementRecord]:
    size = draw(st.integers(min_value=0, max_value=max_size))
    return [draw(movement(movement_id)) for movement_id in range(1, size + 1)]


class TestGeneratedLedgers:

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_generated_records_are_valid(self, records):
        for record in records:
            assert validate_movement(record) == ()


class TestStockLevelProperties:

    @given(data=st.data(), records=ledgers())
    @PROPERTY_SETTINGS
    def test_order_independence(self, data, records):
        shuffled = data.draw(st.permutations(records))
        assert aggregate_stock_levels(movements=shuffled, as_of=AS_OF) == (
            aggregate_stock_levels(movements=records, as_of=AS_OF)
        )

    @given(data=st.data(), records=ledgers())
    @PROPERTY_SETTINGS
    def test_split_equivalence(self, data, records):
        cut = data.draw(st.integers(min_value=0, max_value=len(records)))
        accumulator = StockLevelAccumulator(AS_OF)
        accumulator.extend(records[:cut])
        accumulator.extend(records[cut:])
        assert accumulator.result() == aggregate_stock_levels(movements=records, as_of=AS_OF)

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_conservation(self, records):
        summary = aggregate_stock_levels(movements=records, as_of=AS_OF)
        visible = [r for r in records if r.timestamp <= AS_OF]

        assert summary.total_current_stock == sum(r.inventory_impact for r in visible)
        for level in summary:
            own = [r for r in visible if r.key == level.key]
            assert level.current_stock == sum(r.inventory_impact for r in own)
            assert level.movement_count == len(own)
            assert level.stock_in >= 0 and level.stock_out >= 0

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_valuation_consistency(self, records):
        summary = aggregate_stock_levels(movements=records, as_of=AS_OF)
        report = value_stock(summary=summary)

        assert report.total_value == sum(
            (line.total_value for line in report.lines), Decimal("0"),
        )
        assert report.total_value == sum(
            (book.total_value for book in report.by_book), Decimal("0"),
        )
        assert len(report.lines) + len(report.excluded) == len(summary)
        for key in report.excluded:
            level = summary.levels[key]
            assert level.current_stock <= 0 or level.average_cost is None

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_stock_status_consistency(self, records):
        report = stock_status_report(summary=aggregate_stock_levels(movements=records,
                                                                    as_of=AS_OF))
        for line in report.lines:
            assert line.reorder_quantity >= 0
            assert (line.status is StockStatus.OUT_OF_STOCK) == (line.current_stock <= 0)


class TestAbcProperties:

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_completeness_and_order(self, records):
        report = classify_abc(movements=records, period_start=BASE, period_end=AS_OF)

        costed_books = {
            r.book_id for r in records
            if r.total_cost is not None and BASE <= r.timestamp <= AS_OF
        }
        assert sorted(a.book_id for a in report.assignments) == sorted(costed_books)

        values = [a.total_value for a in report.assignments]
        assert values == sorted(values, reverse=True)

        order = list(ABCCategory)
        tiers = [order.index(a.category) for a in report.assignments]
        assert tiers == sorted(tiers)

        assert sum(c.item_count for c in report.categories) == len(report.assignments)

    @given(
        records=ledgers(),
        low=st.integers(min_value=0, max_value=100),
        high=st.integers(min_value=0, max_value=100),
    )
    @PROPERTY_SETTINGS
    def test_raising_a_threshold_never_shrinks_a(self, records, low, high):
        low, high = sorted((low, high))
        count_low = classify_abc(
            movements=records, period_start=BASE, period_end=AS_OF,
            a_threshold=low, b_threshold=100,
        ).summary_for(ABCCategory.A).item_count
        count_high = classify_abc(
            movements=records, period_start=BASE, period_end=AS_OF,
            a_threshold=high, b_threshold=100,
        ).summary_for(ABCCategory.A).item_count
        assert count_low <= count_high


class TestAgingProperties:

    @given(
        records=ledgers(),
        slow=st.integers(min_value=0, max_value=120),
        extra=st.integers(min_value=0, max_value=120),
    )
    @PROPERTY_SETTINGS
    def test_lists_disjoint_and_positive(self, records, slow, extra):
        summary = aggregate_stock_levels(movements=records, as_of=AS_OF)
        report = analyze_aging(
            summary=summary, as_of=AS_OF,
            slow_moving_days=slow, dead_stock_days=slow + extra,
        )

        slow_keys = {e.key for e in report.slow_moving}
        dead_keys = {e.key for e in report.dead_stock}
        assert not slow_keys & dead_keys
        for entry in report.slow_moving + report.dead_stock:
            assert entry.current_stock > 0
            assert entry.age_days >= slow


class TestTransferProperties:

    @given(records=ledgers(), window=st.integers(min_value=0, max_value=30))
    @PROPERTY_SETTINGS
    def test_every_outbound_reconciled_once(self, records, window):
        outbound = [r for r in records if r.movement_type == MovementType.TRANSFER_OUT]

        for strategy_cls in STRATEGIES.values():
            report = TransferReconciler(
                strategy=strategy_cls(), window_days=window,
            ).reconcile(movements=records)

            assert report.transfer_out_count == len(outbound)
            assert report.completed + report.pending == len(outbound)
            assert [p.outbound for p in report.pairs] == outbound
            for pair in report.completed_pairs:
                assert pair.inbound.book_id == pair.outbound.book_id
                assert pair.inbound.from_site_id == pair.outbound.site_id
                assert pair.inbound.site_id == pair.outbound.to_site_id
                assert abs(pair.duration) <= timedelta(days=window)

    @given(records=ledgers())
    @PROPERTY_SETTINGS
    def test_one_to_one_never_reuses_inbound(self, records):
        report = TransferReconciler(strategy=STRATEGIES["one_to_one"]()).reconcile(
            movements=records,
        )
        used = [p.inbound.id for p in report.completed_pairs]
        assert len(used) == len(set(used))
