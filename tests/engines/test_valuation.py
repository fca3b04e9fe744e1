"""Tests for weighted-average stock valuation."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from stock_kernel.domain.movement import MovementType, StockKey
from stock_engines.stock_levels import aggregate_stock_levels
from stock_engines.valuation import value_stock

AS_OF = datetime(2024, 7, 1, tzinfo=UTC)
IN = MovementType.STOCK_IN


@pytest.fixture
def summary(make_record):
    return aggregate_stock_levels(
        movements=[
            make_record(IN, 100, site_id=1, book_id=1, unit_cost="10"),
            make_record(MovementType.STOCK_OUT, 30, site_id=1, book_id=1, days=1),
            make_record(IN, 10, site_id=2, book_id=1, unit_cost="12"),
            make_record(MovementType.ADJUSTMENT, -5, site_id=1, book_id=2, unit_cost="3"),
            make_record(IN, 4, site_id=1, book_id=3),
        ],
        as_of=AS_OF,
    )


class TestValueStock:

    def test_lines_and_totals(self, summary):
        report = value_stock(summary=summary)

        assert [(line.site_id, line.book_id) for line in report.lines] == [(1, 1), (2, 1)]
        assert report.lines[0].total_value == Decimal("700")
        assert report.lines[1].total_value == Decimal("120")
        assert report.total_value == Decimal("820")
        assert report.total_quantity == 80
        assert report.as_of == AS_OF

    def test_non_positive_and_uncosted_levels_excluded(self, summary):
        report = value_stock(summary=summary)
        assert report.excluded == (StockKey(1, 2), StockKey(1, 3))

    def test_by_book_rollup(self, summary):
        report = value_stock(summary=summary)

        assert report.book_count == 1
        book = report.by_book[0]
        assert book.book_id == 1
        assert book.quantity == 80
        assert book.total_value == Decimal("820")
        assert book.site_count == 2

    def test_site_filter(self, summary):
        report = value_stock(summary=summary, site_id=2)

        assert report.site_id == 2
        assert len(report.lines) == 1
        assert report.total_value == Decimal("120")
        assert report.excluded == ()

    def test_empty_summary(self):
        report = value_stock(summary=aggregate_stock_levels(movements=[], as_of=AS_OF))
        assert report.lines == ()
        assert report.total_value == Decimal("0")
        assert report.total_quantity == 0
