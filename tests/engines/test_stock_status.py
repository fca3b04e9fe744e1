"""Tests for stock status classification and reorder quantities."""

from datetime import UTC, datetime

import pytest

from stock_kernel.domain.movement import MovementType, StockKey
from stock_engines.stock_levels import aggregate_stock_levels
from stock_engines.stock_status import (
    StockStatus,
    StockThresholds,
    classify_stock_status,
    reorder_quantity,
    stock_status_report,
)

AS_OF = datetime(2024, 7, 1, tzinfo=UTC)


class TestClassifyStockStatus:

    @pytest.mark.parametrize("stock,expected", [
        (-3, StockStatus.OUT_OF_STOCK),
        (0, StockStatus.OUT_OF_STOCK),
        (1, StockStatus.LOW_STOCK),
        (5, StockStatus.LOW_STOCK),
        (6, StockStatus.REORDER_REQUIRED),
        (10, StockStatus.REORDER_REQUIRED),
        (11, StockStatus.NORMAL),
        (99, StockStatus.NORMAL),
        (100, StockStatus.OVERSTOCKED),
        (250, StockStatus.OVERSTOCKED),
    ])
    def test_default_thresholds(self, stock, expected):
        assert classify_stock_status(stock, StockThresholds()) is expected

    @pytest.mark.parametrize("stock,expected", [(-4, 14), (0, 10), (7, 3), (10, 0), (50, 0)])
    def test_reorder_quantity(self, stock, expected):
        assert reorder_quantity(stock, StockThresholds()) == expected


class TestStockThresholds:

    def test_inconsistent_thresholds(self):
        with pytest.raises(ValueError, match="minimum_stock cannot exceed reorder_level"):
            StockThresholds(minimum_stock=20, reorder_level=10, maximum_stock=100)
        with pytest.raises(ValueError, match="reorder_level cannot exceed maximum_stock"):
            StockThresholds(minimum_stock=1, reorder_level=200, maximum_stock=100)

    def test_negative_threshold(self):
        with pytest.raises(ValueError, match="minimum_stock cannot be negative"):
            StockThresholds(minimum_stock=-1)


class TestStockStatusReport:

    def test_report_with_override(self, make_record):
        summary = aggregate_stock_levels(
            movements=[
                make_record(MovementType.STOCK_IN, 8, book_id=1),
                make_record(MovementType.STOCK_IN, 8, book_id=2),
                make_record(MovementType.ADJUSTMENT, -2, book_id=3),
            ],
            as_of=AS_OF,
        )
        override = StockThresholds(minimum_stock=0, reorder_level=2, maximum_stock=8)
        report = stock_status_report(
            summary=summary, overrides={StockKey(1, 2): override},
        )

        statuses = {line.book_id: line.status for line in report.lines}
        assert statuses == {
            1: StockStatus.REORDER_REQUIRED,
            2: StockStatus.OVERSTOCKED,
            3: StockStatus.OUT_OF_STOCK,
        }
        assert report.lines[1].thresholds is override
        assert [line.book_id for line in report.needing_reorder()] == [1, 3]
        assert report.count_by_status()[StockStatus.NORMAL] == 0
        assert report.as_of == AS_OF

    def test_default_thresholds_argument(self, make_record):
        summary = aggregate_stock_levels(
            movements=[make_record(MovementType.STOCK_IN, 3)], as_of=AS_OF,
        )
        report = stock_status_report(
            summary=summary,
            thresholds=StockThresholds(minimum_stock=0, reorder_level=0, maximum_stock=3),
        )
        assert report.lines[0].status is StockStatus.OVERSTOCKED
