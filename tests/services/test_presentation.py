"""Tests for display helpers, table rendering and JSON export."""

import json
from datetime import UTC, date, datetime
from decimal import Decimal

from stock_engines.attention import AttentionFlagger
from stock_engines.stock_levels import aggregate_stock_levels
from stock_engines.transfers import TransferReconciler
from stock_engines.valuation import value_stock
from stock_kernel.domain.movement import MovementType
from stock_services import presentation

AS_OF = datetime(2024, 7, 1, tzinfo=UTC)


class TestFieldDisplays:

    def test_format_money(self):
        assert presentation.format_money(Decimal("1234.5")) == "1,234.50"
        assert presentation.format_money(Decimal("0.005")) == "0.01"
        assert presentation.format_money(None) == "-"

    def test_format_percent(self):
        assert presentation.format_percent(Decimal("80")) == "80.00%"
        assert presentation.format_percent(None) == "-"

    def test_format_date(self):
        assert presentation.format_date(datetime(2024, 6, 1, 9, 5, tzinfo=UTC)) == "2024-06-01 09:05"
        assert presentation.format_date(date(2024, 6, 1)) == "2024-06-01"
        assert presentation.format_date(None) == "-"

    def test_movement_labels(self, make_record):
        assert presentation.movement_type_label(MovementType.TRANSFER_OUT) == "Transfer Out"
        assert presentation.movement_type_label(None) == "-"
        assert presentation.quantity_display(make_record(MovementType.STOCK_IN, 100)) == "+100"
        assert presentation.quantity_display(make_record(MovementType.STOCK_OUT, 30)) == "-30"

    def test_reference_display(self, make_record):
        assert presentation.reference_display(make_record(MovementType.STOCK_OUT, 1)) == "Manual Entry"
        referenced = make_record(
            MovementType.STOCK_OUT, 1, reference_type="Registration", reference_id=12,
        )
        assert presentation.reference_display(referenced) == "Registration #12"

    def test_transfer_direction(self, make_record):
        out = make_record(MovementType.TRANSFER_OUT, 1, to_site_id=4)
        inbound = make_record(MovementType.TRANSFER_IN, 1, site_id=4, from_site_id=1)
        assert presentation.transfer_direction(out) == "To Site 4"
        assert presentation.transfer_direction(inbound) == "From Site 1"
        assert presentation.transfer_direction(make_record(MovementType.STOCK_IN, 1)) == ""


class TestRendering:

    def test_render_table_aligns_columns(self):
        text = presentation.render_table(["A", "Long"], [[1, "x"], ["wide", "y"]])
        assert text.splitlines() == [
            "A     Long",
            "----  ----",
            "1     x",
            "wide  y",
        ]

    def test_render_stock_levels(self, make_record):
        summary = aggregate_stock_levels(
            movements=[
                make_record(MovementType.STOCK_IN, 100, unit_cost="10"),
                make_record(MovementType.STOCK_OUT, 30, days=1),
            ],
            as_of=AS_OF,
        )
        text = presentation.render_stock_levels(summary)
        assert "Stock Out" in text
        assert "10.00" in text
        assert text.endswith("Total current stock: 70")

    def test_render_valuation_notes_exclusions(self, make_record):
        summary = aggregate_stock_levels(
            movements=[
                make_record(MovementType.STOCK_IN, 10, unit_cost="1500"),
                make_record(MovementType.ADJUSTMENT, -1, book_id=2),
            ],
            as_of=AS_OF,
        )
        text = presentation.render_valuation(value_stock(summary=summary))
        assert "Value: 15,000.00" in text
        assert "Excluded (no stock or no cost): 1" in text

    def test_render_attention(self, make_record):
        report = AttentionFlagger().flag(
            movements=[make_record(MovementType.STOCK_OUT, 2)], as_of=AS_OF,
        )
        text = presentation.render_attention(report)
        assert "Stock out without reference" in text
        assert "1 of 1 recent movements flagged" in text

    def test_render_transfers_pending(self, make_record):
        report = TransferReconciler().reconcile(movements=[
            make_record(MovementType.TRANSFER_OUT, 3, to_site_id=2),
        ])
        text = presentation.render_transfers(report)
        assert "Pending" in text
        assert "Completion: 0.00%" in text
        assert "Avg days: -" in text


class TestJson:

    def test_summary_levels_exported_as_list(self, make_record):
        summary = aggregate_stock_levels(
            movements=[make_record(MovementType.STOCK_IN, 5, unit_cost="2")], as_of=AS_OF,
        )
        data = json.loads(presentation.to_json(summary))

        assert data["as_of"] == AS_OF.isoformat()
        assert data["total_current_stock"] == 5
        (level,) = data["levels"]
        assert level["current_stock"] == 5
        assert level["average_cost"] == "2"
        assert level["last_movement_type"] == "stock_in"

    def test_enum_keyed_dicts_use_values(self):
        from stock_engines.stock_status import StockStatus

        data = presentation.to_jsonable({StockStatus.NORMAL: 2})
        assert data == {"normal": 2}

    def test_attention_reasons_exported_as_text(self, make_record):
        report = AttentionFlagger().flag(
            movements=[make_record(MovementType.STOCK_OUT, 2)], as_of=AS_OF,
        )
        data = presentation.to_jsonable(report)
        assert data["items"][0]["reasons"] == ["Stock out without reference"]
        assert data["items"][0]["priority"] == 5
        assert data["items"][0]["movement"]["total_cost"] is None
