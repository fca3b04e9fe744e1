"""
Presentation helpers for stock ledger reports.

Everything that turns engine results into strings lives here: display
labels, signed quantities, reference and transfer descriptions, money
formatting, plain-text tables and JSON encoding.  Engines and the kernel
return structured data only.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from stock_engines.abc import ABCReport
from stock_engines.activity import ActivityReport, BookSiteSummary
from stock_engines.aging import AgingReport
from stock_engines.attention import AttentionItem, AttentionReport
from stock_engines.stock_levels import StockLevel, StockLevelSummary
from stock_engines.stock_status import StockStatus, StockStatusReport
from stock_engines.transfers import TransferPair, TransferReport
from stock_engines.valuation import ValuationReport
from stock_kernel.domain.movement import MovementRecord, MovementType

MOVEMENT_TYPE_LABELS = {
    MovementType.STOCK_IN: "Stock In",
    MovementType.STOCK_OUT: "Stock Out",
    MovementType.TRANSFER_IN: "Transfer In",
    MovementType.TRANSFER_OUT: "Transfer Out",
    MovementType.ADJUSTMENT: "Adjustment",
}

STOCK_STATUS_LABELS = {
    StockStatus.OUT_OF_STOCK: "Out of Stock",
    StockStatus.LOW_STOCK: "Low Stock",
    StockStatus.REORDER_REQUIRED: "Reorder Required",
    StockStatus.OVERSTOCKED: "Overstocked",
    StockStatus.NORMAL: "Normal",
}

_CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Field displays
# ---------------------------------------------------------------------------


def movement_type_label(movement_type: MovementType | None) -> str:
    if movement_type is None:
        return "-"
    return MOVEMENT_TYPE_LABELS[movement_type]


def quantity_display(record: MovementRecord) -> str:
    """Signed quantity, e.g. ``+100`` for a receipt and ``-30`` for an issue."""
    impact = record.inventory_impact
    return f"+{impact}" if impact > 0 else str(impact)


def reference_display(record: MovementRecord) -> str:
    if not record.has_reference:
        return "Manual Entry"
    return f"{record.reference_type} #{record.reference_id}"


def transfer_direction(record: MovementRecord) -> str:
    if record.movement_type == MovementType.TRANSFER_OUT:
        return f"To Site {record.to_site_id}"
    if record.movement_type == MovementType.TRANSFER_IN:
        return f"From Site {record.from_site_id}"
    return ""


def format_money(amount: Decimal | None) -> str:
    """``Decimal("1234.5")`` -> ``"1,234.50"``; None -> ``"-"``."""
    if amount is None:
        return "-"
    return f"{amount.quantize(_CENT, rounding=ROUND_HALF_UP):,}"


def format_percent(value: Decimal | None) -> str:
    if value is None:
        return "-"
    return f"{value.quantize(_CENT, rounding=ROUND_HALF_UP)}%"


def format_date(value: datetime | date | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return value.isoformat()


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def render_table(headers: list[str], rows: list[list[Any]]) -> str:
    """Left-aligned plain-text table with a dashed rule under the header."""
    cells = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values: list[str]) -> str:
        return "  ".join(v.ljust(widths[i]) for i, v in enumerate(values)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in cells)
    return "\n".join(out)


def render_stock_levels(summary: StockLevelSummary) -> str:
    rows = [
        [
            level.site_id,
            level.book_id,
            level.stock_in,
            level.stock_out,
            level.current_stock,
            format_money(level.average_cost),
            movement_type_label(level.last_movement_type),
            format_date(level.last_movement_date),
        ]
        for level in summary
    ]
    table = render_table(
        ["Site", "Book", "In", "Out", "Current", "Avg Cost", "Last Type", "Last Movement"],
        rows,
    )
    return f"{table}\n\nTotal current stock: {summary.total_current_stock}"


def render_valuation(report: ValuationReport) -> str:
    rows = [
        [
            line.site_id,
            line.book_id,
            line.quantity,
            format_money(line.average_cost),
            format_money(line.total_value),
        ]
        for line in report.lines
    ]
    table = render_table(["Site", "Book", "Quantity", "Avg Cost", "Value"], rows)
    footer = (
        f"Books: {report.book_count}  Quantity: {report.total_quantity}  "
        f"Value: {format_money(report.total_value)}"
    )
    if report.excluded:
        footer += f"\nExcluded (no stock or no cost): {len(report.excluded)}"
    return f"{table}\n\n{footer}"


def render_abc(report: ABCReport) -> str:
    rows = [
        [
            a.rank,
            a.book_id,
            a.category.value,
            format_money(a.total_value),
            format_percent(a.value_percentage),
            format_percent(a.cumulative_percentage),
        ]
        for a in report.assignments
    ]
    table = render_table(["Rank", "Book", "Class", "Value", "Share", "Cumulative"], rows)
    summary = render_table(
        ["Class", "Items", "Value", "Share"],
        [
            [c.category.value, c.item_count, format_money(c.total_value),
             format_percent(c.value_percentage)]
            for c in report.categories
        ],
    )
    return f"{table}\n\n{summary}"


def render_aging(report: AgingReport) -> str:
    def section(title, entries, total):
        rows = [
            [e.site_id, e.book_id, e.current_stock, e.age_days,
             format_date(e.last_movement_date), format_money(e.value)]
            for e in entries
        ]
        table = render_table(["Site", "Book", "Stock", "Age (days)", "Last Movement", "Value"], rows)
        return f"{title}\n{table}\nTotal value: {format_money(total)}"

    return "\n\n".join([
        section(
            f"Dead stock (> {report.dead_stock_days} days)",
            report.dead_stock, report.total_dead_stock_value,
        ),
        section(
            f"Slow moving (> {report.slow_moving_days} days)",
            report.slow_moving, report.total_slow_moving_value,
        ),
    ])


def attention_row(item: AttentionItem) -> list[Any]:
    m = item.movement
    return [
        item.priority,
        m.id if m.id is not None else "-",
        movement_type_label(m.movement_type),
        m.site_id,
        m.book_id,
        quantity_display(m),
        format_money(m.total_cost),
        item.reason_text,
    ]


def render_attention(report: AttentionReport) -> str:
    table = render_table(
        ["Priority", "Id", "Type", "Site", "Book", "Qty", "Value", "Reasons"],
        [attention_row(item) for item in report.items],
    )
    return f"{table}\n\n{len(report.items)} of {report.scanned_count} recent movements flagged"


def _pair_row(pair: TransferPair) -> list[Any]:
    out = pair.outbound
    return [
        out.id if out.id is not None else "-",
        out.book_id,
        f"{out.site_id} -> {out.to_site_id}",
        out.quantity,
        format_date(out.timestamp),
        "Completed" if pair.is_completed else "Pending",
        pair.duration_days.quantize(_CENT) if pair.is_completed else "-",
    ]


def render_transfers(report: TransferReport) -> str:
    pairs = render_table(
        ["Id", "Book", "Route", "Qty", "Sent", "Status", "Days"],
        [_pair_row(p) for p in report.pairs],
    )
    routes = render_table(
        ["From", "To", "Transfers", "Quantity", "Avg Days"],
        [
            [r.from_site_id, r.to_site_id, r.transfer_count, r.total_quantity,
             r.average_duration_days.quantize(_CENT)]
            for r in report.routes
        ],
    )
    avg = report.average_duration_days
    footer = (
        f"Strategy: {report.strategy}  Completed: {report.completed}  "
        f"Pending: {report.pending}  Completion: {format_percent(report.completion_rate)}  "
        f"Avg days: {avg.quantize(_CENT) if avg is not None else '-'}"
    )
    return f"{pairs}\n\n{routes}\n\n{footer}"


def render_activity(report: ActivityReport) -> str:
    by_type = render_table(
        ["Type", "Count", "Quantity", "Value"],
        [[movement_type_label(b.key), b.movement_count, b.total_quantity,
          format_money(b.total_value)] for b in report.by_type],
    )
    daily = render_table(
        ["Day", "Count", "Quantity"],
        [[format_date(b.key), b.movement_count, b.total_quantity] for b in report.daily],
    )
    footer = (
        f"Movements: {report.movement_count}  Quantity: {report.total_quantity}  "
        f"Value: {format_money(report.total_value)}"
    )
    return f"{by_type}\n\n{daily}\n\n{footer}"


def render_book_site(summary: BookSiteSummary) -> str:
    recent = render_table(
        ["Id", "Type", "Qty", "Date", "Reference", "Transfer"],
        [
            [m.id if m.id is not None else "-", movement_type_label(m.movement_type),
             quantity_display(m), format_date(m.timestamp), reference_display(m),
             transfer_direction(m)]
            for m in summary.recent_movements
        ],
    )
    return (
        f"Book {summary.book_id} at site {summary.site_id}: "
        f"net {summary.net_quantity} over {summary.movement_count} movements\n\n{recent}"
    )


def render_stock_status(report: StockStatusReport) -> str:
    return render_table(
        ["Site", "Book", "Current", "Status", "Reorder Qty"],
        [
            [line.site_id, line.book_id, line.current_stock,
             STOCK_STATUS_LABELS[line.status], line.reorder_quantity]
            for line in report.lines
        ],
    )


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

# derived properties worth exporting alongside the dataclass fields
_EXPORTED_PROPERTIES: dict[type, tuple[str, ...]] = {
    StockLevel: ("current_stock",),
    StockLevelSummary: ("total_stock_in", "total_stock_out", "total_current_stock"),
    MovementRecord: ("total_cost",),
    ValuationReport: ("total_quantity", "total_value", "book_count"),
    AgingReport: ("total_slow_moving_value", "total_dead_stock_value"),
    AttentionItem: ("priority",),
    TransferPair: ("is_completed", "duration_days"),
    TransferReport: ("completed", "pending", "completion_rate", "average_duration_days"),
    BookSiteSummary: ("net_quantity",),
}


def to_jsonable(obj: Any) -> Any:
    """Convert report objects into JSON-compatible structures."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        data = {
            f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)
        }
        for name in _EXPORTED_PROPERTIES.get(type(obj), ()):
            data[name] = to_jsonable(getattr(obj, name))
        return data
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        if all(isinstance(k, (str, int)) for k in obj):
            return {
                (k.value if isinstance(k, Enum) else str(k)): to_jsonable(v)
                for k, v in obj.items()
            }
        return [to_jsonable(v) for v in obj.values()]
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def to_json(obj: Any) -> str:
    return json.dumps(to_jsonable(obj), indent=2, sort_keys=True)
