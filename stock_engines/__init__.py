"""
Module: stock_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    inventory calculation engines.  This is the import surface for
    stock_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain and stock_kernel.logging_config.
    MUST NOT import stock_config or stock_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; cutoffs are passed in
      by the caller.
    - Decimal-only arithmetic for costs and values.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from stock_engines import aggregate_stock_levels, value_stock

    summary = aggregate_stock_levels(movements=records, as_of=now)
    report = value_stock(summary=summary)
"""

from stock_engines.abc import (
    ABCAssignment,
    ABCCategory,
    ABCCategorySummary,
    ABCReport,
    classify_abc,
)
from stock_engines.activity import (
    ActivityBucket,
    ActivityReport,
    BookSiteSummary,
    summarize_activity,
    summarize_book_site,
)
from stock_engines.aging import AgingClass, AgingEntry, AgingReport, analyze_aging
from stock_engines.attention import (
    AttentionFlagger,
    AttentionItem,
    AttentionReason,
    AttentionReport,
)
from stock_engines.stock_levels import (
    StockLevel,
    StockLevelAccumulator,
    StockLevelSummary,
    aggregate_stock_levels,
)
from stock_engines.stock_status import (
    StockStatus,
    StockStatusLine,
    StockStatusReport,
    StockThresholds,
    classify_stock_status,
    stock_status_report,
)
from stock_engines.transfers import (
    FirstMatchStrategy,
    NearestByDateStrategy,
    OneToOneStrategy,
    RouteSummary,
    TransferMatchStrategy,
    TransferPair,
    TransferReconciler,
    TransferReport,
    strategy_for,
)
from stock_engines.valuation import (
    BookValuation,
    ValuationLine,
    ValuationReport,
    value_stock,
)

__all__ = [
    "ABCAssignment",
    "ABCCategory",
    "ABCCategorySummary",
    "ABCReport",
    "classify_abc",
    "ActivityBucket",
    "ActivityReport",
    "BookSiteSummary",
    "summarize_activity",
    "summarize_book_site",
    "AgingClass",
    "AgingEntry",
    "AgingReport",
    "analyze_aging",
    "AttentionFlagger",
    "AttentionItem",
    "AttentionReason",
    "AttentionReport",
    "StockLevel",
    "StockLevelAccumulator",
    "StockLevelSummary",
    "aggregate_stock_levels",
    "StockStatus",
    "StockStatusLine",
    "StockStatusReport",
    "StockThresholds",
    "classify_stock_status",
    "stock_status_report",
    "FirstMatchStrategy",
    "NearestByDateStrategy",
    "OneToOneStrategy",
    "RouteSummary",
    "TransferMatchStrategy",
    "TransferPair",
    "TransferReconciler",
    "TransferReport",
    "strategy_for",
    "BookValuation",
    "ValuationLine",
    "ValuationReport",
    "value_stock",
]
