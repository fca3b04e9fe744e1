"""
stock_services -- orchestration over the stock ledger kernel and engines.

Contains the ``StockLedgerService`` facade, the movement importers, the
presentation helpers and the ``stock-ledger`` command-line entry point.
"""

from stock_services.stock_ledger_service import (
    InventoryOverview,
    LedgerSnapshot,
    StockLedgerService,
)

__all__ = ["InventoryOverview", "LedgerSnapshot", "StockLedgerService"]
