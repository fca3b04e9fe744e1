"""Ledger store backends."""

from stock_kernel.services.ledger_store import InMemoryLedgerStore, LedgerStore
from stock_kernel.services.sql_ledger_store import SqlLedgerStore

__all__ = ["InMemoryLedgerStore", "LedgerStore", "SqlLedgerStore"]
