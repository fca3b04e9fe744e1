"""
Ledger configuration schema.

Frozen dataclasses that the YAML loader produces.  Every field has a
default, so an empty file (or no file) yields the stock behaviour of the
engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

TRANSFER_STRATEGIES = ("first_match", "nearest_by_date", "one_to_one")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AgingConfig:
    slow_moving_days: int = 90
    dead_stock_days: int = 180


@dataclass(frozen=True)
class AttentionConfig:
    high_value_threshold: Decimal = Decimal("1000")
    high_quantity_threshold: int = 100
    large_adjustment_threshold: int = 10
    lookback_days: int = 30


@dataclass(frozen=True)
class ABCConfig:
    a_threshold: Decimal = Decimal("80")
    b_threshold: Decimal = Decimal("95")


@dataclass(frozen=True)
class TransferConfig:
    strategy: str = "first_match"
    window_days: int = 7


@dataclass(frozen=True)
class StockStatusConfig:
    minimum_stock: int = 5
    reorder_level: int = 10
    maximum_stock: int = 100


@dataclass(frozen=True)
class LedgerConfig:
    """Complete runtime configuration of the stock ledger services."""

    aging: AgingConfig = field(default_factory=AgingConfig)
    attention: AttentionConfig = field(default_factory=AttentionConfig)
    abc: ABCConfig = field(default_factory=ABCConfig)
    transfers: TransferConfig = field(default_factory=TransferConfig)
    stock_status: StockStatusConfig = field(default_factory=StockStatusConfig)
    log_level: str = "INFO"
