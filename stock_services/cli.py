"""
stock-ledger -- command-line inventory reports over a movement file.

Loads movements from a CSV or XLSX file into an in-memory ledger, then
prints one report as a plain-text table or JSON.

Usage:
    stock-ledger movements.csv levels
    stock-ledger movements.xlsx --as-of 2024-06-30 valuation --site 1
    stock-ledger movements.csv --json transfers --strategy one_to_one
    stock-ledger movements.csv --config ledger.yaml aging --dead-days 365

Exit codes:
    0  success
    1  import, validation or configuration failure
    2  usage error
"""

from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path

from stock_config import get_active_config
from stock_engines.stock_levels import StockLevelSummary
from stock_engines.transfers import STRATEGIES
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.exceptions import (
    ConfigurationError,
    MovementImportError,
    MovementValidationError,
)
from stock_kernel.logging_config import configure_logging, get_logger
from stock_kernel.services.ledger_store import InMemoryLedgerStore
from stock_services import presentation
from stock_services.importers import read_movements
from stock_services.stock_ledger_service import StockLedgerService

logger = get_logger("services.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 date/time: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-ledger",
        description="Derived inventory reports from a stock movement file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", type=Path, help="Movement file (.csv or .xlsx).")
    parser.add_argument("--company", type=int, default=1,
                        help="Company id for rows without one (default: 1).")
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML configuration file (default: packaged defaults).")
    parser.add_argument("--as-of", type=_timestamp, default=None,
                        help="Report cutoff, ISO-8601 (default: now, UTC).")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of tables.")

    commands = parser.add_subparsers(dest="command", required=True)

    levels = commands.add_parser("levels", help="Current stock per site and book.")
    levels.add_argument("--site", type=int, default=None)

    valuation = commands.add_parser("valuation", help="Weighted-average stock valuation.")
    valuation.add_argument("--site", type=int, default=None)

    abc = commands.add_parser("abc", help="ABC value classification.")
    abc.add_argument("--start", type=_timestamp, default=None,
                     help="Period start (default: 365 days before the cutoff).")
    abc.add_argument("--end", type=_timestamp, default=None,
                     help="Period end (default: the cutoff).")

    aging = commands.add_parser("aging", help="Slow-moving and dead stock.")
    aging.add_argument("--slow-days", type=int, default=None)
    aging.add_argument("--dead-days", type=int, default=None)

    attention = commands.add_parser("attention", help="Recent movements needing review.")
    attention.add_argument("--high-value", type=_decimal, default=None)
    attention.add_argument("--high-quantity", type=int, default=None)

    transfers = commands.add_parser("transfers", help="Transfer reconciliation.")
    transfers.add_argument("--start", type=_timestamp, default=None)
    transfers.add_argument("--end", type=_timestamp, default=None)
    transfers.add_argument("--strategy", choices=sorted(STRATEGIES), default=None)

    activity = commands.add_parser("activity", help="Movement activity summary.")
    activity.add_argument("--start", type=_timestamp, default=None,
                          help="Period start (default: 30 days before the cutoff).")
    activity.add_argument("--end", type=_timestamp, default=None,
                          help="Period end (default: the cutoff).")

    commands.add_parser("status", help="Stock status against reorder thresholds.")

    return parser


def _run(service: StockLedgerService, args: argparse.Namespace):
    snapshot = service.snapshot()
    as_of = snapshot.taken_at

    if args.command == "levels":
        summary = service.current_stock_levels(snapshot=snapshot)
        if args.site is not None:
            summary = StockLevelSummary(
                as_of=summary.as_of,
                levels={level.key: level for level in summary.for_site(args.site)},
            )
        return summary, presentation.render_stock_levels
    if args.command == "valuation":
        return service.valuation(site_id=args.site, snapshot=snapshot), presentation.render_valuation
    if args.command == "abc":
        report = service.abc_analysis(
            period_start=args.start or as_of - timedelta(days=365),
            period_end=args.end or as_of,
            snapshot=snapshot,
        )
        return report, presentation.render_abc
    if args.command == "aging":
        report = service.aging_report(
            slow_moving_days=args.slow_days,
            dead_stock_days=args.dead_days,
            snapshot=snapshot,
        )
        return report, presentation.render_aging
    if args.command == "attention":
        report = service.attention_report(
            high_value_threshold=args.high_value,
            high_quantity_threshold=args.high_quantity,
            snapshot=snapshot,
        )
        return report, presentation.render_attention
    if args.command == "transfers":
        report = service.transfer_report(
            start=args.start, end=args.end, strategy=args.strategy, snapshot=snapshot,
        )
        return report, presentation.render_transfers
    if args.command == "activity":
        report = service.activity_report(
            start=args.start or as_of - timedelta(days=30),
            end=args.end or as_of,
            snapshot=snapshot,
        )
        return report, presentation.render_activity
    return service.stock_status_report(snapshot=snapshot), presentation.render_stock_status


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_USAGE

    try:
        config = get_active_config(args.config)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    configure_logging(level=config.log_level)

    clock: Clock = DeterministicClock(args.as_of) if args.as_of else SystemClock()

    try:
        movements = read_movements(args.file, clock=clock, default_company_id=args.company)
    except MovementImportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        for row, violations in sorted(exc.row_errors.items()):
            for violation in violations:
                print(f"  row {row}: [{violation.code}] {violation.message}", file=sys.stderr)
        return EXIT_FAILURE
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    store = InMemoryLedgerStore()
    service = StockLedgerService(
        store=store, company_id=args.company, config=config, clock=clock,
    )
    try:
        service.append_movements(m for m in movements if m.company_id == args.company)
    except MovementValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        report, render = _run(service, args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    print(presentation.to_json(report) if args.json else render(report))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
