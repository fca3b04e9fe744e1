"""
Pytest fixtures for the stock ledger test suite.

Provides:
- Structured logging configuration and log capture
- Deterministic clock
- A record builder for engine tests (bypasses constructor validation so
  tests control ids and timestamps exactly)
- In-memory SQLite engine and session factory for SQL store tests
"""

import itertools
import json
import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from stock_kernel.db.engine import build_engine, create_tables, drop_tables
from stock_kernel.db.immutability import unregister_immutability_listeners
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# Base instant used by the record builder; ``days=n`` offsets from here.
T0 = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
NOW = datetime(2024, 6, 30, 12, 0, tzinfo=UTC)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            store.append(record)
            logs = captured_logs()
            assert any(r["message"] == "movement_appended" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(NOW)


# =============================================================================
# Records
# =============================================================================


@pytest.fixture
def make_record():
    """
    Build a ``MovementRecord`` with sequential ids.

    ``days`` offsets the timestamp from T0; ``timestamp`` overrides it.
    Pass ``id=None`` to build a record that was never appended.
    """
    ids = itertools.count(1)

    def _make(
        movement_type: MovementType,
        quantity: int,
        *,
        site_id: int = 1,
        book_id: int = 1,
        company_id: int = 1,
        unit_cost=None,
        days: float = 0,
        timestamp: datetime | None = None,
        **kwargs,
    ) -> MovementRecord:
        if "id" not in kwargs:
            kwargs["id"] = next(ids)
        return MovementRecord(
            company_id=company_id,
            site_id=site_id,
            book_id=book_id,
            movement_type=movement_type,
            quantity=quantity,
            timestamp=timestamp or T0 + timedelta(days=days),
            unit_cost=Decimal(unit_cost) if unit_cost is not None else None,
            **kwargs,
        )

    return _make


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def sqlite_engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    yield sessionmaker(bind=sqlite_engine, expire_on_commit=False)
    unregister_immutability_listeners()
