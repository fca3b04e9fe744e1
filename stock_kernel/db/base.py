"""
Module: stock_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models.  Provides the
    type annotation map for consistent column types.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Decimal precision: Python Decimal maps to ExactDecimal, which is
      Numeric(38, 9) on PostgreSQL and an exact decimal string on SQLite.
      NEVER use float for costs.
    - Timestamps: datetime maps to DateTime(timezone=True).
    - Ledger identities are BIGINT sequences (INTEGER on SQLite so the
      column aliases ROWID and autoincrements).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

# BIGINT everywhere except SQLite, which only autoincrements INTEGER keys.
LedgerId = BigInteger().with_variant(Integer, "sqlite")


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through float.

    SQLite has no decimal storage class and would keep NUMERIC values as
    REAL, so there the value is written as its string form and parsed back
    on load.  Every other dialect gets a plain Numeric(38, 9).

    Guarantees:
        - process_bind_param: Decimal -> str on SQLite.
        - process_result_value: str -> Decimal on SQLite.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = Numeric(38, 9)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(Numeric(38, 9))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return Decimal(value)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to ExactDecimal.
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: ExactDecimal(),
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }
