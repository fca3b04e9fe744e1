"""Database layer - engine, declarative base, immutability listeners."""

from stock_kernel.db.base import Base, LedgerId
from stock_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "LedgerId",
    "build_engine",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
