"""
Stock Kernel

An append-only stock movement ledger with:
- Validated, immutable movement records
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Pluggable ledger stores (in-memory and SQLAlchemy)
"""

__version__ = "0.1.0"
