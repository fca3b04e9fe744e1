"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StockLedgerError:

    StockLedgerError (base)
    |
    +-- MovementError
    |   +-- MovementValidationError
    |   +-- MovementAlreadyAppendedError
    |   +-- MovementImportError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-------------------------------------
Movement        | MOVEMENT_VALIDATION_FAILED    | Record breaks one or more ingestion rules
                | MOVEMENT_ALREADY_APPENDED     | Record already carries a ledger id
                | MOVEMENT_IMPORT_FAILED        | One or more imported rows are invalid
----------------|-------------------------------|-------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | UPDATE/DELETE of a ledger row
----------------|-------------------------------|-------------------------------------
Configuration   | CONFIGURATION_INVALID         | YAML config has unknown keys/bad values

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by type and read structured attributes, never parse messages:

    try:
        store.append(record)
    except MovementValidationError as e:
        return {"error": e.code, "violations": [v.code for v in e.violations]}

Engines never raise for representable states (no cost, no transfer match,
zero or negative stock).  They raise ``ValueError`` only for programmer
errors such as inverted periods or inconsistent thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass


class StockLedgerError(Exception):
    """
    Base exception for all stock ledger errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_LEDGER_ERROR"


# Movement-related exceptions


@dataclass(frozen=True)
class Violation:
    """A single broken ingestion rule."""

    code: str
    field: str
    message: str


class MovementError(StockLedgerError):
    """Base exception for movement-related errors."""

    code: str = "MOVEMENT_ERROR"


class MovementValidationError(MovementError):
    """
    Movement record failed ingestion validation.

    Carries every violated rule, not just the first, so callers can report
    all problems at once.
    """

    code: str = "MOVEMENT_VALIDATION_FAILED"

    def __init__(self, violations: tuple[Violation, ...] | list[Violation]):
        self.violations = tuple(violations)
        details = "; ".join(v.message for v in self.violations)
        super().__init__(f"Movement rejected ({len(self.violations)} violation(s)): {details}")

    @property
    def violation_codes(self) -> tuple[str, ...]:
        return tuple(v.code for v in self.violations)


class MovementAlreadyAppendedError(MovementError):
    """Record already has a ledger identity and cannot be appended again."""

    code: str = "MOVEMENT_ALREADY_APPENDED"

    def __init__(self, movement_id: int):
        self.movement_id = movement_id
        super().__init__(f"Movement already appended with id {movement_id}")


class MovementImportError(MovementError):
    """
    One or more rows of an import file could not be turned into movements.

    ``row_errors`` maps the 1-based source row number to its violations.
    """

    code: str = "MOVEMENT_IMPORT_FAILED"

    def __init__(self, source: str, row_errors: dict[int, tuple[Violation, ...]]):
        self.source = source
        self.row_errors = dict(row_errors)
        rows = ", ".join(str(r) for r in sorted(self.row_errors))
        super().__init__(f"Import of {source} failed on row(s): {rows}")


# Immutability exceptions


class ImmutabilityError(StockLedgerError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(StockLedgerError):
    """Configuration file contains unknown keys or invalid values."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, source: str, problems: list[str] | tuple[str, ...]):
        self.source = source
        self.problems = tuple(problems)
        super().__init__(
            f"Invalid configuration {source}: " + "; ".join(self.problems)
        )
