"""
Movement importers for CSV and XLSX files.

Reads a header row plus one movement per row.  Header names are matched
case- and space-insensitively (``"Movement Type"``, ``movement_type`` and
``movement-type`` are the same column).  Every row goes through the
validated constructor path; failures from all rows are collected and
raised together as one ``MovementImportError``.

Row numbers are the 1-based line/row numbers of the source file, so the
header is row 1 and the first movement is row 2.
"""

from __future__ import annotations

import csv
import re
from collections.abc import Iterator
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import openpyxl

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.movement import MovementRecord
from stock_kernel.domain.movement_factory import build_movement
from stock_kernel.exceptions import MovementImportError, MovementValidationError, Violation
from stock_kernel.logging_config import get_logger

logger = get_logger("services.importers")

REQUIRED_COLUMNS = ("site_id", "book_id", "movement_type", "quantity")

_INT_COLUMNS = (
    "company_id", "site_id", "book_id", "quantity", "reference_id",
    "from_site_id", "to_site_id", "created_by",
)

_ALIASES = {
    "type": "movement_type",
    "movement_date": "timestamp",
    "date": "timestamp",
    "cost": "unit_cost",
    "notes": "description",
}

_KNOWN_COLUMNS = frozenset(_INT_COLUMNS) | {
    "movement_type", "unit_cost", "reference_type", "timestamp", "description",
}


def normalize_column(name: Any) -> str:
    """``" Movement Type "`` -> ``"movement_type"``."""
    if name is None:
        return ""
    key = re.sub(r"[\s\-]+", "_", str(name).strip().lower())
    return _ALIASES.get(key, key)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(value: Any, column: str) -> tuple[int | None, Violation | None]:
    if _is_blank(value):
        return None, None
    if isinstance(value, bool):
        return None, Violation("INVALID_INTEGER", column, f"{column} must be an integer")
    if isinstance(value, int):
        return value, None
    if isinstance(value, float) and value.is_integer():
        return int(value), None
    try:
        return int(str(value).strip()), None
    except ValueError:
        return None, Violation(
            "INVALID_INTEGER", column, f"{column} must be an integer, got {value!r}",
        )


def _parse_timestamp(value: Any) -> tuple[datetime | None, Violation | None]:
    if _is_blank(value):
        return None, None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            return None, Violation(
                "INVALID_TIMESTAMP", "timestamp",
                f"timestamp must be an ISO-8601 date/time, got {value!r}",
            )
    # spreadsheets carry no timezone; naive values are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed, None


def _text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    return str(value).strip()


def _cost(value: Any) -> Any:
    if _is_blank(value):
        return None
    if isinstance(value, float):
        return Decimal(repr(value))
    return value


def _row_to_movement(
    row: dict[str, Any],
    default_company_id: int | None,
    clock: Clock | None,
) -> MovementRecord:
    violations: list[Violation] = []
    ints: dict[str, int | None] = {}
    for column in _INT_COLUMNS:
        ints[column], problem = _parse_int(row.get(column), column)
        if problem is not None:
            violations.append(problem)

    timestamp, problem = _parse_timestamp(row.get("timestamp"))
    if problem is not None:
        violations.append(problem)

    if violations:
        raise MovementValidationError(violations)

    company_id = ints["company_id"] if ints["company_id"] is not None else default_company_id

    return build_movement(
        company_id=company_id,
        site_id=ints["site_id"],
        book_id=ints["book_id"],
        movement_type=_text(row.get("movement_type")) or "",
        quantity=ints["quantity"],
        unit_cost=_cost(row.get("unit_cost")),
        reference_type=_text(row.get("reference_type")),
        reference_id=ints["reference_id"],
        from_site_id=ints["from_site_id"],
        to_site_id=ints["to_site_id"],
        timestamp=timestamp,
        created_by=ints["created_by"],
        description=_text(row.get("description")),
        clock=clock,
    )


def _read_csv(path: Path) -> Iterator[tuple[int, list[Any]]]:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        for line_number, row in enumerate(csv.reader(f), start=1):
            yield line_number, row


def _read_xlsx(path: Path) -> Iterator[tuple[int, list[Any]]]:
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = wb.active
        for row_number, row in enumerate(sheet.iter_rows(values_only=True), start=1):
            yield row_number, list(row)
    finally:
        wb.close()


def _read_rows(path: Path) -> Iterator[tuple[int, list[Any]]]:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return _read_csv(path)
    if suffix in (".xlsx", ".xlsm"):
        return _read_xlsx(path)
    raise ValueError(f"Unsupported movement file type: {path.suffix or path.name}")


def read_movements(
    path: Path | str,
    clock: Clock | None = None,
    default_company_id: int | None = None,
) -> list[MovementRecord]:
    """
    Read and validate every movement in ``path``.

    Args:
        path: ``.csv`` or ``.xlsx`` file with a header row.
        clock: Supplies the timestamp of rows without one.
        default_company_id: Used for rows without a ``company_id`` column
            or value.

    Raises:
        MovementImportError: one or more rows are invalid (nothing is
            returned in that case).
        ValueError: unsupported file extension.
        FileNotFoundError: ``path`` does not exist.
    """
    path = Path(path)
    rows = _read_rows(path)

    header: list[str] | None = None
    movements: list[MovementRecord] = []
    row_errors: dict[int, tuple[Violation, ...]] = {}

    for row_number, values in rows:
        if all(_is_blank(v) for v in values):
            continue
        if header is None:
            header = [normalize_column(v) for v in values]
            missing = [c for c in REQUIRED_COLUMNS if c not in header]
            if missing:
                raise MovementImportError(str(path), {
                    row_number: tuple(
                        Violation("MISSING_COLUMN", c, f"Required column {c} is missing")
                        for c in missing
                    ),
                })
            unknown = [c for c in header if c and c not in _KNOWN_COLUMNS]
            if unknown:
                logger.warning("import_columns_ignored", extra={
                    "source": str(path), "columns": unknown,
                })
            continue

        row = {
            column: value
            for column, value in zip(header, values)
            if column in _KNOWN_COLUMNS
        }
        try:
            movements.append(_row_to_movement(row, default_company_id, clock))
        except MovementValidationError as exc:
            row_errors[row_number] = exc.violations

    if row_errors:
        logger.warning("movement_import_failed", extra={
            "source": str(path),
            "failed_rows": sorted(row_errors),
            "valid_rows": len(movements),
        })
        raise MovementImportError(str(path), row_errors)

    logger.info("movements_imported", extra={
        "source": str(path),
        "movement_count": len(movements),
    })
    return movements
