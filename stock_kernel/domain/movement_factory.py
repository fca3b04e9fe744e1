"""
Movement Factory -- validated constructors, one per movement type.

Responsibility:
    The only sanctioned way to create ``MovementRecord`` instances.  Each
    constructor normalises its inputs (magnitudes, empty references, cost
    coercion, default timestamp from an injected clock) and validates the
    result before handing it out.

Architecture position:
    Kernel > Domain.  Reads time only through ``Clock``.

Failure modes:
    - ``MovementValidationError`` listing every violated rule.

Usage:
    from stock_kernel.domain.movement_factory import create_stock_in

    receipt = create_stock_in(
        company_id=1, site_id=1, book_id=7, quantity=100,
        unit_cost=Decimal("10.00"), clock=clock,
    )
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.domain.movement_validator import validate_movement
from stock_kernel.exceptions import MovementValidationError, Violation
from stock_kernel.logging_config import get_logger

logger = get_logger("domain.movement_factory")

ADJUSTMENT_REFERENCE_TYPE = "Adjustment"


def _coerce_cost(raw: Decimal | int | str | None) -> tuple[Decimal | None, Violation | None]:
    if raw is None or raw == "":
        return None, None
    if isinstance(raw, Decimal):
        return raw, None
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        return Decimal(str(raw).strip()), None
    except (InvalidOperation, ValueError):
        return None, Violation(
            "INVALID_UNIT_COST", "unit_cost", f"Unit cost is not a number: {raw!r}",
        )


def build_movement(
    *,
    company_id: int,
    site_id: int,
    book_id: int,
    movement_type: MovementType | str,
    quantity: int,
    unit_cost: Decimal | int | str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    from_site_id: int | None = None,
    to_site_id: int | None = None,
    timestamp: datetime | None = None,
    created_by: int | None = None,
    description: str | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """
    Build and validate a record of any type.

    ``movement_type`` may be a raw string (enum value or display label); an
    unknown value is reported alongside every other violation rather than
    raised on its own.

    Raises:
        MovementValidationError: if any rule is broken.
    """
    extra: list[Violation] = []

    try:
        parsed_type: MovementType | str = MovementType.parse(movement_type)
    except ValueError:
        parsed_type = movement_type

    cost, cost_violation = _coerce_cost(unit_cost)
    if cost_violation is not None:
        extra.append(cost_violation)

    if timestamp is None:
        timestamp = (clock or SystemClock()).now()

    record = MovementRecord(
        company_id=company_id,
        site_id=site_id,
        book_id=book_id,
        movement_type=parsed_type,
        quantity=quantity,
        timestamp=timestamp,
        unit_cost=cost,
        reference_type=reference_type or None,
        reference_id=reference_id,
        from_site_id=from_site_id,
        to_site_id=to_site_id,
        created_by=created_by,
        description=description,
    )

    violations = extra + list(validate_movement(record))
    if violations:
        logger.warning("movement_construction_rejected", extra={
            "movement_type": str(getattr(parsed_type, "value", parsed_type)),
            "site_id": site_id,
            "book_id": book_id,
            "violation_codes": [v.code for v in violations],
        })
        raise MovementValidationError(violations)

    return record


def _magnitude(quantity: int) -> int:
    return abs(quantity) if isinstance(quantity, int) else quantity


def create_stock_in(
    company_id: int,
    site_id: int,
    book_id: int,
    quantity: int,
    unit_cost: Decimal | int | str | None = None,
    *,
    reference_type: str | None = None,
    reference_id: int | None = None,
    description: str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """Receipt of stock at ``site_id``.  Quantity is stored as a magnitude."""
    return build_movement(
        company_id=company_id,
        site_id=site_id,
        book_id=book_id,
        movement_type=MovementType.STOCK_IN,
        quantity=_magnitude(quantity),
        unit_cost=unit_cost,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description or "Stock received",
        created_by=created_by,
        timestamp=timestamp,
        clock=clock,
    )


def create_stock_out(
    company_id: int,
    site_id: int,
    book_id: int,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    *,
    unit_cost: Decimal | int | str | None = None,
    description: str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """Issue of stock from ``site_id`` (e.g. against a registration)."""
    return build_movement(
        company_id=company_id,
        site_id=site_id,
        book_id=book_id,
        movement_type=MovementType.STOCK_OUT,
        quantity=_magnitude(quantity),
        unit_cost=unit_cost,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description or "Stock issued",
        created_by=created_by,
        timestamp=timestamp,
        clock=clock,
    )


def create_transfer_out(
    company_id: int,
    from_site_id: int,
    to_site_id: int,
    book_id: int,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    *,
    unit_cost: Decimal | int | str | None = None,
    description: str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """Outbound leg of a transfer, recorded at the source site."""
    return build_movement(
        company_id=company_id,
        site_id=from_site_id,
        to_site_id=to_site_id,
        book_id=book_id,
        movement_type=MovementType.TRANSFER_OUT,
        quantity=_magnitude(quantity),
        unit_cost=unit_cost,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description or f"Transfer to site {to_site_id}",
        created_by=created_by,
        timestamp=timestamp,
        clock=clock,
    )


def create_transfer_in(
    company_id: int,
    from_site_id: int,
    to_site_id: int,
    book_id: int,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    *,
    unit_cost: Decimal | int | str | None = None,
    description: str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """Inbound leg of a transfer, recorded at the destination site."""
    return build_movement(
        company_id=company_id,
        site_id=to_site_id,
        from_site_id=from_site_id,
        book_id=book_id,
        movement_type=MovementType.TRANSFER_IN,
        quantity=_magnitude(quantity),
        unit_cost=unit_cost,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description or f"Transfer from site {from_site_id}",
        created_by=created_by,
        timestamp=timestamp,
        clock=clock,
    )


def create_adjustment(
    company_id: int,
    site_id: int,
    book_id: int,
    adjustment_quantity: int,
    reason: str,
    *,
    corrects_movement_id: int | None = None,
    unit_cost: Decimal | int | str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> MovementRecord:
    """
    Signed stock correction.

    The sign of ``adjustment_quantity`` is kept.  When the adjustment
    corrects an earlier movement, it references it as
    ``("Adjustment", corrects_movement_id)``.
    """
    reference_type = ADJUSTMENT_REFERENCE_TYPE if corrects_movement_id is not None else None
    return build_movement(
        company_id=company_id,
        site_id=site_id,
        book_id=book_id,
        movement_type=MovementType.ADJUSTMENT,
        quantity=adjustment_quantity,
        unit_cost=unit_cost,
        reference_type=reference_type,
        reference_id=corrects_movement_id,
        description=reason,
        created_by=created_by,
        timestamp=timestamp,
        clock=clock,
    )


def create_complete_transfer(
    company_id: int,
    from_site_id: int,
    to_site_id: int,
    book_id: int,
    quantity: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    *,
    unit_cost: Decimal | int | str | None = None,
    description: str | None = None,
    created_by: int | None = None,
    timestamp: datetime | None = None,
    clock: Clock | None = None,
) -> tuple[MovementRecord, MovementRecord]:
    """
    Both legs of a transfer with the same timestamp.

    Returns:
        ``(transfer_out, transfer_in)``

    Raises:
        MovementValidationError: with the violations of both legs merged.
    """
    if timestamp is None:
        timestamp = (clock or SystemClock()).now()

    common = dict(
        company_id=company_id,
        from_site_id=from_site_id,
        to_site_id=to_site_id,
        book_id=book_id,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        unit_cost=unit_cost,
        description=description,
        created_by=created_by,
        timestamp=timestamp,
    )

    violations: list[Violation] = []
    legs: list[MovementRecord] = []
    for constructor in (create_transfer_out, create_transfer_in):
        try:
            legs.append(constructor(**common))
        except MovementValidationError as exc:
            violations.extend(v for v in exc.violations if v not in violations)

    if violations:
        raise MovementValidationError(violations)

    transfer_out, transfer_in = legs
    return transfer_out, transfer_in
