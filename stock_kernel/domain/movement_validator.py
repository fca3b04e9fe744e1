"""
Movement Validator -- ingestion rules for the stock ledger.

Responsibility:
    Checks a ``MovementRecord`` against every ingestion rule and reports all
    violations together.  The ledger must only ever contain records that
    pass ``validate_movement``.

Architecture position:
    Kernel > Domain -- pure function, zero I/O.  Called by the movement
    factory before a record is handed out and by every ledger store before
    a record is appended.

Failure modes:
    - ``ensure_valid`` raises ``MovementValidationError`` carrying every
      violation; ``validate_movement`` never raises.
"""

from __future__ import annotations

from decimal import Decimal

from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.exceptions import MovementValidationError, Violation
from stock_kernel.logging_config import get_logger

logger = get_logger("domain.movement_validator")

MAX_QUANTITY = 99_999
MAX_DESCRIPTION_LENGTH = 500
MAX_REFERENCE_TYPE_LENGTH = 20


def validate_movement(record: MovementRecord) -> tuple[Violation, ...]:
    """
    Return every rule the record breaks (empty tuple when valid).

    Rules:
        - company, site and book ids are present
        - movement type is a defined variant
        - quantity is a non-zero int within +/- MAX_QUANTITY, and a
          non-negative magnitude for every type except ADJUSTMENT
        - TRANSFER_OUT has a ``to_site_id`` different from ``site_id``;
          TRANSFER_IN has a ``from_site_id`` different from ``site_id``;
          neither site link appears on any other type
        - reference type and reference id are both present or both absent,
          and the reference type fits MAX_REFERENCE_TYPE_LENGTH
        - unit cost, if present, is a non-negative Decimal
        - timestamp is timezone-aware
        - description fits MAX_DESCRIPTION_LENGTH
    """
    violations: list[Violation] = []

    for field_name in ("company_id", "site_id", "book_id"):
        if getattr(record, field_name) is None:
            violations.append(Violation(
                "MISSING_IDENTIFIER", field_name, f"{field_name} is required",
            ))

    movement_type = record.movement_type
    if not isinstance(movement_type, MovementType):
        violations.append(Violation(
            "INVALID_MOVEMENT_TYPE", "movement_type",
            f"Invalid movement type: {movement_type!r}",
        ))
        movement_type = None

    violations.extend(_quantity_violations(record, movement_type))
    violations.extend(_transfer_violations(record, movement_type))

    has_type = bool(record.reference_type)
    has_id = record.reference_id is not None
    if has_type and not has_id:
        violations.append(Violation(
            "REFERENCE_ID_MISSING", "reference_id",
            "Reference type specified but reference ID is missing",
        ))
    if has_id and not has_type:
        violations.append(Violation(
            "REFERENCE_TYPE_MISSING", "reference_type",
            "Reference ID specified but reference type is missing",
        ))
    if has_type and len(record.reference_type) > MAX_REFERENCE_TYPE_LENGTH:
        violations.append(Violation(
            "REFERENCE_TYPE_TOO_LONG", "reference_type",
            f"Reference type cannot exceed {MAX_REFERENCE_TYPE_LENGTH} characters",
        ))

    if record.unit_cost is not None:
        if not isinstance(record.unit_cost, Decimal) or not record.unit_cost.is_finite():
            violations.append(Violation(
                "INVALID_UNIT_COST", "unit_cost", "Unit cost must be a finite Decimal",
            ))
        elif record.unit_cost < 0:
            violations.append(Violation(
                "NEGATIVE_UNIT_COST", "unit_cost", "Unit cost cannot be negative",
            ))

    if record.timestamp is None or record.timestamp.tzinfo is None:
        violations.append(Violation(
            "NAIVE_TIMESTAMP", "timestamp", "Timestamp must be timezone-aware",
        ))

    if record.description is not None and len(record.description) > MAX_DESCRIPTION_LENGTH:
        violations.append(Violation(
            "DESCRIPTION_TOO_LONG", "description",
            f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters",
        ))

    return tuple(violations)


def _quantity_violations(
    record: MovementRecord,
    movement_type: MovementType | None,
) -> list[Violation]:
    quantity = record.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return [Violation("INVALID_QUANTITY", "quantity", "Quantity must be an integer")]

    violations: list[Violation] = []
    if quantity == 0:
        violations.append(Violation("QUANTITY_ZERO", "quantity", "Quantity cannot be zero"))
    if abs(quantity) > MAX_QUANTITY:
        violations.append(Violation(
            "QUANTITY_OUT_OF_RANGE", "quantity",
            f"Quantity must be between -{MAX_QUANTITY:,} and {MAX_QUANTITY:,}",
        ))
    if (
        movement_type is not None
        and movement_type != MovementType.ADJUSTMENT
        and quantity < 0
    ):
        violations.append(Violation(
            "NEGATIVE_MAGNITUDE", "quantity",
            f"{movement_type.value} quantity must be stored as a non-negative magnitude",
        ))
    return violations


def _transfer_violations(
    record: MovementRecord,
    movement_type: MovementType | None,
) -> list[Violation]:
    violations: list[Violation] = []

    if movement_type == MovementType.TRANSFER_OUT:
        if record.to_site_id is None:
            violations.append(Violation(
                "MISSING_TO_SITE", "to_site_id",
                "Transfer Out movements must specify destination site",
            ))
        elif record.to_site_id == record.site_id:
            violations.append(Violation(
                "TRANSFER_TO_SAME_SITE", "to_site_id", "Cannot transfer to the same site",
            ))
    elif record.to_site_id is not None and movement_type is not None:
        violations.append(Violation(
            "UNEXPECTED_TO_SITE", "to_site_id",
            "Destination site is only allowed on Transfer Out movements",
        ))

    if movement_type == MovementType.TRANSFER_IN:
        if record.from_site_id is None:
            violations.append(Violation(
                "MISSING_FROM_SITE", "from_site_id",
                "Transfer In movements must specify source site",
            ))
        elif record.from_site_id == record.site_id:
            violations.append(Violation(
                "TRANSFER_FROM_SAME_SITE", "from_site_id", "Cannot transfer from the same site",
            ))
    elif record.from_site_id is not None and movement_type is not None:
        violations.append(Violation(
            "UNEXPECTED_FROM_SITE", "from_site_id",
            "Source site is only allowed on Transfer In movements",
        ))

    return violations


def ensure_valid(record: MovementRecord) -> MovementRecord:
    """
    Return ``record`` unchanged if it passes every rule.

    Raises:
        MovementValidationError: listing all violations.
    """
    violations = validate_movement(record)
    if violations:
        logger.warning("movement_rejected", extra={
            "movement_type": getattr(record.movement_type, "value", str(record.movement_type)),
            "site_id": record.site_id,
            "book_id": record.book_id,
            "violation_codes": [v.code for v in violations],
        })
        raise MovementValidationError(violations)
    return record
