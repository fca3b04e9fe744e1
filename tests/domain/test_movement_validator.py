"""
Tests for movement ingestion rules.

Every rule is checked in isolation, then a record breaking several rules
must report all of them together.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from stock_kernel.domain.movement import MovementRecord, MovementType
from stock_kernel.domain.movement_validator import (
    MAX_DESCRIPTION_LENGTH,
    MAX_QUANTITY,
    MAX_REFERENCE_TYPE_LENGTH,
    ensure_valid,
    validate_movement,
)
from stock_kernel.exceptions import MovementValidationError

T = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _record(**overrides) -> MovementRecord:
    fields = dict(
        company_id=1, site_id=1, book_id=7,
        movement_type=MovementType.STOCK_IN, quantity=10, timestamp=T,
    )
    fields.update(overrides)
    return MovementRecord(**fields)


def _codes(record) -> set[str]:
    return {v.code for v in validate_movement(record)}


class TestValidRecords:

    def test_plain_receipt(self):
        assert validate_movement(_record()) == ()

    def test_negative_adjustment(self):
        assert validate_movement(_record(movement_type=MovementType.ADJUSTMENT, quantity=-5)) == ()

    def test_transfer_legs(self):
        out = _record(movement_type=MovementType.TRANSFER_OUT, to_site_id=2)
        inbound = _record(movement_type=MovementType.TRANSFER_IN, site_id=2, from_site_id=1)
        assert validate_movement(out) == ()
        assert validate_movement(inbound) == ()

    def test_quantity_at_limits(self):
        assert validate_movement(_record(quantity=MAX_QUANTITY)) == ()
        assert validate_movement(
            _record(movement_type=MovementType.ADJUSTMENT, quantity=-MAX_QUANTITY)
        ) == ()

    def test_zero_unit_cost_allowed(self):
        assert validate_movement(_record(unit_cost=Decimal("0"))) == ()


class TestQuantityRules:

    def test_zero_quantity(self):
        assert "QUANTITY_ZERO" in _codes(_record(quantity=0))

    def test_out_of_range(self):
        assert "QUANTITY_OUT_OF_RANGE" in _codes(_record(quantity=MAX_QUANTITY + 1))

    def test_negative_magnitude_on_receipt(self):
        assert "NEGATIVE_MAGNITUDE" in _codes(_record(quantity=-3))

    @pytest.mark.parametrize("quantity", [1.5, "10", True])
    def test_non_integer(self, quantity):
        assert _codes(_record(quantity=quantity)) == {"INVALID_QUANTITY"}


class TestTransferRules:

    def test_transfer_out_needs_destination(self):
        assert "MISSING_TO_SITE" in _codes(_record(movement_type=MovementType.TRANSFER_OUT))

    def test_transfer_out_to_same_site(self):
        record = _record(movement_type=MovementType.TRANSFER_OUT, to_site_id=1)
        assert "TRANSFER_TO_SAME_SITE" in _codes(record)

    def test_transfer_in_needs_source(self):
        assert "MISSING_FROM_SITE" in _codes(_record(movement_type=MovementType.TRANSFER_IN))

    def test_transfer_in_from_same_site(self):
        record = _record(movement_type=MovementType.TRANSFER_IN, from_site_id=1)
        assert "TRANSFER_FROM_SAME_SITE" in _codes(record)

    def test_site_links_rejected_on_other_types(self):
        codes = _codes(_record(to_site_id=2, from_site_id=3))
        assert {"UNEXPECTED_TO_SITE", "UNEXPECTED_FROM_SITE"} <= codes


class TestOtherRules:

    def test_reference_pairing(self):
        assert "REFERENCE_ID_MISSING" in _codes(_record(reference_type="Registration"))
        assert "REFERENCE_TYPE_MISSING" in _codes(_record(reference_id=4))

    def test_negative_unit_cost(self):
        assert "NEGATIVE_UNIT_COST" in _codes(_record(unit_cost=Decimal("-1")))

    def test_non_finite_unit_cost(self):
        assert "INVALID_UNIT_COST" in _codes(_record(unit_cost=Decimal("NaN")))

    def test_naive_timestamp(self):
        assert "NAIVE_TIMESTAMP" in _codes(_record(timestamp=datetime(2024, 3, 1)))

    def test_description_length(self):
        assert "DESCRIPTION_TOO_LONG" in _codes(
            _record(description="x" * (MAX_DESCRIPTION_LENGTH + 1))
        )

    def test_reference_type_length(self):
        fits = _record(reference_type="x" * MAX_REFERENCE_TYPE_LENGTH, reference_id=1)
        too_long = _record(reference_type="x" * (MAX_REFERENCE_TYPE_LENGTH + 1), reference_id=1)
        assert "REFERENCE_TYPE_TOO_LONG" not in _codes(fits)
        assert "REFERENCE_TYPE_TOO_LONG" in _codes(too_long)

    def test_missing_identifiers(self):
        codes = [v for v in validate_movement(_record(site_id=None, book_id=None))]
        assert {v.field for v in codes if v.code == "MISSING_IDENTIFIER"} == {"site_id", "book_id"}

    def test_unknown_type(self):
        assert "INVALID_MOVEMENT_TYPE" in _codes(_record(movement_type="shrinkage"))


class TestEnsureValid:

    def test_returns_record_when_valid(self):
        record = _record()
        assert ensure_valid(record) is record

    def test_reports_every_violation(self, captured_logs):
        """A record breaking three rules carries all three codes."""
        record = _record(quantity=0, unit_cost=Decimal("-2"), reference_id=9)
        with pytest.raises(MovementValidationError) as exc_info:
            ensure_valid(record)

        assert set(exc_info.value.violation_codes) == {
            "QUANTITY_ZERO", "NEGATIVE_UNIT_COST", "REFERENCE_TYPE_MISSING",
        }
        assert exc_info.value.code == "MOVEMENT_VALIDATION_FAILED"
        logs = captured_logs()
        assert any(r["message"] == "movement_rejected" for r in logs)
