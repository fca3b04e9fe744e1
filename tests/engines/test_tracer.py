"""Tests for the engine trace decorator."""

import pytest

from stock_engines.tracer import compute_input_fingerprint, traced_engine


class TestComputeInputFingerprint:

    def test_deterministic(self):
        a = compute_input_fingerprint(("x", "y"), {"x": 1, "y": {"b": 2, "a": 1}})
        b = compute_input_fingerprint(("x", "y"), {"y": {"a": 1, "b": 2}, "x": 1})
        assert a == b
        assert len(a) == 16

    def test_selected_fields_only(self):
        a = compute_input_fingerprint(("x",), {"x": 1, "noise": 1})
        b = compute_input_fingerprint(("x",), {"x": 1, "noise": 2})
        assert a == b

    def test_values_change_fingerprint(self):
        assert compute_input_fingerprint(("x",), {"x": 1}) != compute_input_fingerprint(
            ("x",), {"x": 2},
        )

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None},
        )


class TestTracedEngine:

    def test_emits_trace(self, captured_logs):
        @traced_engine("demo", "2.1", fingerprint_fields=("limit",))
        def engine(items, limit):
            return sum(items) + limit

        assert engine(items=iter([1, 2]), limit=3) == 6

        trace = next(r for r in captured_logs() if r["message"] == "STOCK_ENGINE_TRACE")
        assert trace["engine_name"] == "demo"
        assert trace["engine_version"] == "2.1"
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("limit",), {"limit": 3},
        )
        assert trace["duration_ms"] >= 0

    def test_exception_propagates_without_trace(self, captured_logs):
        @traced_engine("failing", "1.0")
        def engine():
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            engine()
        assert not any(r["message"] == "STOCK_ENGINE_TRACE" for r in captured_logs())

    def test_preserves_metadata(self):
        @traced_engine("named", "1.0")
        def my_engine():
            """Doc."""

        assert my_engine.__name__ == "my_engine"
        assert my_engine.__doc__ == "Doc."
