"""Tests for YAML configuration loading and validation."""

from decimal import Decimal

import pytest

from stock_config import (
    DEFAULT_CONFIG_PATH,
    LedgerConfig,
    compute_checksum,
    get_active_config,
    load_config,
    parse_config,
)
from stock_kernel.exceptions import ConfigurationError


class TestDefaults:

    def test_packaged_defaults_match_schema(self):
        assert load_config(DEFAULT_CONFIG_PATH) == LedgerConfig()

    def test_get_active_config_without_path(self, captured_logs):
        config = get_active_config()

        assert config == LedgerConfig()
        trace = next(r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE")
        assert trace["checksum"] == compute_checksum(config)
        assert trace["source"] == str(DEFAULT_CONFIG_PATH)

    def test_missing_file_falls_back_to_defaults(self, tmp_path, captured_logs):
        config = get_active_config(tmp_path / "absent.yaml")

        assert config == LedgerConfig()
        assert any(r["message"] == "config_file_missing" for r in captured_logs())


class TestParseConfig:

    def test_partial_override(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(
            "log_level: debug\n"
            "attention:\n"
            "  high_value_threshold: 2500.50\n"
            "transfers:\n"
            "  strategy: one_to_one\n"
        )
        config = get_active_config(path)

        assert config.attention.high_value_threshold == Decimal("2500.5")
        assert config.attention.high_quantity_threshold == 100
        assert config.transfers.strategy == "one_to_one"
        assert config.transfers.window_days == 7
        assert config.log_level == "DEBUG"

    def test_empty_file_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == LedgerConfig()

    def test_every_problem_reported(self):
        data = {
            "colour": "blue",
            "aging": {"slow_moving_days": "ninety", "stale_days": 3},
            "attention": {"high_value_threshold": -1},
            "abc": {"a_threshold": 90, "b_threshold": 85},
            "transfers": {"strategy": "closest"},
            "stock_status": {"minimum_stock": 50},
        }
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(data, source="test.yaml")

        problems = exc_info.value.problems
        assert "unknown key colour" in problems
        assert "unknown key aging.stale_days" in problems
        assert any(p.startswith("aging.slow_moving_days must be an integer") for p in problems)
        assert "attention.high_value_threshold must be a finite non-negative number" in problems
        assert "abc.a_threshold cannot exceed abc.b_threshold" in problems
        assert any(p.startswith("transfers.strategy must be one of") for p in problems)
        assert (
            "stock_status.minimum_stock cannot exceed stock_status.reorder_level" in problems
        )
        assert exc_info.value.source == "test.yaml"
        assert exc_info.value.code == "CONFIGURATION_INVALID"

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="aging must be a mapping"):
            parse_config({"aging": [90, 180]})

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_config(["aging"])

    def test_boolean_is_not_an_integer(self):
        with pytest.raises(ConfigurationError):
            parse_config({"transfers": {"window_days": True}})

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError, match="log_level"):
            parse_config({"log_level": "verbose"})

    def test_aging_order(self):
        with pytest.raises(ConfigurationError, match="slow_moving_days cannot exceed"):
            parse_config({"aging": {"slow_moving_days": 200}})


class TestChecksum:

    def test_stable_and_sensitive(self):
        assert compute_checksum(LedgerConfig()) == compute_checksum(parse_config({}))
        changed = parse_config({"aging": {"slow_moving_days": 30}})
        assert compute_checksum(changed) != compute_checksum(LedgerConfig())
