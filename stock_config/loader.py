"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the frozen ``stock_config.schema``
dataclasses.  Runtime callers go through ``stock_config.get_active_config()``.

Invariants enforced
-------------------
* Every problem in a file (unknown keys, wrong types, negative values,
  inconsistent thresholds) is collected and reported together in one
  ``ConfigurationError``.
* Omitted keys keep the schema defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity in audit logs.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid content -> ``ConfigurationError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    LOG_LEVELS,
    TRANSFER_STRATEGIES,
    ABCConfig,
    AgingConfig,
    AttentionConfig,
    LedgerConfig,
    StockStatusConfig,
    TransferConfig,
)
from stock_kernel.exceptions import ConfigurationError

_SECTIONS: dict[str, type] = {
    "aging": AgingConfig,
    "attention": AttentionConfig,
    "abc": ABCConfig,
    "transfers": TransferConfig,
    "stock_status": StockStatusConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_int(value: Any, name: str, problems: list[str]) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        problems.append(f"{name} must be an integer, got {value!r}")
        return None
    if value < 0:
        problems.append(f"{name} cannot be negative")
        return None
    return value


def _parse_decimal(value: Any, name: str, problems: list[str]) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        problems.append(f"{name} must be a number, got {value!r}")
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        problems.append(f"{name} must be a number, got {value!r}")
        return None
    if not parsed.is_finite() or parsed < 0:
        problems.append(f"{name} must be a finite non-negative number")
        return None
    return parsed


def _parse_section(
    name: str,
    raw: Any,
    schema: type,
    problems: list[str],
):
    default = schema()
    if raw is None:
        return default
    if not isinstance(raw, dict):
        problems.append(f"{name} must be a mapping")
        return default

    fields = {f.name: f for f in dataclasses.fields(schema)}
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in fields:
            problems.append(f"unknown key {name}.{key}")
            continue
        default_value = getattr(default, key)
        qualified = f"{name}.{key}"
        if isinstance(default_value, Decimal):
            parsed = _parse_decimal(value, qualified, problems)
        elif isinstance(default_value, int):
            parsed = _parse_int(value, qualified, problems)
        else:
            parsed = value if isinstance(value, str) else None
            if parsed is None:
                problems.append(f"{qualified} must be a string, got {value!r}")
        if parsed is not None:
            values[key] = parsed

    return dataclasses.replace(default, **values)


def _cross_field_problems(config: LedgerConfig) -> list[str]:
    problems = []
    if config.aging.slow_moving_days > config.aging.dead_stock_days:
        problems.append("aging.slow_moving_days cannot exceed aging.dead_stock_days")
    if config.abc.a_threshold > config.abc.b_threshold:
        problems.append("abc.a_threshold cannot exceed abc.b_threshold")
    if config.abc.b_threshold > 100:
        problems.append("abc.b_threshold cannot exceed 100")
    if config.transfers.strategy not in TRANSFER_STRATEGIES:
        problems.append(
            f"transfers.strategy must be one of {', '.join(TRANSFER_STRATEGIES)}"
        )
    status = config.stock_status
    if status.minimum_stock > status.reorder_level:
        problems.append("stock_status.minimum_stock cannot exceed stock_status.reorder_level")
    if status.reorder_level > status.maximum_stock:
        problems.append("stock_status.reorder_level cannot exceed stock_status.maximum_stock")
    if config.log_level not in LOG_LEVELS:
        problems.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")
    return problems


def parse_config(data: dict[str, Any], source: str = "<memory>") -> LedgerConfig:
    """
    Parse a raw mapping into a ``LedgerConfig``.

    Raises:
        ConfigurationError: listing every problem found.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(source, ["top level must be a mapping"])

    problems: list[str] = []
    sections = {}
    for key in data:
        if key not in _SECTIONS and key != "log_level":
            problems.append(f"unknown key {key}")
    for name, schema in _SECTIONS.items():
        sections[name] = _parse_section(name, data.get(name), schema, problems)

    log_level = data.get("log_level", "INFO")
    if not isinstance(log_level, str):
        problems.append(f"log_level must be a string, got {log_level!r}")
        log_level = "INFO"

    config = LedgerConfig(log_level=log_level.upper(), **sections)
    problems.extend(_cross_field_problems(config))
    if problems:
        raise ConfigurationError(source, problems)
    return config


def load_config(path: Path) -> LedgerConfig:
    """Load and validate the YAML file at ``path``."""
    return parse_config(load_yaml_file(path), source=str(path))


def compute_checksum(config: LedgerConfig) -> str:
    """
    SHA-256 of the canonical JSON serialization of ``config``.

    Identical configurations always produce identical checksums.
    """
    canonical = json.dumps(dataclasses.asdict(config), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
