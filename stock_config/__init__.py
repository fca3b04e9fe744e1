"""
stock_config -- single public entrypoint for stock ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services never read YAML files themselves.

Architecture position:
    Configuration -- sits above ``stock_kernel`` and below
    ``stock_services``.  The kernel and the engines MUST NEVER import from
    ``stock_config``; services translate configuration into engine
    arguments.

Failure modes:
    - ``ConfigurationError`` -- unknown keys or invalid values, all listed.
    - ``yaml.YAMLError`` -- the file is not valid YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STOCK_CONFIG_TRACE`` log entry with the source and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import compute_checksum, load_config, parse_config
from stock_config.schema import (
    ABCConfig,
    AgingConfig,
    AttentionConfig,
    LedgerConfig,
    StockStatusConfig,
    TransferConfig,
)

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  When omitted, or when the file does not
            exist, the packaged ``defaults.yaml`` is used.

    Raises:
        ConfigurationError: if the file has unknown keys or invalid values.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not source.exists():
        _logger.warning("config_file_missing", extra={"path": str(source)})
        source = DEFAULT_CONFIG_PATH

    config = load_config(source)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "source": str(source),
            "checksum": compute_checksum(config),
        },
    )
    return config


__all__ = [
    "ABCConfig",
    "AgingConfig",
    "AttentionConfig",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "StockStatusConfig",
    "TransferConfig",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "parse_config",
]
