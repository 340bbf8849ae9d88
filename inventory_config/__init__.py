"""
inventory_config -- single public entrypoint for inventory configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime:
    ``get_active_config()`` for the full set, ``get_active_policy()`` for
    the kernel's InventoryPolicy and ``get_database_url()`` for the
    connection string.  Nothing in the kernel reads YAML or environment
    variables.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``; bridges.py translates the loaded set
    into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` / ``KeyError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry with the config_id, version and
    checksum of the set that governed the process.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_kernel.domain.policy import InventoryPolicy

from inventory_config.bridges import build_policy, resolve_database_url
from inventory_config.loader import load_config
from inventory_config.schema import InventoryConfig

_logger = logging.getLogger("inventory_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_CONFIG_FILE = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(config_path: Path | None = None) -> InventoryConfig:
    """
    Load and validate a configuration set.

    Args:
        config_path: YAML file to load.  Defaults to ``sets/default.yaml``.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_FILE
    config = load_config(path)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
        },
    )
    return config


def get_active_policy(config_path: Path | None = None) -> InventoryPolicy:
    """The kernel InventoryPolicy built from the active configuration set."""
    return build_policy(get_active_config(config_path))


def get_database_url(config: InventoryConfig | None = None) -> str:
    """INVENTORY_DATABASE_URL, then DATABASE_URL, then the configured url."""
    return resolve_database_url(config or get_active_config())


__all__ = [
    "InventoryConfig",
    "get_active_config",
    "get_active_policy",
    "get_database_url",
]
