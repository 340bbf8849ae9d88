"""
Config -> Kernel Bridges.

Functions that convert an InventoryConfig into kernel inputs.  They live
here because the kernel must never import inventory_config.

Usage:
    config = get_active_config()
    policy = build_policy(config)
    init_engine_from_url(resolve_database_url(config), **engine_options(config))
"""

from __future__ import annotations

import logging
import os
from typing import Any

from inventory_kernel.domain.policy import InventoryPolicy

from inventory_config.schema import InventoryConfig

DATABASE_URL_ENV_VARS = ("INVENTORY_DATABASE_URL", "DATABASE_URL")


def build_policy(config: InventoryConfig) -> InventoryPolicy:
    policy = config.policy
    return InventoryPolicy(
        default_volume_per_unit=policy.default_volume_per_unit,
        default_alert_threshold=policy.default_alert_threshold,
        enforce_destination_capacity_on_transfer=policy.enforce_destination_capacity_on_transfer,
        expiring_soon_days=policy.expiring_soon_days,
    )


def resolve_database_url(config: InventoryConfig) -> str:
    """INVENTORY_DATABASE_URL, then DATABASE_URL, then the configured url."""
    for name in DATABASE_URL_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return config.database.url


def engine_options(config: InventoryConfig) -> dict[str, Any]:
    """Keyword arguments for ``inventory_kernel.db.engine.init_engine_from_url``."""
    db = config.database
    return {
        "echo": db.echo,
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
    }


def logging_level(config: InventoryConfig) -> int:
    return logging.getLevelName(config.logging.level)
