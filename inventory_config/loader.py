"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``inventory_config.schema`` dataclasses.  Runtime callers go through
``inventory_config.get_active_config()`` / ``get_active_policy()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from parsing or schema validation.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import DatabaseDef, InventoryConfig, LoggingDef, PolicyDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Returns an empty dict for an empty file.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """
    Parse a Decimal from YAML.

    Unquoted YAML numbers arrive as int or float; floats are converted via
    their shortest repr so ``0.1`` becomes ``Decimal("0.1")``.
    """
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field_name}: not a decimal value: {value!r}") from exc


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name}: expected true or false, got {value!r}")


def parse_policy(data: dict[str, Any]) -> PolicyDef:
    defaults = PolicyDef()
    return PolicyDef(
        default_volume_per_unit=parse_decimal(
            data.get("default_volume_per_unit", defaults.default_volume_per_unit),
            "policy.default_volume_per_unit",
        ),
        default_alert_threshold=parse_decimal(
            data.get("default_alert_threshold", defaults.default_alert_threshold),
            "policy.default_alert_threshold",
        ),
        enforce_destination_capacity_on_transfer=parse_bool(
            data.get(
                "enforce_destination_capacity_on_transfer",
                defaults.enforce_destination_capacity_on_transfer,
            ),
            "policy.enforce_destination_capacity_on_transfer",
        ),
        expiring_soon_days=int(
            data.get("expiring_soon_days", defaults.expiring_soon_days)
        ),
    )


def parse_database(data: dict[str, Any]) -> DatabaseDef:
    defaults = DatabaseDef()
    return DatabaseDef(
        url=data.get("url", defaults.url),
        echo=parse_bool(data.get("echo", defaults.echo), "database.echo"),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
        pool_recycle=int(data.get("pool_recycle", defaults.pool_recycle)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingDef:
    return LoggingDef(level=str(data.get("level", "INFO")).upper())


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """
    Parse a full configuration set.

    Raises:
        KeyError: if ``config_id`` is missing.
        ValueError: if any value fails validation.
    """
    return InventoryConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        policy=parse_policy(data.get("policy") or {}),
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> InventoryConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
