"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing one inventory configuration set.  Values are
validated in ``__post_init__`` so a loaded InventoryConfig is always
usable as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class PolicyDef:
    """Inventory defaults handed to the kernel as an InventoryPolicy."""

    default_volume_per_unit: Decimal = Decimal("1")
    default_alert_threshold: Decimal = Decimal("80.00")
    enforce_destination_capacity_on_transfer: bool = False
    expiring_soon_days: int = 30

    def __post_init__(self) -> None:
        if self.default_volume_per_unit < 0:
            raise ValueError("policy.default_volume_per_unit cannot be negative")
        if not (Decimal("0") <= self.default_alert_threshold <= Decimal("100")):
            raise ValueError("policy.default_alert_threshold must be between 0 and 100")
        if self.expiring_soon_days < 0:
            raise ValueError("policy.expiring_soon_days cannot be negative")


@dataclass(frozen=True)
class DatabaseDef:
    """Connection settings.  Environment variables override ``url``."""

    url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")


@dataclass(frozen=True)
class LoggingDef:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {_LOG_LEVELS}")


@dataclass(frozen=True)
class InventoryConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int = 1
    policy: PolicyDef = field(default_factory=PolicyDef)
    database: DatabaseDef = field(default_factory=DatabaseDef)
    logging: LoggingDef = field(default_factory=LoggingDef)
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if self.version < 1:
            raise ValueError("version must be >= 1")
