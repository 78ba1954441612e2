"""
InventoryConfiguration schema.

The human-authored, reviewable source artifact for inventory settings.  YAML
files are parsed into these types by the loader and turned into the kernel's
KernelSettings by bridges.build_kernel_settings().
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PrecisionDef:
    """Decimal places for persisted unit costs and accepted quantities."""

    cost_decimal_places: int = 6
    quantity_decimal_places: int = 6


@dataclass(frozen=True)
class NegativeStockRuleDef:
    """One policy override.  Missing tenant or product matches anything."""

    policy: str
    tenant_id: str | None = None
    product_id: str | None = None


@dataclass(frozen=True)
class NegativeStockDef:
    default_policy: str = "reject"
    overrides: tuple[NegativeStockRuleDef, ...] = ()


@dataclass(frozen=True)
class RetryDef:
    max_attempts: int = 3
    base_delay_seconds: Decimal = Decimal("0.05")
    max_delay_seconds: Decimal = Decimal("1.0")


@dataclass(frozen=True)
class ConcurrencyDef:
    lock_timeout_ms: int = 5000
    retry: RetryDef = RetryDef()


@dataclass(frozen=True)
class InventoryConfiguration:
    """Root of one configuration file."""

    config_id: str
    version: int
    precision: PrecisionDef
    negative_stock: NegativeStockDef
    concurrency: ConcurrencyDef
    checksum: str = ""
