"""
Config -> Kernel bridge.

Converts a parsed InventoryConfiguration into the kernel's KernelSettings.
Lives here because the kernel must never import inventory_config.
"""

from __future__ import annotations

from uuid import UUID

from inventory_config.schema import InventoryConfiguration
from inventory_kernel.domain.settings import (
    KernelSettings,
    NegativeStockPolicy,
    NegativeStockRule,
    RetryPolicy,
)


def _optional_uuid(value: str | None) -> UUID | None:
    return UUID(str(value)) if value is not None else None


def build_kernel_settings(config: InventoryConfiguration) -> KernelSettings:
    """Translate a configuration file into kernel settings."""
    rules = tuple(
        NegativeStockRule(
            policy=NegativeStockPolicy(rule.policy),
            tenant_id=_optional_uuid(rule.tenant_id),
            product_id=_optional_uuid(rule.product_id),
        )
        for rule in config.negative_stock.overrides
    )
    retry = config.concurrency.retry
    return KernelSettings(
        cost_decimal_places=config.precision.cost_decimal_places,
        quantity_decimal_places=config.precision.quantity_decimal_places,
        lock_timeout_ms=config.concurrency.lock_timeout_ms,
        default_negative_stock_policy=NegativeStockPolicy(
            config.negative_stock.default_policy
        ),
        negative_stock_rules=rules,
        retry=RetryPolicy(
            max_attempts=retry.max_attempts,
            base_delay_seconds=retry.base_delay_seconds,
            max_delay_seconds=retry.max_delay_seconds,
        ),
    )
