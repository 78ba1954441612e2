"""
Kernel runtime settings.

Responsibility:
    The typed, immutable knobs kernel services read: cost and quantity
    precision, the negative-stock policy per tenant/product, lock timeout,
    and the retry policy of TransactionRunner.

Architecture position:
    Kernel > Domain.  Pure.  The kernel never reads configuration files;
    inventory_config builds a KernelSettings from YAML and hands it in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID


class NegativeStockPolicy(str, Enum):
    """What happens when FIFO layers cannot cover an issue."""

    REJECT = "reject"
    ALLOW = "allow"


@dataclass(frozen=True, slots=True)
class NegativeStockRule:
    """
    Policy override for a tenant, a product, or a tenant/product pair.

    A None field matches anything.  The most specific matching rule wins:
    tenant+product, then product, then tenant.
    """

    policy: NegativeStockPolicy
    tenant_id: UUID | None = None
    product_id: UUID | None = None

    @property
    def specificity(self) -> int:
        return (2 if self.product_id is not None else 0) + (
            1 if self.tenant_id is not None else 0
        )

    def matches(self, tenant_id: UUID, product_id: UUID) -> bool:
        return (self.tenant_id is None or self.tenant_id == tenant_id) and (
            self.product_id is None or self.product_id == product_id
        )


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff for ConcurrencyConflictError."""

    max_attempts: int = 3
    base_delay_seconds: Decimal = Decimal("0.05")
    max_delay_seconds: Decimal = Decimal("1.0")

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay_seconds * (2 ** (attempt - 1))
        return float(min(delay, self.max_delay_seconds))


@dataclass(frozen=True)
class KernelSettings:
    """Immutable kernel configuration.  Defaults are production-safe."""

    cost_decimal_places: int = 6
    quantity_decimal_places: int = 6
    lock_timeout_ms: int = 5000
    default_negative_stock_policy: NegativeStockPolicy = NegativeStockPolicy.REJECT
    negative_stock_rules: tuple[NegativeStockRule, ...] = ()
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def negative_stock_policy_for(
        self, tenant_id: UUID, product_id: UUID,
    ) -> NegativeStockPolicy:
        """Resolve the policy for one tenant/product."""
        best: NegativeStockRule | None = None
        for rule in self.negative_stock_rules:
            if rule.matches(tenant_id, product_id) and (
                best is None or rule.specificity > best.specificity
            ):
                best = rule
        return best.policy if best is not None else self.default_negative_stock_policy
