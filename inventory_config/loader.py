"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses of
``inventory_config.schema``.  Runtime callers use
``inventory_config.get_active_settings()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range or unknown values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    ConcurrencyDef,
    InventoryConfiguration,
    NegativeStockDef,
    NegativeStockRuleDef,
    PrecisionDef,
    RetryDef,
)

_POLICIES = ("reject", "allow")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """YAML floats arrive as float; go through str to keep the written digits."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number, got {value!r}")
    return Decimal(str(value))


def _parse_places(value: Any, name: str) -> int:
    places = int(value)
    if not 0 <= places <= 9:
        raise ValueError(f"{name} must be between 0 and 9, got {places}")
    return places


def _parse_policy(value: Any) -> str:
    policy = str(value).lower()
    if policy not in _POLICIES:
        raise ValueError(f"Unknown negative stock policy {value!r}; expected one of {_POLICIES}")
    return policy


def parse_precision(data: dict[str, Any]) -> PrecisionDef:
    return PrecisionDef(
        cost_decimal_places=_parse_places(data.get("cost_decimal_places", 6), "cost_decimal_places"),
        quantity_decimal_places=_parse_places(
            data.get("quantity_decimal_places", 6), "quantity_decimal_places",
        ),
    )


def parse_negative_stock(data: dict[str, Any]) -> NegativeStockDef:
    overrides = tuple(
        NegativeStockRuleDef(
            policy=_parse_policy(item["policy"]),
            tenant_id=item.get("tenant_id"),
            product_id=item.get("product_id"),
        )
        for item in data.get("overrides", [])
    )
    return NegativeStockDef(
        default_policy=_parse_policy(data.get("default_policy", "reject")),
        overrides=overrides,
    )


def parse_concurrency(data: dict[str, Any]) -> ConcurrencyDef:
    retry_data = data.get("retry", {})
    retry = RetryDef(
        max_attempts=int(retry_data.get("max_attempts", 3)),
        base_delay_seconds=parse_decimal(
            retry_data.get("base_delay_seconds", "0.05"), "base_delay_seconds",
        ),
        max_delay_seconds=parse_decimal(
            retry_data.get("max_delay_seconds", "1.0"), "max_delay_seconds",
        ),
    )
    return ConcurrencyDef(
        lock_timeout_ms=int(data.get("lock_timeout_ms", 5000)),
        retry=retry,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_configuration(data: dict[str, Any]) -> InventoryConfiguration:
    """
    Parse a full configuration document.

    Raises:
        KeyError: if ``config_id`` is missing.
        ValueError: if any value is out of range.
    """
    return InventoryConfiguration(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        precision=parse_precision(data.get("precision", {})),
        negative_stock=parse_negative_stock(data.get("negative_stock", {})),
        concurrency=parse_concurrency(data.get("concurrency", {})),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> InventoryConfiguration:
    """Load and parse one YAML configuration file."""
    return parse_configuration(load_yaml_file(path))
