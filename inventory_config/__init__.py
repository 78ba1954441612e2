"""
inventory_config -- single public entrypoint for inventory settings.

Responsibility:
    ``get_active_settings()`` is the ONLY way runtime code obtains
    configuration.  It reads the YAML file named by the ``INVENTORY_CONFIG``
    environment variable, or the packaged ``defaults.yaml``, and returns the
    kernel's immutable KernelSettings.

Architecture position:
    Configuration.  Sits above ``inventory_kernel`` and below
    ``inventory_modules``.  The kernel MUST NEVER import from here.

Failure modes:
    - ``FileNotFoundError`` for a missing configuration file.
    - ``ValueError`` / ``KeyError`` for invalid content.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from inventory_config.bridges import build_kernel_settings
from inventory_config.loader import load_configuration
from inventory_kernel.domain.settings import KernelSettings
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "INVENTORY_CONFIG"

_cache: dict[Path, KernelSettings] = {}
_cache_lock = threading.Lock()


def get_active_settings(config_path: Path | None = None) -> KernelSettings:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Explicit YAML file.  Defaults to $INVENTORY_CONFIG, then
            the packaged defaults.

    Returns:
        KernelSettings, cached per resolved path.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH
    resolved = config_path.resolve()

    with _cache_lock:
        cached = _cache.get(resolved)
        if cached is not None:
            return cached

        config = load_configuration(resolved)
        settings = build_kernel_settings(config)
        _cache[resolved] = settings

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "config_id": config.config_id,
            "version": config.version,
            "checksum": config.checksum,
            "path": str(resolved),
            "default_negative_stock_policy": settings.default_negative_stock_policy.value,
            "override_count": len(settings.negative_stock_rules),
        },
    )
    return settings


def reset_settings_cache() -> None:
    """Forget loaded settings.  FOR TESTING ONLY."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "get_active_settings",
    "reset_settings_cache",
]
