"""Environment-driven configuration for the entitlement engine."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ..caching.keys import CacheTTL


@dataclass(frozen=True)
class EntitlementConfig:
    """Tunables for caching, grace periods, and billing warnings."""

    subscription_cache_ttl_seconds: float = CacheTTL.SUBSCRIPTION
    plan_cache_ttl_seconds: float = CacheTTL.LONG
    cache_sweep_interval_seconds: float = 5 * 60
    grace_period_days: int = 7
    warning_days: int = 2


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_entitlement_config(env: Optional[Mapping[str, str]] = None) -> EntitlementConfig:
    """Load :class:`EntitlementConfig` from environment variables."""

    env_mapping = os.environ if env is None else env
    defaults = EntitlementConfig()

    subscription_ttl = _to_float(
        env_mapping.get("SUBSCRIPTION_CACHE_TTL_SECONDS"),
        default=defaults.subscription_cache_ttl_seconds,
    )
    plan_ttl = _to_float(
        env_mapping.get("PLAN_CACHE_TTL_SECONDS"),
        default=defaults.plan_cache_ttl_seconds,
    )
    sweep_interval = _to_float(
        env_mapping.get("CACHE_SWEEP_INTERVAL_SECONDS"),
        default=defaults.cache_sweep_interval_seconds,
    )
    grace_days = _to_int(
        env_mapping.get("SUBSCRIPTION_GRACE_PERIOD_DAYS"),
        default=defaults.grace_period_days,
    )
    warning_days = _to_int(
        env_mapping.get("SUBSCRIPTION_WARNING_DAYS"),
        default=defaults.warning_days,
    )

    return EntitlementConfig(
        subscription_cache_ttl_seconds=max(1.0, subscription_ttl),
        plan_cache_ttl_seconds=max(1.0, plan_ttl),
        cache_sweep_interval_seconds=max(1.0, sweep_interval),
        grace_period_days=max(0, grace_days),
        warning_days=max(0, warning_days),
    )


__all__ = ["EntitlementConfig", "load_entitlement_config"]
