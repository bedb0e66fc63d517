"""Application wiring for the entitlement engine."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ..caching import CacheInvalidator, TTLCache
from ..entitlements import (
    EntitlementConfig,
    EntitlementService,
    ResourceCounter,
    SubscriptionStatusResolver,
    SubscriptionStore,
    load_entitlement_config,
)
from ..feature_gates import UsageGate

logger = logging.getLogger("entitlements")


@dataclass(frozen=True)
class EntitlementRuntime:
    """One cache and the components that share it."""

    config: EntitlementConfig
    cache: TTLCache
    invalidator: CacheInvalidator
    status_resolver: SubscriptionStatusResolver
    service: EntitlementService
    usage_gate: UsageGate

    def close(self) -> None:
        self.cache.stop()


def build_entitlement_runtime(
    store: SubscriptionStore,
    counter: ResourceCounter,
    *,
    config: Optional[EntitlementConfig] = None,
    cache: Optional[TTLCache] = None,
    start_sweeper: bool = True,
) -> EntitlementRuntime:
    """Assemble the engine around ``store`` and ``counter``."""

    effective_config = config if config is not None else load_entitlement_config()
    effective_cache = cache
    if effective_cache is None:
        effective_cache = TTLCache(sweep_interval=effective_config.cache_sweep_interval_seconds)
    if start_sweeper:
        effective_cache.start()

    status_resolver = SubscriptionStatusResolver(
        store,
        effective_cache,
        cache_ttl_seconds=effective_config.subscription_cache_ttl_seconds,
        grace_period_days=effective_config.grace_period_days,
        warning_days=effective_config.warning_days,
    )
    service = EntitlementService(
        store,
        effective_cache,
        status_resolver,
        plan_cache_ttl_seconds=effective_config.plan_cache_ttl_seconds,
    )
    return EntitlementRuntime(
        config=effective_config,
        cache=effective_cache,
        invalidator=CacheInvalidator(effective_cache),
        status_resolver=status_resolver,
        service=service,
        usage_gate=UsageGate(service, counter),
    )


_runtime: Optional[EntitlementRuntime] = None
_runtime_lock = threading.Lock()


def start_entitlement_runtime(
    store: Optional[SubscriptionStore] = None,
    counter: Optional[ResourceCounter] = None,
    *,
    config: Optional[EntitlementConfig] = None,
) -> EntitlementRuntime:
    """Create the process-wide runtime; a second call returns the running one."""

    global _runtime

    with _runtime_lock:
        if _runtime is not None:
            return _runtime
        if store is None or counter is None:
            from ..entitlements.repository import PostgresResourceCounter, PostgresSubscriptionStore

            store = store if store is not None else PostgresSubscriptionStore()
            counter = counter if counter is not None else PostgresResourceCounter()
        _runtime = build_entitlement_runtime(store, counter, config=config)
        logger.info(
            "Entitlement runtime ready subscription_ttl=%ss grace_days=%s",
            _runtime.config.subscription_cache_ttl_seconds,
            _runtime.config.grace_period_days,
        )
        return _runtime


def get_entitlement_runtime() -> EntitlementRuntime:
    runtime = _runtime
    if runtime is None:
        raise RuntimeError("Entitlement runtime has not been started")
    return runtime


def shutdown_entitlement_runtime() -> None:
    """Stop the cache sweeper; later lookups fail until the runtime is started again."""

    global _runtime

    with _runtime_lock:
        runtime, _runtime = _runtime, None
    if runtime is not None:
        runtime.close()
        logger.info("Entitlement runtime stopped")


__all__ = [
    "EntitlementRuntime",
    "build_entitlement_runtime",
    "get_entitlement_runtime",
    "shutdown_entitlement_runtime",
    "start_entitlement_runtime",
]
