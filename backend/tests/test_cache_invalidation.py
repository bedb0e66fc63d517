from __future__ import annotations

import pytest

from backend.app.caching import CacheInvalidator, CacheKeys, TTLCache


@pytest.fixture
def cache() -> TTLCache:
    cache = TTLCache()
    for tenant in ("t1", "t2"):
        cache.set(CacheKeys.dashboard_stats(tenant), "stats", 300)
        cache.set(CacheKeys.recent_batches(tenant), "batches", 300)
        cache.set(CacheKeys.low_stock_ingredients(tenant), "low", 300)
        cache.set(CacheKeys.subscription(tenant), "sub", 30)
        cache.set(CacheKeys.subscription_warning(tenant), "warn", 30)
        cache.set(CacheKeys.tenant_by_id(tenant), "tenant", 300)
        cache.set(CacheKeys.user(tenant, "a@example.com"), "user", 60)
        cache.set(CacheKeys.analytics(tenant, "week"), "analytics", 900)
    cache.set(CacheKeys.tenant("bakery"), "tenant-by-subdomain", 300)
    cache.set(CacheKeys.subscription_plan("pro"), "plan", 900)
    return cache


@pytest.fixture
def invalidator(cache: TTLCache) -> CacheInvalidator:
    return CacheInvalidator(cache)


def _keys(cache: TTLCache) -> set:
    return set(cache.stats().keys)


def test_ingredient_change_purges_dashboard_and_analytics(cache, invalidator) -> None:
    invalidator.on_ingredient_change("t1")

    keys = _keys(cache)
    assert CacheKeys.dashboard_stats("t1") not in keys
    assert CacheKeys.recent_batches("t1") not in keys
    assert CacheKeys.low_stock_ingredients("t1") not in keys
    assert CacheKeys.analytics("t1", "week") not in keys
    assert CacheKeys.subscription("t1") in keys
    assert CacheKeys.dashboard_stats("t2") in keys


def test_batch_and_product_changes_match_ingredient_change(cache, invalidator) -> None:
    invalidator.on_batch_change("t1")
    after_batch = _keys(cache)
    invalidator.on_product_change("t1")

    assert _keys(cache) == after_batch


def test_subscription_change_purges_status_and_warning(cache, invalidator) -> None:
    invalidator.on_subscription_change("t1")

    keys = _keys(cache)
    assert CacheKeys.subscription("t1") not in keys
    assert CacheKeys.subscription_warning("t1") not in keys
    assert CacheKeys.subscription("t2") in keys
    assert CacheKeys.subscription_plan("pro") in keys


def test_plan_change_purges_plan_rows(cache, invalidator) -> None:
    invalidator.on_subscription_plan_change()

    keys = _keys(cache)
    assert CacheKeys.subscription_plan("pro") not in keys
    assert CacheKeys.subscription("t1") in keys


def test_user_change(cache, invalidator) -> None:
    invalidator.on_user_change("t1", "a@example.com")

    keys = _keys(cache)
    assert CacheKeys.user("t1", "a@example.com") not in keys
    assert CacheKeys.user("t2", "a@example.com") in keys


def test_tenant_change_with_subdomain(cache, invalidator) -> None:
    invalidator.on_tenant_change("t1", subdomain="bakery")

    keys = _keys(cache)
    assert CacheKeys.tenant_by_id("t1") not in keys
    assert CacheKeys.tenant("bakery") not in keys
    assert CacheKeys.tenant_by_id("t2") in keys


def test_major_change_purges_tenant_families(cache, invalidator) -> None:
    invalidator.on_major_change("t1")

    remaining_t1 = {key for key in _keys(cache) if "t1" in key}
    assert remaining_t1 == set()
    assert CacheKeys.subscription("t2") in _keys(cache)


def test_hooks_are_idempotent(cache, invalidator) -> None:
    invalidator.on_major_change("t1")
    snapshot = _keys(cache)

    invalidator.on_major_change("t1")

    assert _keys(cache) == snapshot
    assert invalidator.invalidate_all_tenant("t1") == 0
