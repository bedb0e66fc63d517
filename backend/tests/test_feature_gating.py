from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import pytest

from backend.app.caching import TTLCache
from backend.app.entitlements import (
    EntitlementService,
    LimitCheckResult,
    PlanRecord,
    ResourceKind,
    SubscriptionRecord,
    SubscriptionStatusCode,
    SubscriptionStatusResolver,
    UsageSnapshot,
)
from backend.app.feature_gates import (
    EntitlementContext,
    FeatureGateError,
    UsageGate,
    evaluate_limit,
    parse_resource_kind,
    require_feature,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeSubscriptionStore:
    def __init__(self) -> None:
        self.subscriptions: Dict[str, SubscriptionRecord] = {}
        self.plans: Dict[str, PlanRecord] = {}

    def fetch_subscription(self, tenant_id: str) -> Optional[SubscriptionRecord]:
        return self.subscriptions.get(tenant_id)

    def fetch_plan(self, plan_id: str) -> Optional[PlanRecord]:
        return self.plans.get(plan_id)


class FakeResourceCounter:
    def __init__(self) -> None:
        self.counts: Dict[Tuple[str, ResourceKind], int] = {}
        self.failing: set[ResourceKind] = set()
        self.inactive: Dict[Tuple[str, ResourceKind], int] = {}

    def set(self, tenant_id: str, kind: ResourceKind, count: int) -> None:
        self.counts[(tenant_id, kind)] = count

    def count_resources(self, tenant_id: str, kind: ResourceKind, *, active_only: bool = True) -> int:
        if kind in self.failing:
            raise ConnectionError("count query failed")
        total = self.counts.get((tenant_id, kind), 0)
        if not active_only:
            total += self.inactive.get((tenant_id, kind), 0)
        return total


@pytest.fixture
def store() -> FakeSubscriptionStore:
    store = FakeSubscriptionStore()
    store.plans["starter"] = PlanRecord(
        plan_id="starter",
        max_users=2,
        max_ingredients=10,
        max_batches=5,
        max_storage_locations=2,
        max_recipes=3,
        max_products=5,
        features={"basicReports": True},
    )
    store.subscriptions["tenant-1"] = SubscriptionRecord(
        tenant_id="tenant-1",
        status=SubscriptionStatusCode.ACTIVE,
        current_period_end=NOW + timedelta(days=30),
        plan_id="starter",
    )
    store.subscriptions["lapsed"] = SubscriptionRecord(
        tenant_id="lapsed",
        status=SubscriptionStatusCode.PAST_DUE,
        current_period_end=NOW - timedelta(days=10),
        plan_id="starter",
    )
    return store


@pytest.fixture
def counter() -> FakeResourceCounter:
    return FakeResourceCounter()


@pytest.fixture
def entitlement_service(store) -> EntitlementService:
    cache = TTLCache()
    return EntitlementService(store, cache, SubscriptionStatusResolver(store, cache, clock=lambda: NOW))


@pytest.fixture
def usage_gate(entitlement_service, counter) -> UsageGate:
    return UsageGate(entitlement_service, counter)


def test_usage_below_ceiling_is_allowed(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.INGREDIENTS, 9)

    result = usage_gate.check_limit("tenant-1", ResourceKind.INGREDIENTS)

    assert result == LimitCheckResult(
        allowed=True,
        reason=None,
        current_usage=9,
        limit=10,
        resource=ResourceKind.INGREDIENTS,
    )


def test_usage_at_ceiling_is_denied(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.INGREDIENTS, 10)

    result = usage_gate.check_limit("tenant-1", "ingredients")

    assert result.allowed is False
    assert result.reason == "Ingredient limit of 10 reached"
    assert result.current_usage == 10
    assert result.limit == 10


def test_lapsed_subscription_denies_first_resource(usage_gate) -> None:
    result = usage_gate.check_limit("lapsed", ResourceKind.STORAGE_LOCATIONS)

    assert result.allowed is False
    assert result.limit == 0
    assert result.reason == "Storage location limit of 0 reached"


def test_counter_failure_denies(usage_gate, counter) -> None:
    counter.failing.add(ResourceKind.BATCHES)

    result = usage_gate.check_limit("tenant-1", ResourceKind.BATCHES)

    assert result.allowed is False
    assert result.reason == "Unable to verify batch limit"
    assert result.limit == 5


def test_deactivated_users_count_toward_limit(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.USERS, 1)
    counter.inactive[("tenant-1", ResourceKind.USERS)] = 1

    result = usage_gate.check_limit("tenant-1", ResourceKind.USERS)

    assert result.allowed is False
    assert result.current_usage == 2
    assert usage_gate.get_current_usage("tenant-1").users == 1


def test_deactivated_ingredients_do_not_count_toward_limit(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.INGREDIENTS, 9)
    counter.inactive[("tenant-1", ResourceKind.INGREDIENTS)] = 4

    result = usage_gate.check_limit("tenant-1", ResourceKind.INGREDIENTS)

    assert result.allowed is True
    assert result.current_usage == 9


def test_negative_plan_ceiling_falls_back(usage_gate, store, counter) -> None:
    store.plans["broken"] = PlanRecord(plan_id="broken", max_users=-1)
    store.subscriptions["tenant-2"] = SubscriptionRecord(
        tenant_id="tenant-2",
        status=SubscriptionStatusCode.ACTIVE,
        current_period_end=NOW + timedelta(days=30),
        plan_id="broken",
    )
    counter.set("tenant-2", ResourceKind.USERS, 1)

    result = usage_gate.check_limit("tenant-2", ResourceKind.USERS)

    assert result.allowed is False
    assert result.limit == 1
    assert result.reason == "User limit of 1 reached"


def test_get_current_usage(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.USERS, 2)
    counter.set("tenant-1", ResourceKind.RECIPES, 7)
    counter.failing.add(ResourceKind.PRODUCTS)

    snapshot = usage_gate.get_current_usage("tenant-1")

    assert snapshot == UsageSnapshot(users=2, recipes=7)
    assert snapshot.count_for(ResourceKind.RECIPES) == 7


def test_assert_within_limit_raises_with_reason(usage_gate, counter) -> None:
    counter.set("tenant-1", ResourceKind.USERS, 2)

    with pytest.raises(FeatureGateError) as exc:
        usage_gate.assert_within_limit("tenant-1", ResourceKind.USERS)

    assert exc.value.code == "resource_limit_reached"
    assert exc.value.message == "User limit of 2 reached"
    assert exc.value.payload["resource"] == "users"
    assert exc.value.payload["limit"] == 2


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("storage_locations", ResourceKind.STORAGE_LOCATIONS),
        ("PRODUCTS", ResourceKind.PRODUCTS),
        (" Recipes ", ResourceKind.RECIPES),
        (ResourceKind.USERS, ResourceKind.USERS),
    ],
)
def test_parse_resource_kind(raw, expected) -> None:
    assert parse_resource_kind(raw) is expected


def test_parse_resource_kind_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        parse_resource_kind("widgets")


def test_evaluate_limit_reason_matches_clamped_limit() -> None:
    result = evaluate_limit(ResourceKind.USERS, usage=3, limit=-1)

    assert result.allowed is False
    assert result.limit == 0
    assert result.reason == "User limit of 0 reached"


def test_evaluate_limit_zero_ceiling() -> None:
    result = evaluate_limit(ResourceKind.PRODUCTS, usage=0, limit=0)

    assert result.allowed is False
    assert result.reason == "Product limit of 0 reached"


def test_require_feature(entitlement_service) -> None:
    require_feature(entitlement_service, "tenant-1", "reports")

    with pytest.raises(FeatureGateError) as exc:
        require_feature(entitlement_service, "tenant-1", "advancedReports")

    assert exc.value.code == "entitlement_required"
    assert exc.value.payload["missing_entitlement"] == "advancedReports"


def test_entitlement_context_helpers(entitlement_service) -> None:
    context = EntitlementContext.load(entitlement_service, "tenant-1")

    assert context.is_active is True
    assert context.has("basicReports") is True
    assert context.has("qrScanning") is False
    assert context.limit_for("batches") == 5
    assert context.evaluate(ResourceKind.BATCHES, usage=4).allowed is True

    context.require("basicReports")
    with pytest.raises(FeatureGateError):
        context.require("qrScanning")

    with pytest.raises(FeatureGateError) as exc:
        context.assert_within_limit(ResourceKind.BATCHES, usage=5)
    assert exc.value.payload["current_usage"] == 5


def test_entitlement_context_for_lapsed_tenant(entitlement_service) -> None:
    context = EntitlementContext.load(entitlement_service, "lapsed")

    assert context.is_active is False
    assert context.has("basicReports") is False
    assert context.limit_for(ResourceKind.USERS) == 0


def test_feature_gate_error_converts_to_http_exception() -> None:
    error = FeatureGateError(code="entitlement_required", message="flag missing")
    http_exc = error.to_http_exception()

    assert http_exc.status_code == 403
    assert http_exc.detail["error"] == "entitlement_required"
