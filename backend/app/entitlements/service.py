"""Service resolving plan limits and feature access for tenants."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..caching.keys import CacheKeys, CacheTTL
from ..caching.store import Cache
from .catalog import FREE_TIER_LIMITS, ZERO_LIMITS, limits_from_plan
from .features import DEFAULT_VOCABULARY, FeatureVocabulary
from .models import PlanLimits, PlanRecord, ResourceKind, SubscriptionRecord, SubscriptionStatus
from .results import Resolution
from .status import SubscriptionStatusResolver

logger = logging.getLogger(__name__)


class SubscriptionStore(Protocol):
    """Read-only access to subscription and plan rows."""

    def fetch_subscription(self, tenant_id: str) -> Optional[SubscriptionRecord]:
        ...

    def fetch_plan(self, plan_id: str) -> Optional[PlanRecord]:
        ...


class ResourceCounter(Protocol):
    """Counts tenant resources of a given kind.

    With ``active_only`` false, deactivated rows are counted as well.
    """

    def count_resources(self, tenant_id: str, kind: ResourceKind, *, active_only: bool = True) -> int:
        ...


class EntitlementService:
    """Coordinates status resolution, plan lookup, and feature checks.

    Every public method fails closed: an inactive subscription and an
    internal error both yield all-zero limits and no features.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        cache: Cache,
        status_resolver: SubscriptionStatusResolver,
        *,
        vocabulary: FeatureVocabulary = DEFAULT_VOCABULARY,
        plan_cache_ttl_seconds: float = CacheTTL.LONG,
    ) -> None:
        self._store = store
        self._cache = cache
        self._status_resolver = status_resolver
        self._vocabulary = vocabulary
        self._plan_cache_ttl_seconds = plan_cache_ttl_seconds

    @property
    def status_resolver(self) -> SubscriptionStatusResolver:
        return self._status_resolver

    @property
    def vocabulary(self) -> FeatureVocabulary:
        return self._vocabulary

    def resolve_status(self, tenant_id: str) -> SubscriptionStatus:
        return self._status_resolver.resolve_status(tenant_id)

    def get_limits_result(self, tenant_id: str) -> Resolution[PlanLimits]:
        status_result = self._status_resolver.resolve_status_result(tenant_id)
        if not status_result.ok:
            return Resolution.failure(status_result.error)  # type: ignore[arg-type]
        status = status_result.value
        if status is None or not status.is_active:
            return Resolution.success(ZERO_LIMITS)
        return Resolution.capture(lambda: self._limits_for_active(status))

    def get_limits(self, tenant_id: str) -> PlanLimits:
        """Resource ceilings and features currently granted to ``tenant_id``."""

        return self.get_limits_result(tenant_id).unwrap_or(
            ZERO_LIMITS,
            logger=logger,
            context=f"plan limits for tenant={tenant_id}",
        )

    def check_feature_access(self, tenant_id: str, feature_key: str) -> bool:
        """Whether the tenant's plan grants ``feature_key`` under any known alias."""

        limits = self.get_limits(tenant_id)
        return limits.features.grants(feature_key, self._vocabulary)

    def _limits_for_active(self, status: SubscriptionStatus) -> PlanLimits:
        if not status.plan_id:
            return FREE_TIER_LIMITS
        plan = self._fetch_plan(status.plan_id)
        if plan is None:
            logger.debug("Plan %s not found, using free tier limits", status.plan_id)
            return FREE_TIER_LIMITS
        return limits_from_plan(plan)

    def _fetch_plan(self, plan_id: str) -> Optional[PlanRecord]:
        return self._cache.get_cached_or_fetch(
            CacheKeys.subscription_plan(plan_id),
            lambda: self._store.fetch_plan(plan_id),
            self._plan_cache_ttl_seconds,
            expected_type=(PlanRecord, type(None)),
        )


__all__ = ["EntitlementService", "ResourceCounter", "SubscriptionStore"]
