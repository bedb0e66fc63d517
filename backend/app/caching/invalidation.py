"""Write-path triggers that purge cache keys derived from changed records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .keys import CacheKeys
from .store import Cache

logger = logging.getLogger(__name__)


def _dashboard_patterns(tenant_id: str) -> List[str]:
    return [
        CacheKeys.dashboard_stats(tenant_id),
        CacheKeys.recent_batches(tenant_id),
        CacheKeys.low_stock_ingredients(tenant_id),
    ]


def _subscription_patterns(tenant_id: str) -> List[str]:
    return [
        CacheKeys.subscription(tenant_id),
        CacheKeys.subscription_warning(tenant_id),
    ]


@dataclass(frozen=True)
class CacheInvalidator:
    """Named invalidation hooks called by writers right after a commit.

    Every hook is a substring purge, so calling one twice has the same effect
    as calling it once and purging keys that do not exist is a no-op.
    """

    cache: Cache

    def invalidate_dashboard(self, tenant_id: str) -> int:
        return self.cache.invalidate(_dashboard_patterns(tenant_id))

    def invalidate_subscription(self, tenant_id: str) -> int:
        return self.cache.invalidate(_subscription_patterns(tenant_id))

    def invalidate_tenant(self, tenant_id: str, subdomain: Optional[str] = None) -> int:
        patterns: List[str] = [CacheKeys.tenant_by_id(tenant_id)]
        if subdomain:
            patterns.append(CacheKeys.tenant(subdomain))
        return self.cache.invalidate(patterns)

    def invalidate_user(self, tenant_id: str, email: Optional[str] = None) -> int:
        patterns: List[str] = [f"user:{tenant_id}"]
        if email:
            patterns.append(CacheKeys.user(tenant_id, email))
        return self.cache.invalidate(patterns)

    def invalidate_subscription_plans(self) -> int:
        return self.cache.invalidate([CacheKeys.subscription_plans()])

    def invalidate_analytics(self, tenant_id: str) -> int:
        return self.cache.invalidate([f"analytics:{tenant_id}"])

    def invalidate_all_tenant(self, tenant_id: str) -> int:
        return self.cache.invalidate(
            _dashboard_patterns(tenant_id)
            + _subscription_patterns(tenant_id)
            + [
                f"analytics:{tenant_id}",
                f"user:{tenant_id}",
                CacheKeys.tenant_by_id(tenant_id),
            ]
        )

    # Hooks for write paths ----------------------------------------------

    def on_ingredient_change(self, tenant_id: str) -> None:
        self.invalidate_dashboard(tenant_id)
        self.invalidate_analytics(tenant_id)

    def on_batch_change(self, tenant_id: str) -> None:
        self.invalidate_dashboard(tenant_id)
        self.invalidate_analytics(tenant_id)

    def on_product_change(self, tenant_id: str) -> None:
        self.invalidate_dashboard(tenant_id)
        self.invalidate_analytics(tenant_id)

    def on_subscription_change(self, tenant_id: str) -> None:
        removed = self.invalidate_subscription(tenant_id)
        logger.debug("Subscription change tenant=%s purged=%d", tenant_id, removed)

    def on_subscription_plan_change(self) -> None:
        removed = self.invalidate_subscription_plans()
        logger.debug("Subscription plan change purged=%d", removed)

    def on_user_change(self, tenant_id: str, email: Optional[str] = None) -> None:
        self.invalidate_user(tenant_id, email)

    def on_tenant_change(self, tenant_id: str, subdomain: Optional[str] = None) -> None:
        self.invalidate_tenant(tenant_id, subdomain)

    def on_major_change(self, tenant_id: str) -> None:
        removed = self.invalidate_all_tenant(tenant_id)
        logger.debug("Major change tenant=%s purged=%d", tenant_id, removed)


__all__ = ["CacheInvalidator"]
