"""Cache key builders and TTL tiers shared by cache readers and writers."""
from __future__ import annotations


class CacheTTL:
    """TTL tiers in seconds."""

    SUBSCRIPTION = 30
    SHORT = 60
    MEDIUM = 5 * 60
    LONG = 15 * 60
    VERY_LONG = 60 * 60


class CacheKeys:
    """Key builders. Invalidation matches on substrings of these keys."""

    @staticmethod
    def dashboard_stats(tenant_id: str) -> str:
        return f"dashboard:stats:{tenant_id}"

    @staticmethod
    def recent_batches(tenant_id: str) -> str:
        return f"dashboard:batches:{tenant_id}"

    @staticmethod
    def low_stock_ingredients(tenant_id: str) -> str:
        return f"dashboard:lowstock:{tenant_id}"

    @staticmethod
    def subscription(tenant_id: str) -> str:
        return f"subscription:{tenant_id}"

    @staticmethod
    def subscription_warning(tenant_id: str) -> str:
        return f"subscription:warning:{tenant_id}"

    @staticmethod
    def subscription_plans() -> str:
        return "subscription:plans"

    @staticmethod
    def subscription_plan(plan_id: str) -> str:
        return f"subscription:plans:{plan_id}"

    @staticmethod
    def tenant(subdomain: str) -> str:
        return f"tenant:{subdomain}"

    @staticmethod
    def tenant_by_id(tenant_id: str) -> str:
        return f"tenant:id:{tenant_id}"

    @staticmethod
    def user(tenant_id: str, email: str) -> str:
        return f"user:{tenant_id}:{email}"

    @staticmethod
    def analytics(tenant_id: str, period: str) -> str:
        return f"analytics:{tenant_id}:{period}"


__all__ = ["CacheKeys", "CacheTTL"]
