"""Resolution of a tenant's subscription status against the clock."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from ..caching.keys import CacheKeys, CacheTTL
from ..caching.store import Cache
from .models import (
    SubscriptionRecord,
    SubscriptionStatus,
    SubscriptionStatusCode,
    SubscriptionWarning,
    ensure_utc,
)
from .results import Resolution

if TYPE_CHECKING:  # pragma: no cover
    from .service import SubscriptionStore

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60

_WARNABLE_STATUSES = frozenset({SubscriptionStatusCode.ACTIVE, SubscriptionStatusCode.TRIALING})


def _days_until(moment: datetime, now: datetime) -> int:
    return math.ceil((moment - now).total_seconds() / _SECONDS_PER_DAY)


def _plural_days(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


class SubscriptionStatusResolver:
    """Turns cached subscription records into time-fresh statuses.

    Only the raw record is cached; the status is recomputed on every call
    so a cached record can never extend access past its grace window.
    """

    def __init__(
        self,
        store: "SubscriptionStore",
        cache: Cache,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        cache_ttl_seconds: float = CacheTTL.SUBSCRIPTION,
        grace_period_days: int = 7,
        warning_days: int = 2,
    ) -> None:
        self._store = store
        self._cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cache_ttl_seconds = cache_ttl_seconds
        self._grace_period = timedelta(days=grace_period_days)
        self._warning_days = warning_days

    @property
    def grace_period(self) -> timedelta:
        return self._grace_period

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    def fetch_record(self, tenant_id: str) -> Optional[SubscriptionRecord]:
        """Read-through fetch of the tenant's subscription row."""

        return self._cache.get_cached_or_fetch(
            CacheKeys.subscription(tenant_id),
            lambda: self._store.fetch_subscription(tenant_id),
            self._cache_ttl_seconds,
            expected_type=(SubscriptionRecord, type(None)),
        )

    def evaluate(self, record: Optional[SubscriptionRecord], now: datetime) -> SubscriptionStatus:
        """Pure status computation for ``record`` at ``now``."""

        if record is None:
            return SubscriptionStatus.no_access()

        now = ensure_utc(now)
        period_end = record.current_period_end
        in_grace = False
        expired = False
        if period_end is not None:
            grace_end = period_end + self._grace_period
            in_grace = period_end < now <= grace_end
            # Expiry is declared only once the whole grace window has elapsed.
            expired = now > grace_end

        base_active = record.status.is_base_active
        past_due_in_grace = record.status == SubscriptionStatusCode.PAST_DUE and in_grace

        return SubscriptionStatus(
            is_active=(base_active or past_due_in_grace) and not expired,
            is_expired=expired,
            is_in_grace_period=in_grace,
            current_period_end=period_end,
            status=record.status,
            plan_id=record.plan_id,
        )

    def resolve_status_result(self, tenant_id: str) -> Resolution[SubscriptionStatus]:
        return Resolution.capture(lambda: self.evaluate(self.fetch_record(tenant_id), self.now()))

    def resolve_status(self, tenant_id: str) -> SubscriptionStatus:
        """Status for ``tenant_id``; errors collapse to no access."""

        return self.resolve_status_result(tenant_id).unwrap_or(
            SubscriptionStatus.no_access(),
            logger=logger,
            context=f"subscription status for tenant={tenant_id}",
        )

    def has_system_access(self, tenant_id: str) -> bool:
        return self.resolve_status(tenant_id).is_active

    def check_subscription_warning(
        self,
        tenant_id: str,
        days: Optional[int] = None,
    ) -> SubscriptionWarning:
        """Billing reminder for ``tenant_id``.

        Reads the store directly rather than through the cache; this is a
        one-off notification check, not an access gate.
        """

        threshold = self._warning_days if days is None else days
        result: Resolution[Optional[SubscriptionRecord]] = Resolution.capture(
            lambda: self._store.fetch_subscription(tenant_id)
        )
        record = result.unwrap_or(None, logger=logger, context=f"subscription warning for tenant={tenant_id}")
        if record is None or record.current_period_end is None:
            return SubscriptionWarning.none()

        now = self.now()
        period_end = record.current_period_end
        grace_end = period_end + self._grace_period
        days_remaining = _days_until(period_end, now)

        if now > period_end:
            if now > grace_end:
                # Enforcement takes over after the grace window.
                return SubscriptionWarning.none(period_end)
            grace_days_left = max(_days_until(grace_end, now), 0)
            return SubscriptionWarning(
                should_warn=True,
                days_remaining=days_remaining,
                current_period_end=period_end,
                is_in_grace_period=True,
                grace_period_end=grace_end,
                message=(
                    f"Your subscription period ended on {period_end:%Y-%m-%d}. "
                    f"Renew now to keep access; service will be suspended in {_plural_days(grace_days_left)}."
                ),
            )

        if record.status not in _WARNABLE_STATUSES:
            return SubscriptionWarning.none(period_end)

        should_warn = 0 < days_remaining <= threshold
        return SubscriptionWarning(
            should_warn=should_warn,
            days_remaining=days_remaining,
            current_period_end=period_end,
            grace_period_end=grace_end,
            message=(
                f"Your subscription renews in {_plural_days(days_remaining)} on {period_end:%Y-%m-%d}."
                if should_warn
                else None
            ),
        )

    def get_subscription_message(self, tenant_id: str) -> Optional[str]:
        """Human-readable status line, or ``None`` when nothing needs saying."""

        status = self.resolve_status(tenant_id)
        if status.status is None:
            return "No active subscription found. Please subscribe to continue using the service."

        period_end = status.current_period_end
        if status.is_expired and period_end is not None:
            return (
                f"Your subscription expired on {period_end:%Y-%m-%d}. "
                "Please renew to continue using the service."
            )
        if status.is_in_grace_period and period_end is not None and status.is_active:
            grace_end = period_end + self._grace_period
            return (
                f"Your subscription payment is overdue. Renew before {grace_end:%Y-%m-%d} "
                "to keep access."
            )
        if status.status == SubscriptionStatusCode.PAST_DUE:
            return "Your subscription payment is past due. Please update your payment method."
        if status.status == SubscriptionStatusCode.CANCELLED:
            return "Your subscription has been cancelled. Please resubscribe to continue using the service."
        return None


__all__ = ["SubscriptionStatusResolver"]
