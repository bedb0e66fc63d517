"""Resource limit checks run before a tenant creates another resource."""
from __future__ import annotations

import logging
from typing import Optional, Union

from ..entitlements.models import LimitCheckResult, PlanLimits, ResourceKind, UsageSnapshot
from ..entitlements.results import Resolution
from ..entitlements.service import EntitlementService, ResourceCounter
from .exceptions import FeatureGateError

logger = logging.getLogger(__name__)

# Deactivated users and storage locations still occupy a seat under the plan ceiling.
_LIMITS_COUNT_INACTIVE = frozenset({ResourceKind.USERS, ResourceKind.STORAGE_LOCATIONS})


def parse_resource_kind(value: Union[str, ResourceKind]) -> ResourceKind:
    """Accept enum members, values (``"storage_locations"``) or names."""

    if isinstance(value, ResourceKind):
        return value
    normalized = value.strip()
    try:
        return ResourceKind(normalized.lower())
    except ValueError:
        try:
            return ResourceKind[normalized.upper()]
        except KeyError:
            raise ValueError(f"Unknown resource kind: {value!r}") from None


def evaluate_limit(kind: ResourceKind, *, usage: int, limit: int) -> LimitCheckResult:
    """Compare ``usage`` against ``limit``.

    The comparison is strict, so a ceiling of N admits N existing resources
    and blocks creating the N+1th. Run it before creating the resource.
    """

    usage = max(usage, 0)
    limit = max(limit, 0)
    allowed = usage < limit
    return LimitCheckResult(
        allowed=allowed,
        reason=None if allowed else f"{kind.label} limit of {limit} reached",
        current_usage=usage,
        limit=limit,
        resource=kind,
    )


class UsageGate:
    """Allow/deny decisions for resource creation under plan ceilings."""

    def __init__(self, entitlements: EntitlementService, counter: ResourceCounter) -> None:
        self._entitlements = entitlements
        self._counter = counter

    def check_limit(
        self,
        tenant_id: str,
        resource_kind: Union[str, ResourceKind],
        *,
        limits: Optional[PlanLimits] = None,
    ) -> LimitCheckResult:
        kind = parse_resource_kind(resource_kind)
        effective_limits = limits if limits is not None else self._entitlements.get_limits(tenant_id)
        limit = effective_limits.limit_for(kind)

        usage_result: Resolution[Optional[int]] = Resolution.capture(
            lambda: int(
                self._counter.count_resources(
                    tenant_id,
                    kind,
                    active_only=kind not in _LIMITS_COUNT_INACTIVE,
                )
            )
        )
        usage = usage_result.unwrap_or(
            None,
            logger=logger,
            context=f"{kind.value} count for tenant={tenant_id}",
        )
        if usage is None:
            return LimitCheckResult(
                allowed=False,
                reason=f"Unable to verify {kind.label.lower()} limit",
                current_usage=0,
                limit=max(limit, 0),
                resource=kind,
            )
        return evaluate_limit(kind, usage=usage, limit=limit)

    def get_current_usage(self, tenant_id: str) -> UsageSnapshot:
        """Live counts for every resource kind; failed counts read as zero."""

        counts = {}
        for kind in ResourceKind:
            result: Resolution[int] = Resolution.capture(
                lambda kind=kind: int(self._counter.count_resources(tenant_id, kind, active_only=True))
            )
            counts[kind.value] = result.unwrap_or(
                0,
                logger=logger,
                context=f"{kind.value} count for tenant={tenant_id}",
            )
        return UsageSnapshot(**counts)

    def assert_within_limit(
        self,
        tenant_id: str,
        resource_kind: Union[str, ResourceKind],
        *,
        error_code: str = "resource_limit_reached",
    ) -> LimitCheckResult:
        """Raise :class:`FeatureGateError` when creating one more would exceed the limit."""

        result = self.check_limit(tenant_id, resource_kind)
        if not result.allowed:
            raise FeatureGateError.limit_reached(result, code=error_code)
        return result


__all__ = ["UsageGate", "evaluate_limit", "parse_resource_kind"]
