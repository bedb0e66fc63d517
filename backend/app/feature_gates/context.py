"""Per-request view of a tenant's entitlements for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..entitlements.features import DEFAULT_VOCABULARY, FeatureVocabulary
from ..entitlements.models import LimitCheckResult, PlanLimits, ResourceKind, SubscriptionStatus
from ..entitlements.service import EntitlementService
from .exceptions import FeatureGateError
from .quota import evaluate_limit, parse_resource_kind


@dataclass(frozen=True)
class EntitlementContext:
    """Facade exposing gating helpers over limits resolved once per request."""

    tenant_id: str
    status: SubscriptionStatus
    limits: PlanLimits
    vocabulary: FeatureVocabulary = DEFAULT_VOCABULARY

    @classmethod
    def load(cls, service: EntitlementService, tenant_id: str) -> "EntitlementContext":
        return cls(
            tenant_id=tenant_id,
            status=service.resolve_status(tenant_id),
            limits=service.get_limits(tenant_id),
            vocabulary=service.vocabulary,
        )

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def has(self, feature_key: str) -> bool:
        """Return whether the plan grants ``feature_key``."""

        return self.limits.features.grants(feature_key, self.vocabulary)

    def require(self, feature_key: str, *, error_code: str = "entitlement_required") -> None:
        if not self.has(feature_key):
            raise FeatureGateError.feature_missing(feature_key, code=error_code)

    def limit_for(self, resource_kind: Union[str, ResourceKind]) -> int:
        return self.limits.limit_for(parse_resource_kind(resource_kind))

    def evaluate(self, resource_kind: Union[str, ResourceKind], *, usage: int) -> LimitCheckResult:
        """Check a known usage count against this context's ceiling."""

        kind = parse_resource_kind(resource_kind)
        return evaluate_limit(kind, usage=usage, limit=self.limits.limit_for(kind))

    def assert_within_limit(
        self,
        resource_kind: Union[str, ResourceKind],
        *,
        usage: int,
        error_code: str = "resource_limit_reached",
    ) -> LimitCheckResult:
        result = self.evaluate(resource_kind, usage=usage)
        if not result.allowed:
            raise FeatureGateError.limit_reached(result, code=error_code)
        return result
