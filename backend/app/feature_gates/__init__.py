"""Feature gating utilities coordinating entitlement enforcement."""
from .context import EntitlementContext
from .enforcement import require_feature
from .exceptions import FeatureGateError
from .quota import UsageGate, evaluate_limit, parse_resource_kind

__all__ = [
    "EntitlementContext",
    "FeatureGateError",
    "UsageGate",
    "evaluate_limit",
    "parse_resource_kind",
    "require_feature",
]
