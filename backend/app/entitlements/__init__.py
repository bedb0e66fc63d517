"""Subscription status, plan limits, and feature entitlement resolution."""

from .catalog import FREE_TIER_LIMITS, PLAN_FIELD_FALLBACKS, ZERO_LIMITS, limits_from_plan
from .config import EntitlementConfig, load_entitlement_config
from .features import (
    DEFAULT_VOCABULARY,
    EMPTY_FEATURES,
    BooleanFeatures,
    FeatureSet,
    FeatureVocabulary,
    LegacyFeatures,
    parse_feature_set,
)
from .models import (
    LimitCheckResult,
    PlanLimits,
    PlanRecord,
    ResourceKind,
    SubscriptionRecord,
    SubscriptionState,
    SubscriptionStatus,
    SubscriptionStatusCode,
    SubscriptionWarning,
    UsageSnapshot,
)
from .results import Resolution
from .service import EntitlementService, ResourceCounter, SubscriptionStore
from .status import SubscriptionStatusResolver

__all__ = [
    "FREE_TIER_LIMITS",
    "PLAN_FIELD_FALLBACKS",
    "ZERO_LIMITS",
    "limits_from_plan",
    "EntitlementConfig",
    "load_entitlement_config",
    "DEFAULT_VOCABULARY",
    "EMPTY_FEATURES",
    "BooleanFeatures",
    "FeatureSet",
    "FeatureVocabulary",
    "LegacyFeatures",
    "parse_feature_set",
    "LimitCheckResult",
    "PlanLimits",
    "PlanRecord",
    "ResourceKind",
    "SubscriptionRecord",
    "SubscriptionState",
    "SubscriptionStatus",
    "SubscriptionStatusCode",
    "SubscriptionWarning",
    "UsageSnapshot",
    "Resolution",
    "EntitlementService",
    "ResourceCounter",
    "SubscriptionStore",
    "SubscriptionStatusResolver",
]
