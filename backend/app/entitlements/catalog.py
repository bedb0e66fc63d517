"""Fixed limit sets used when no plan row supplies them."""
from __future__ import annotations

from typing import Optional

from .features import EMPTY_FEATURES, parse_feature_set
from .models import PlanLimits, PlanRecord

# Granted to inactive subscriptions and on any lookup error.
ZERO_LIMITS = PlanLimits.zero()

# Tenants with no subscription row or no plan are on the free tier.
FREE_TIER_LIMITS = PlanLimits(
    max_users=1,
    max_ingredients=3,
    max_batches=1,
    max_storage_locations=1,
    max_recipes=2,
    max_products=4,
    features=EMPTY_FEATURES,
)

# Substituted field by field when a plan row leaves a ceiling unset, zero or negative.
PLAN_FIELD_FALLBACKS = PlanLimits(
    max_users=1,
    max_ingredients=10,
    max_batches=5,
    max_storage_locations=2,
    max_recipes=3,
    max_products=5,
    features=EMPTY_FEATURES,
)


def _ceiling(value: Optional[int], fallback: int) -> int:
    if value is None or int(value) <= 0:
        return fallback
    return int(value)


def limits_from_plan(plan: PlanRecord) -> PlanLimits:
    """Project a stored plan row onto :class:`PlanLimits`."""

    fallback = PLAN_FIELD_FALLBACKS
    return PlanLimits(
        max_users=_ceiling(plan.max_users, fallback.max_users),
        max_ingredients=_ceiling(plan.max_ingredients, fallback.max_ingredients),
        max_batches=_ceiling(plan.max_batches, fallback.max_batches),
        max_storage_locations=_ceiling(plan.max_storage_locations, fallback.max_storage_locations),
        max_recipes=_ceiling(plan.max_recipes, fallback.max_recipes),
        max_products=_ceiling(plan.max_products, fallback.max_products),
        features=parse_feature_set(plan.features),
    )


__all__ = ["FREE_TIER_LIMITS", "PLAN_FIELD_FALLBACKS", "ZERO_LIMITS", "limits_from_plan"]
