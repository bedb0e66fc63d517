"""Domain models for subscription status, plan limits, and usage checks."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .features import EMPTY_FEATURES, FeatureSet


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so comparisons never mix awareness."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SubscriptionStatusCode(str, Enum):
    """Status values written to subscription rows by billing."""

    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PENDING_CHECKOUT = "PENDING_CHECKOUT"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    INACTIVE = "INACTIVE"

    @property
    def is_base_active(self) -> bool:
        return self in BASE_ACTIVE_STATUSES


BASE_ACTIVE_STATUSES = frozenset(
    {
        SubscriptionStatusCode.ACTIVE,
        SubscriptionStatusCode.TRIALING,
        # A tenant mid-checkout keeps access while payment is processed.
        SubscriptionStatusCode.PENDING_CHECKOUT,
    }
)


class SubscriptionState(str, Enum):
    """Classification of a resolved status against the clock."""

    NO_RECORD = "no_record"
    ACTIVE_BASE = "active_base"
    PAST_DUE_GRACE = "past_due_grace"
    PAST_DUE_EXPIRED = "past_due_expired"
    POST_PERIOD_GRACE = "post_period_grace"
    POST_GRACE_EXPIRED = "post_grace_expired"
    INACTIVE = "inactive"


class SubscriptionRecord(BaseModel):
    """Subscription row as read from the subscription store."""

    tenant_id: str
    status: SubscriptionStatusCode
    current_period_end: Optional[datetime] = None
    plan_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("current_period_end")
    @classmethod
    def _utc_period_end(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class SubscriptionStatus(BaseModel):
    """Status derived from a record and the current time. Never cached."""

    is_active: bool
    is_expired: bool
    is_in_grace_period: bool = False
    current_period_end: Optional[datetime] = None
    status: Optional[SubscriptionStatusCode] = None
    plan_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def no_access(cls) -> "SubscriptionStatus":
        """Fail-closed status used for missing records and errors alike."""

        return cls(
            is_active=False,
            is_expired=True,
            is_in_grace_period=False,
            current_period_end=None,
            status=None,
            plan_id=None,
        )

    @property
    def state(self) -> SubscriptionState:
        if self.status is None:
            return SubscriptionState.NO_RECORD
        past_due = self.status == SubscriptionStatusCode.PAST_DUE
        if self.is_expired:
            return SubscriptionState.PAST_DUE_EXPIRED if past_due else SubscriptionState.POST_GRACE_EXPIRED
        if self.is_in_grace_period and self.is_active:
            return SubscriptionState.PAST_DUE_GRACE if past_due else SubscriptionState.POST_PERIOD_GRACE
        if self.is_active:
            return SubscriptionState.ACTIVE_BASE
        return SubscriptionState.INACTIVE


class SubscriptionWarning(BaseModel):
    """Billing reminder computed for notification surfaces."""

    should_warn: bool
    days_remaining: int = 0
    current_period_end: Optional[datetime] = None
    is_in_grace_period: bool = False
    grace_period_end: Optional[datetime] = None
    message: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def none(cls, current_period_end: Optional[datetime] = None) -> "SubscriptionWarning":
        return cls(should_warn=False, days_remaining=0, current_period_end=current_period_end)


class ResourceKind(str, Enum):
    """Tenant-owned resources that plans put a ceiling on."""

    USERS = "users"
    INGREDIENTS = "ingredients"
    BATCHES = "batches"
    STORAGE_LOCATIONS = "storage_locations"
    RECIPES = "recipes"
    PRODUCTS = "products"

    @property
    def label(self) -> str:
        return _RESOURCE_LABELS[self]

    @property
    def limit_field(self) -> str:
        return _RESOURCE_LIMIT_FIELDS[self]


_RESOURCE_LABELS: Dict[ResourceKind, str] = {
    ResourceKind.USERS: "User",
    ResourceKind.INGREDIENTS: "Ingredient",
    ResourceKind.BATCHES: "Batch",
    ResourceKind.STORAGE_LOCATIONS: "Storage location",
    ResourceKind.RECIPES: "Recipe",
    ResourceKind.PRODUCTS: "Product",
}

_RESOURCE_LIMIT_FIELDS: Dict[ResourceKind, str] = {
    ResourceKind.USERS: "max_users",
    ResourceKind.INGREDIENTS: "max_ingredients",
    ResourceKind.BATCHES: "max_batches",
    ResourceKind.STORAGE_LOCATIONS: "max_storage_locations",
    ResourceKind.RECIPES: "max_recipes",
    ResourceKind.PRODUCTS: "max_products",
}


@dataclass(frozen=True)
class PlanLimits:
    """Resource ceilings and features granted to a tenant."""

    max_users: int = 0
    max_ingredients: int = 0
    max_batches: int = 0
    max_storage_locations: int = 0
    max_recipes: int = 0
    max_products: int = 0
    features: FeatureSet = field(default=EMPTY_FEATURES)

    @classmethod
    def zero(cls) -> "PlanLimits":
        return cls()

    def limit_for(self, kind: ResourceKind) -> int:
        return int(getattr(self, kind.limit_field))

    def is_zero(self) -> bool:
        ceilings = [getattr(self, f.name) for f in fields(self) if f.name != "features"]
        return not any(ceilings) and self.features.is_empty()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize limits for API responses and logging."""

        return {
            "max_users": self.max_users,
            "max_ingredients": self.max_ingredients,
            "max_batches": self.max_batches,
            "max_storage_locations": self.max_storage_locations,
            "max_recipes": self.max_recipes,
            "max_products": self.max_products,
            "features": self.features.to_payload(),
        }


class PlanRecord(BaseModel):
    """Plan row as stored; ceilings may be unset."""

    plan_id: str
    name: Optional[str] = None
    max_users: Optional[int] = None
    max_ingredients: Optional[int] = None
    max_batches: Optional[int] = None
    max_storage_locations: Optional[int] = None
    max_recipes: Optional[int] = None
    max_products: Optional[int] = None
    features: Any = None

    model_config = ConfigDict(frozen=True)


class LimitCheckResult(BaseModel):
    """Outcome of comparing current usage against a ceiling."""

    allowed: bool
    reason: Optional[str] = None
    current_usage: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0)
    resource: Optional[ResourceKind] = None

    model_config = ConfigDict(frozen=True)


class UsageSnapshot(BaseModel):
    """Current live resource counts for a tenant."""

    users: int = 0
    ingredients: int = 0
    batches: int = 0
    storage_locations: int = 0
    recipes: int = 0
    products: int = 0

    model_config = ConfigDict(frozen=True)

    def count_for(self, kind: ResourceKind) -> int:
        return int(getattr(self, kind.value))


__all__ = [
    "BASE_ACTIVE_STATUSES",
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
    "ensure_utc",
]
