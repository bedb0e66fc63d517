"""API schemas for subscription entitlement endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import (
    LimitCheckResult,
    PlanLimits,
    ResourceKind,
    SubscriptionState,
    SubscriptionStatus,
    SubscriptionStatusCode,
    SubscriptionWarning,
    UsageSnapshot,
)


class SubscriptionStatusResponse(BaseModel):
    tenant_id: str = Field(alias="tenantId")
    is_active: bool = Field(alias="isActive")
    is_expired: bool = Field(alias="isExpired")
    is_in_grace_period: bool = Field(alias="isInGracePeriod")
    current_period_end: Optional[datetime] = Field(alias="currentPeriodEnd", default=None)
    status: Optional[SubscriptionStatusCode] = None
    plan_id: Optional[str] = Field(alias="planId", default=None)
    state: SubscriptionState
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_status(
        cls,
        tenant_id: str,
        status: SubscriptionStatus,
        message: Optional[str],
    ) -> "SubscriptionStatusResponse":
        return cls(
            tenant_id=tenant_id,
            is_active=status.is_active,
            is_expired=status.is_expired,
            is_in_grace_period=status.is_in_grace_period,
            current_period_end=status.current_period_end,
            status=status.status,
            plan_id=status.plan_id,
            state=status.state,
            message=message,
        )


class SubscriptionWarningResponse(BaseModel):
    should_warn: bool = Field(alias="shouldWarn")
    days_remaining: int = Field(alias="daysRemaining")
    current_period_end: Optional[datetime] = Field(alias="currentPeriodEnd", default=None)
    is_in_grace_period: bool = Field(alias="isInGracePeriod", default=False)
    grace_period_end: Optional[datetime] = Field(alias="gracePeriodEnd", default=None)
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_warning(cls, warning: SubscriptionWarning) -> "SubscriptionWarningResponse":
        return cls(
            should_warn=warning.should_warn,
            days_remaining=warning.days_remaining,
            current_period_end=warning.current_period_end,
            is_in_grace_period=warning.is_in_grace_period,
            grace_period_end=warning.grace_period_end,
            message=warning.message,
        )


class PlanLimitsResponse(BaseModel):
    max_users: int = Field(alias="maxUsers")
    max_ingredients: int = Field(alias="maxIngredients")
    max_batches: int = Field(alias="maxBatches")
    max_storage_locations: int = Field(alias="maxStorageLocations")
    max_recipes: int = Field(alias="maxRecipes")
    max_products: int = Field(alias="maxProducts")
    features: Union[Dict[str, bool], List[str]]

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_limits(cls, limits: PlanLimits) -> "PlanLimitsResponse":
        return cls(**limits.to_dict())


class UsageResponse(BaseModel):
    users: int
    ingredients: int
    batches: int
    storage_locations: int = Field(alias="storageLocations")
    recipes: int
    products: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_snapshot(cls, snapshot: UsageSnapshot) -> "UsageResponse":
        return cls(**snapshot.model_dump())


class FeatureAccessResponse(BaseModel):
    feature: str
    enabled: bool


class LimitCheckResponse(BaseModel):
    resource: ResourceKind
    allowed: bool
    reason: Optional[str] = None
    current_usage: int = Field(alias="currentUsage")
    limit: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, kind: ResourceKind, result: LimitCheckResult) -> "LimitCheckResponse":
        return cls(
            resource=result.resource or kind,
            allowed=result.allowed,
            reason=result.reason,
            current_usage=result.current_usage,
            limit=result.limit,
        )
