"""Read-only API routes exposing subscription entitlements."""
from __future__ import annotations

import os
from typing import Any, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, status

from ..feature_gates import parse_resource_kind
from ..schemas.subscription import (
    FeatureAccessResponse,
    LimitCheckResponse,
    PlanLimitsResponse,
    SubscriptionStatusResponse,
    SubscriptionWarningResponse,
    UsageResponse,
)
from ..services.entitlements import get_entitlement_runtime

try:  # pragma: no cover - resolve context helper when imported from FastAPI app
    from backend import app_context
except ModuleNotFoundError as exc:  # pragma: no cover
    if exc.name != "backend":
        raise
    from ... import app_context  # type: ignore[no-redef]


_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")


def _get_current_user(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
):
    return app_context.get_current_user(session_token=session_token)


def _tenant_id(current_user: Any) -> str:
    tenant_id = getattr(current_user, "tenant_id", None)
    if not tenant_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not attached to a tenant")
    return str(tenant_id)


router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@router.get("/status", response_model=SubscriptionStatusResponse)
def get_status(*, current_user=Depends(_get_current_user)) -> SubscriptionStatusResponse:
    tenant_id = _tenant_id(current_user)
    resolver = get_entitlement_runtime().status_resolver
    subscription_status = resolver.resolve_status(tenant_id)
    message = resolver.get_subscription_message(tenant_id)
    return SubscriptionStatusResponse.from_status(tenant_id, subscription_status, message)


@router.get("/warning", response_model=SubscriptionWarningResponse)
def get_warning(*, current_user=Depends(_get_current_user)) -> SubscriptionWarningResponse:
    tenant_id = _tenant_id(current_user)
    warning = get_entitlement_runtime().status_resolver.check_subscription_warning(tenant_id)
    return SubscriptionWarningResponse.from_warning(warning)


@router.get("/limits", response_model=PlanLimitsResponse)
def get_limits(*, current_user=Depends(_get_current_user)) -> PlanLimitsResponse:
    tenant_id = _tenant_id(current_user)
    limits = get_entitlement_runtime().service.get_limits(tenant_id)
    return PlanLimitsResponse.from_limits(limits)


@router.get("/usage", response_model=UsageResponse)
def get_usage(*, current_user=Depends(_get_current_user)) -> UsageResponse:
    tenant_id = _tenant_id(current_user)
    snapshot = get_entitlement_runtime().usage_gate.get_current_usage(tenant_id)
    return UsageResponse.from_snapshot(snapshot)


@router.get("/features/{feature_key}", response_model=FeatureAccessResponse)
def get_feature_access(
    feature_key: str,
    *,
    current_user=Depends(_get_current_user),
) -> FeatureAccessResponse:
    tenant_id = _tenant_id(current_user)
    enabled = get_entitlement_runtime().service.check_feature_access(tenant_id, feature_key)
    return FeatureAccessResponse(feature=feature_key, enabled=enabled)


@router.get("/limits/{resource_kind}", response_model=LimitCheckResponse)
def check_resource_limit(
    resource_kind: str,
    *,
    current_user=Depends(_get_current_user),
) -> LimitCheckResponse:
    tenant_id = _tenant_id(current_user)
    try:
        kind = parse_resource_kind(resource_kind)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    result = get_entitlement_runtime().usage_gate.check_limit(tenant_id, kind)
    return LimitCheckResponse.from_result(kind, result)
