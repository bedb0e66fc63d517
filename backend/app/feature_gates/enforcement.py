"""Helpers for enforcing feature entitlements on API and service layers."""
from __future__ import annotations

from ..entitlements.service import EntitlementService
from .exceptions import FeatureGateError


def require_feature(
    service: EntitlementService,
    tenant_id: str,
    feature_key: str,
    *,
    error_code: str = "entitlement_required",
    message: str | None = None,
) -> None:
    """Ensure the tenant's plan grants ``feature_key`` before proceeding.

    Parameters
    ----------
    service:
        Entitlement service resolving the tenant's plan features.
    tenant_id:
        Tenant whose subscription is checked.
    feature_key:
        Canonical feature key; boolean synonyms and legacy phrases are
        honored.
    error_code:
        Optional override for the surfaced error code. Defaults to
        ``"entitlement_required"``.
    message:
        Optional human-friendly message explaining the failure.
    """

    if not service.check_feature_access(tenant_id, feature_key):
        raise FeatureGateError.feature_missing(feature_key, code=error_code, message=message)
