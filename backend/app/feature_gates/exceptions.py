"""Errors raised when an entitlement check denies an action."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from ..entitlements.models import LimitCheckResult


@dataclass
class FeatureGateError(Exception):
    """A denied action, carrying the reason shown to API callers."""

    code: str
    message: str
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @classmethod
    def feature_missing(
        cls,
        feature_key: str,
        *,
        code: str = "entitlement_required",
        message: Optional[str] = None,
    ) -> "FeatureGateError":
        return cls(
            code=code,
            message=message or f"Your plan does not include '{feature_key}'.",
            detail={"missing_entitlement": feature_key},
        )

    @classmethod
    def limit_reached(
        cls,
        result: LimitCheckResult,
        *,
        code: str = "resource_limit_reached",
    ) -> "FeatureGateError":
        return cls(
            code=code,
            message=result.reason or "Resource limit reached.",
            detail={
                "resource": result.resource.value if result.resource else None,
                "current_usage": result.current_usage,
                "limit": result.limit,
            },
        )

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))
