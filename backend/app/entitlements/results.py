"""Explicit success/failure wrapper for entitlement lookups.

Lookups return a :class:`Resolution` instead of raising so that the
"error becomes denial" policy is applied in one visible place, the
``unwrap_or`` call at the public boundary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Resolution(Generic[T]):
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Resolution[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Resolution[T]":
        return cls(error=error)

    @classmethod
    def capture(cls, fn: Callable[[], T]) -> "Resolution[T]":
        """Run ``fn`` and wrap its return value or the exception it raised."""

        try:
            return cls.success(fn())
        except Exception as exc:
            return cls.failure(exc)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(
        self,
        fallback: T,
        *,
        logger: Optional[logging.Logger] = None,
        context: str = "",
    ) -> T:
        """Return the value, or ``fallback`` when the lookup failed."""

        if self.error is None:
            return self.value  # type: ignore[return-value]
        if logger is not None:
            logger.warning(
                "Failing closed %s: %s",
                context,
                self.error,
                exc_info=self.error,
            )
        return fallback


__all__ = ["Resolution"]
