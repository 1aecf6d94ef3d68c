"""Outcome type for optional AI steps.

An AI step never raises into the search flow. It returns a ``StepOutcome``
carrying the value to use plus a tag saying whether that value came from
the model or from the documented neutral fallback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FallbackReason(str, Enum):
    """Why an AI step returned its fallback value."""
    NONE = "none"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_JSON = "malformed_json"
    INVALID_RESPONSE = "invalid_response"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class StepOutcome(Generic[T]):
    value: T
    fallback_reason: FallbackReason = FallbackReason.NONE
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.fallback_reason is FallbackReason.NONE

    @classmethod
    def ok(cls, value: T) -> "StepOutcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: FallbackReason, error: Optional[str] = None) -> "StepOutcome[T]":
        return cls(value=value, fallback_reason=reason, error=error)
