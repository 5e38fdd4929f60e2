"""
Failure values for the indicator engine.

The calculator never raises for bad input. Each precondition check returns an
IndicatorFailure instead, and callers branch on it with ``is_failure``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeGuard


class FailureKind(str, Enum):
    """Which precondition failed."""
    EMPTY_SERIES = "EmptySeries"
    INVALID_PRICE = "InvalidPrice"
    INVALID_PERIOD = "InvalidPeriod"
    INVALID_ORDERING = "InvalidOrdering"
    INSUFFICIENT_DATA = "InsufficientData"
    UNSUPPORTED_INDICATOR = "UnsupportedIndicator"


@dataclass(frozen=True)
class IndicatorFailure:
    """Tagged error value returned in place of a computed series."""
    kind: FailureKind
    message: str
    context: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, kind: FailureKind, message: str, **context: Any) -> "IndicatorFailure":
        return cls(kind=kind, message=message, context=tuple(sorted(context.items())))

    def render(self) -> str:
        """User-facing diagnostic string."""
        return f"{self.kind.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": dict(self.context),
        }


def is_failure(value: object) -> TypeGuard[IndicatorFailure]:
    return isinstance(value, IndicatorFailure)
