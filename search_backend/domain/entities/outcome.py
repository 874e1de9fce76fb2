"""Explicit result type for stages that degrade instead of failing."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class OutcomeStatus(str, Enum):
    PRIMARY = "primary"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Value produced by a pipeline stage plus how it was produced.

    ``PRIMARY`` means the model path succeeded, ``DEGRADED`` means a
    deterministic fallback supplied the value, ``FAILED`` means neither
    produced anything usable and ``value`` holds a neutral default.
    """

    value: T
    status: OutcomeStatus = OutcomeStatus.PRIMARY
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.status is not OutcomeStatus.PRIMARY

    @classmethod
    def primary(cls, value: T) -> "StageOutcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: BaseException | str) -> "StageOutcome[T]":
        return cls(value=value, status=OutcomeStatus.DEGRADED, error=str(error))
