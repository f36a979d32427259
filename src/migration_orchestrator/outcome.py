"""Result type of the AI path and the pure fallback decision."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why the AI path produced no artifact."""

    RETRIES_EXHAUSTED = "retries_exhausted"
    PROVIDER_ERROR = "provider_error"
    MALFORMED = "malformed"
    SCHEMA_INVALID = "schema_invalid"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Either an artifact produced by the model or the reason there is none."""

    artifact: T | None = None
    failure: FailureKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.artifact is not None

    @classmethod
    def success(cls, artifact: T) -> StageOutcome[T]:
        return cls(artifact=artifact)

    @classmethod
    def failed(cls, failure: FailureKind, detail: str = "") -> StageOutcome[T]:
        return cls(failure=failure, detail=detail)


def resolve_artifact(outcome: StageOutcome[T], fallback: Callable[[], T]) -> tuple[T, bool]:
    """Pick the artifact to keep for *outcome*.

    Returns ``(artifact, used_fallback)``.  The fallback factory is only
    called when the outcome failed.
    """
    if outcome.ok:
        return outcome.artifact, False  # type: ignore[return-value]
    return fallback(), True
