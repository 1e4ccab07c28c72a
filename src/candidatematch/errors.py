"""Error taxonomy for the matching pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


class CandidateMatchError(Exception):
    """Base class for pipeline errors."""


class FilterValidationError(CandidateMatchError, ValueError):
    """Raised for malformed filter input. Never escapes filter parsing."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class NetworkError(CandidateMatchError):
    """Transport-level failure talking to an external service.

    Retryable and non-fatal: callers surface it and let the user try again.
    """

    retryable = True


class ServiceError(CandidateMatchError):
    """An external service answered with ``success: false`` or an HTTP error."""

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.status = status


class RunStartError(CandidateMatchError):
    """The scoring service refused or failed to start a run."""

    def __init__(self, requirement_id: str, cause: Exception):
        super().__init__(f"Could not start ATS run for requirement {requirement_id!r}: {cause}")
        self.requirement_id = requirement_id
        self.cause = cause


@dataclass(frozen=True, slots=True)
class PartialFailure:
    """Aggregate of the candidates that failed scoring within one run."""

    failed: int
    total: int
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return f"{self.failed} of {self.total} candidates could not be scored"


__all__ = [
    "CandidateMatchError",
    "FilterValidationError",
    "NetworkError",
    "ServiceError",
    "RunStartError",
    "PartialFailure",
]
