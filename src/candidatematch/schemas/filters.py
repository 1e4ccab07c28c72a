"""Declarative filter specification for the candidate listing."""

from __future__ import annotations

from typing import Any, Literal, Mapping

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import FilterValidationError
from .candidate import split_skill_tokens

VerificationFlag = Literal["phone", "email", "profile_complete"]

DEFAULT_EXPERIENCE_RANGE: tuple[float, float] = (0.0, 20.0)
DEFAULT_SALARY_RANGE: tuple[float, float] = (0.0, 50.0)

_VERIFICATION_ALIASES: dict[str, VerificationFlag] = {
    "phone": "phone",
    "phone verified": "phone",
    "phone_verified": "phone",
    "email": "email",
    "email verified": "email",
    "email_verified": "email",
    "profile_complete": "profile_complete",
    "profile complete": "profile_complete",
}

logger = structlog.get_logger(__name__)


class FilterSpec(BaseModel):
    """Immutable set of listing predicates. Empty values disable a predicate."""

    experience: tuple[float, float] = DEFAULT_EXPERIENCE_RANGE
    salary: tuple[float, float] = DEFAULT_SALARY_RANGE
    keyword: str = ""
    location_include: str = ""
    location_exclude: str = ""
    skills_include: tuple[str, ...] = ()
    skills_exclude: tuple[str, ...] = ()
    education: frozenset[str] = frozenset()
    verification: frozenset[VerificationFlag] = frozenset()
    saved_only: bool = False
    accessed_only: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("experience", "salary", mode="before")
    @classmethod
    def _clamp_range(cls, value: Any, info) -> tuple[float, float]:
        if value is None:
            return DEFAULT_EXPERIENCE_RANGE if info.field_name == "experience" else DEFAULT_SALARY_RANGE
        if isinstance(value, Mapping):
            value = (value.get("min"), value.get("max"))
        try:
            low, high = value
            low, high = float(low), float(high)
        except (TypeError, ValueError) as exc:
            raise FilterValidationError(info.field_name, "expected a [min, max] pair") from exc
        low, high = max(low, 0.0), max(high, 0.0)
        if low > high:
            low, high = high, low
        return low, high

    @field_validator("keyword", "location_include", "location_exclude", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("skills_include", "skills_exclude", mode="before")
    @classmethod
    def _split_terms(cls, value: Any) -> tuple[str, ...]:
        return tuple(token.lower() for token in split_skill_tokens(value))

    @field_validator("education", mode="before")
    @classmethod
    def _education_terms(cls, value: Any) -> frozenset[str]:
        return frozenset(split_skill_tokens(value))

    @field_validator("verification", mode="before")
    @classmethod
    def _verification_flags(cls, value: Any) -> frozenset[str]:
        flags = set()
        for item in split_skill_tokens(value):
            flag = _VERIFICATION_ALIASES.get(item.lower())
            if flag is not None:
                flags.add(flag)
        return frozenset(flags)


def build_filter_spec(raw: Mapping[str, Any] | None) -> FilterSpec:
    """Build a FilterSpec, dropping fields that fail validation."""
    data = dict(raw or {})
    while True:
        try:
            return FilterSpec.model_validate(data)
        except ValidationError as exc:
            invalid = {err["loc"][0] for err in exc.errors() if err.get("loc")}
            invalid &= set(data)
            if not invalid:
                logger.warning("filters.invalid_input", errors=str(exc))
                return FilterSpec()
            logger.warning(
                "filters.invalid_fields_ignored",
                fields=sorted(str(name) for name in invalid),
            )
            for name in invalid:
                data.pop(name, None)


__all__ = [
    "FilterSpec",
    "VerificationFlag",
    "DEFAULT_EXPERIENCE_RANGE",
    "DEFAULT_SALARY_RANGE",
    "build_filter_spec",
]
