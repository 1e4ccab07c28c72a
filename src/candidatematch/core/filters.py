"""Declarative candidate filtering over normalized values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import structlog

from ..schemas import CandidateRecord, FilterSpec
from ..schemas.filters import DEFAULT_EXPERIENCE_RANGE, DEFAULT_SALARY_RANGE
from .normalization import NormalizedRecord, RecordNormalizer


@dataclass
class FilterConfig:
    """Configuration for listing filters."""

    experience_full_range: tuple[float, float] = DEFAULT_EXPERIENCE_RANGE
    salary_full_range: tuple[float, float] = DEFAULT_SALARY_RANGE
    profile_complete_threshold: int = 80

    def __post_init__(self) -> None:
        self.experience_full_range = tuple(float(v) for v in self.experience_full_range)
        self.salary_full_range = tuple(float(v) for v in self.salary_full_range)


@dataclass(frozen=True, slots=True)
class Predicate:
    """Named candidate predicate. Predicates never depend on each other."""

    name: str
    test: Callable[[CandidateRecord, NormalizedRecord], bool]

    def __call__(self, record: CandidateRecord, normalized: NormalizedRecord) -> bool:
        return self.test(record, normalized)


class FilterEngine:
    """Apply a FilterSpec over a candidate collection.

    Only predicates enabled by the FilterSpec are built. Every predicate is a pure
    function of one record, so the surviving set is independent of the order
    in which predicates run, and the relative input order is preserved.
    """

    def __init__(
        self,
        *,
        normalizer: RecordNormalizer | None = None,
        config: FilterConfig | None = None,
    ) -> None:
        self._normalizer = normalizer or RecordNormalizer()
        self._config = config or FilterConfig()
        self._logger = structlog.get_logger(__name__)

    def apply(self, candidates: Iterable[CandidateRecord], spec: FilterSpec) -> list[CandidateRecord]:
        records = list(candidates)
        predicates = self.build_predicates(spec)
        result = self.filter_with(records, predicates)
        self._logger.info(
            "filters.applied",
            predicates=[predicate.name for predicate in predicates],
            before=len(records),
            after=len(result),
        )
        return result

    def filter_with(
        self,
        candidates: Iterable[CandidateRecord],
        predicates: Sequence[Predicate],
    ) -> list[CandidateRecord]:
        """Run predicates one after another, each narrowing the previous result."""
        pairs = [(record, self._normalizer.normalize(record)) for record in candidates]
        for predicate in predicates:
            pairs = [(record, normalized) for record, normalized in pairs if predicate(record, normalized)]
        return [record for record, _ in pairs]

    def build_predicates(self, spec: FilterSpec) -> list[Predicate]:
        predicates: list[Predicate] = []

        if spec.saved_only:
            predicates.append(Predicate("saved", lambda record, _: record.is_saved))
        if spec.accessed_only:
            predicates.append(Predicate("accessed", lambda record, _: record.is_viewed))

        keyword = spec.keyword.lower()
        if keyword:
            predicates.append(Predicate("keyword", lambda record, _: _keyword_match(record, keyword)))

        include = spec.location_include.lower()
        if include:
            predicates.append(
                Predicate("location_include", lambda record, _: _location_match(record, include))
            )
        exclude = spec.location_exclude.lower()
        if exclude:
            predicates.append(
                Predicate("location_exclude", lambda record, _: not _location_match(record, exclude))
            )

        if spec.skills_include:
            terms = spec.skills_include
            predicates.append(
                Predicate("skills_include", lambda _, normalized: _skills_match(normalized.skills, terms))
            )
        if spec.skills_exclude:
            terms_out = spec.skills_exclude
            predicates.append(
                Predicate(
                    "skills_exclude",
                    lambda _, normalized: not _skills_match(normalized.skills, terms_out),
                )
            )

        if spec.experience != self._config.experience_full_range:
            low, high = spec.experience
            predicates.append(
                Predicate("experience", lambda _, normalized: low <= normalized.experience_years <= high)
            )

        if spec.salary != self._config.salary_full_range:
            salary_low, salary_high = spec.salary
            predicates.append(
                Predicate(
                    "salary",
                    lambda _, normalized: any(
                        salary_low <= value <= salary_high for value in normalized.salaries
                    ),
                )
            )

        if spec.verification:
            flags = spec.verification
            threshold = self._config.profile_complete_threshold
            predicates.append(
                Predicate("verification", lambda record, _: _verified(record, flags, threshold))
            )

        if spec.education:
            degrees = [term.lower() for term in spec.education]
            predicates.append(
                Predicate("education", lambda record, _: _education_match(record, degrees))
            )

        return predicates


def _contains(haystack: Any, needle: str) -> bool:
    return needle in (haystack or "").lower()


def _keyword_match(record: CandidateRecord, keyword: str) -> bool:
    return any(
        _contains(field, keyword)
        for field in (record.name, record.designation, record.headline, record.summary)
    )


def _location_match(record: CandidateRecord, location: str) -> bool:
    if _contains(record.location, location):
        return True
    return any(_contains(preferred, location) for preferred in record.preferred_locations)


def _skills_match(skills: frozenset[str], terms: Sequence[str]) -> bool:
    return any(term in skill for term in terms for skill in skills)


def _verified(record: CandidateRecord, flags: frozenset[str], threshold: int) -> bool:
    checks = {
        "phone": record.phone_verified,
        "email": record.email_verified,
        "profile_complete": record.profile_completion >= threshold,
    }
    return all(checks[flag] for flag in flags)


def _education_match(record: CandidateRecord, degrees: Sequence[str]) -> bool:
    first_degree = ""
    if record.education_details:
        first_degree = record.education_details[0].degree or ""
    return any(
        _contains(record.education, degree) or _contains(first_degree, degree)
        for degree in degrees
    )


__all__ = ["FilterConfig", "FilterEngine", "Predicate"]
