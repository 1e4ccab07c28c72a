"""Canonical normalized view of a candidate record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pendulum

from ...schemas import CandidateRecord
from .experience import ExperienceNormalizer
from .salary import SalaryConfig, SalaryNormalizer
from .skills import normalize_skills


@dataclass(frozen=True, slots=True)
class NormalizedRecord:
    """Comparable values derived from a raw candidate record."""

    experience_years: float
    current_salary_lpa: float | None
    expected_salary_lpa: float | None
    skills: frozenset[str]

    @property
    def salaries(self) -> tuple[float, ...]:
        return tuple(
            value
            for value in (self.current_salary_lpa, self.expected_salary_lpa)
            if value is not None
        )


class RecordNormalizer:
    """Facade over the experience, salary and skill policies."""

    def __init__(
        self,
        *,
        salary_config: SalaryConfig | None = None,
        now_provider: Any | None = None,
    ) -> None:
        self._experience = ExperienceNormalizer(now_provider=now_provider)
        self._salary = SalaryNormalizer(config=salary_config)

    def normalize_experience_years(
        self,
        record: CandidateRecord,
        as_of: pendulum.DateTime | None = None,
    ) -> float:
        return self._experience.years(record, as_of)

    def normalize_salary_lpa(self, raw: str | None) -> float | None:
        return self._salary.to_lpa(raw)

    @staticmethod
    def normalize_skills(record: CandidateRecord) -> frozenset[str]:
        return normalize_skills(record)

    def normalize(
        self,
        record: CandidateRecord,
        as_of: pendulum.DateTime | None = None,
    ) -> NormalizedRecord:
        return NormalizedRecord(
            experience_years=self.normalize_experience_years(record, as_of),
            current_salary_lpa=self.normalize_salary_lpa(record.current_salary),
            expected_salary_lpa=self.normalize_salary_lpa(record.expected_salary),
            skills=self.normalize_skills(record),
        )
