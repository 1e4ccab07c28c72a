"""Experience-in-years normalization."""

from __future__ import annotations

import re
from typing import Any, Iterable

import pendulum
from pendulum.parsing.exceptions import ParserError

from ...schemas import CandidateRecord, WorkExperience


class ExperienceNormalizer:
    """Resolve a candidate's total experience from heterogeneous sources.

    Fallback order:

    1. the summed month spans of ``work_experiences`` when positive,
    2. the first numeric token in ``experience_text`` ("3.5 years" -> 3.5),
    3. the explicit ``experience_years`` field,
    4. ``0.0``.

    A zero result means "no usable experience data": a minimum filter bound
    above zero excludes such candidates, a minimum of zero keeps them.
    """

    _NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

    def __init__(self, *, now_provider: Any | None = None) -> None:
        self._now_provider = now_provider or pendulum.now

    def years(self, record: CandidateRecord, as_of: pendulum.DateTime | None = None) -> float:
        reference = as_of or self._now_provider()

        if record.work_experiences:
            months = self.total_months(record.work_experiences, reference)
            if months > 0:
                return months / 12

        match = self._NUMBER_PATTERN.search(record.experience_text or "")
        if match:
            return float(match.group(1))

        if record.experience_years is not None:
            return float(record.experience_years)

        return 0.0

    def total_months(
        self,
        experiences: Iterable[WorkExperience],
        as_of: pendulum.DateTime,
    ) -> int:
        return sum(self._months_for_entry(entry, as_of) for entry in experiences)

    def _months_for_entry(self, entry: WorkExperience, as_of: pendulum.DateTime) -> int:
        start = self._parse_date(entry.start_date)
        if start is None:
            return 0
        if entry.is_current or not entry.end_date:
            end = as_of
        else:
            end = self._parse_date(entry.end_date)
            if end is None:
                return 0
        months = (end.year - start.year) * 12 + (end.month - start.month)
        return max(0, months)

    @staticmethod
    def _parse_date(value: str | None) -> pendulum.DateTime | None:
        if not value:
            return None
        try:
            if len(value) == 7 and value[4] == "-":
                return pendulum.datetime(int(value[:4]), int(value[5:7]), 1)
            parsed = pendulum.parse(value)
        except (ValueError, ParserError):
            return None
        if isinstance(parsed, pendulum.DateTime):
            return parsed
        if isinstance(parsed, pendulum.Date):
            return pendulum.datetime(parsed.year, parsed.month, parsed.day)
        return None
