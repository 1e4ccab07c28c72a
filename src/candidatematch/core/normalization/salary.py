"""Salary string normalization into lakhs per annum."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass
class SalaryConfig:
    """Unit inference thresholds for free-text salaries.

    The defaults reproduce the listing screen's historical heuristic and must
    not be changed without a data migration plan: values with an LPA marker
    are taken as-is, values >= ``lakh`` are annual amounts, values in
    ``[monthly_floor, lakh)`` are monthly amounts, smaller values are LPA.
    """

    lakh: float = 100_000.0
    monthly_floor: float = 1_000.0
    months_per_year: int = 12
    lpa_markers: tuple[str, ...] = ("lpa", "lakh")
    missing_markers: tuple[str, ...] = ("not specified", "null")


class SalaryNormalizer:
    """Convert mixed-unit salary strings into a comparable LPA figure."""

    _NUMBER_PATTERN = re.compile(r"(\d+(?:,\d+)*(?:\.\d+)?)")

    def __init__(self, *, config: SalaryConfig | None = None) -> None:
        self._config = config or SalaryConfig()

    @property
    def config(self) -> SalaryConfig:
        return self._config

    def to_lpa(self, raw: str | None) -> float | None:
        if raw is None:
            return None
        text = str(raw).strip()
        if not text or text.lower() in self._config.missing_markers:
            return None

        match = self._NUMBER_PATTERN.search(text)
        if not match:
            return None
        value = float(match.group(1).replace(",", ""))

        lowered = text.lower()
        if any(marker in lowered for marker in self._config.lpa_markers):
            return value
        if value >= self._config.lakh:
            return value / self._config.lakh
        if value >= self._config.monthly_floor:
            return (value * self._config.months_per_year) / self._config.lakh
        return value
