from __future__ import annotations

import pytest

from candidatematch.core.normalization import RecordNormalizer, SalaryConfig, SalaryNormalizer


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("500000", 5.0),
        ("50000", 6.0),
        ("5 LPA", 5.0),
        ("12.5 Lakhs", 12.5),
        ("INR 1,200,000", 12.0),
        ("8", 8.0),
        ("999", 999.0),
        ("1000", 0.12),
    ],
)
def test_salary_unit_inference(raw: str, expected: float):
    normalizer = RecordNormalizer()

    assert normalizer.normalize_salary_lpa(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "Not specified", "null", "negotiable"])
def test_salary_missing_values_are_none(raw):
    assert SalaryNormalizer().to_lpa(raw) is None


def test_salary_lpa_marker_wins_over_magnitude():
    normalizer = SalaryNormalizer()

    assert normalizer.to_lpa("150000 LPA") == pytest.approx(150000.0)


def test_salary_thresholds_are_configurable():
    normalizer = SalaryNormalizer(config=SalaryConfig(monthly_floor=10_000))

    assert normalizer.to_lpa("5000") == pytest.approx(5000.0)
    assert normalizer.to_lpa("50000") == pytest.approx(6.0)
