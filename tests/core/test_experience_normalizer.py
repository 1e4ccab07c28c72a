from __future__ import annotations

from typing import Any

import pendulum
import pytest

from candidatematch.core.normalization import RecordNormalizer, normalize_skills
from candidatematch.schemas import CandidateRecord

AS_OF = pendulum.datetime(2025, 1, 15)


def build_candidate(**kwargs: Any) -> CandidateRecord:
    defaults: dict[str, Any] = {"id": "C-100", "name": "Asha"}
    defaults.update(kwargs)
    return CandidateRecord(**defaults)


@pytest.fixture
def normalizer() -> RecordNormalizer:
    return RecordNormalizer(now_provider=lambda: AS_OF)


def test_experience_from_work_history(normalizer: RecordNormalizer):
    candidate = build_candidate(
        work_experiences=[
            {"start_date": "2019-01-01", "end_date": "2021-01-01", "is_current": False},
        ]
    )

    assert normalizer.normalize_experience_years(candidate) == pytest.approx(2.0)


def test_current_role_runs_until_now(normalizer: RecordNormalizer):
    candidate = build_candidate(
        work_experiences=[
            {"start_date": "2020-01", "end_date": "2021-07", "is_current": False},
            {"start_date": "2023-01-10", "end_date": "2023-06-01", "is_current": True},
        ]
    )

    # 18 months + 24 months (Jan 2023 to Jan 2025)
    assert normalizer.normalize_experience_years(candidate) == pytest.approx(42 / 12)


def test_unparsable_start_contributes_nothing(normalizer: RecordNormalizer):
    candidate = build_candidate(
        work_experiences=[
            {"start_date": "sometime", "end_date": "2021-01-01"},
            {"start_date": None, "end_date": "2021-01-01"},
            {"start_date": "2020-01-01", "end_date": "2021-01-01"},
        ]
    )

    assert normalizer.normalize_experience_years(candidate) == pytest.approx(1.0)


def test_falls_back_to_experience_text_when_history_sums_to_zero(normalizer: RecordNormalizer):
    candidate = build_candidate(
        work_experiences=[{"start_date": "bad-date"}],
        experience_text="3.5 years",
        experience_years=9,
    )

    assert normalizer.normalize_experience_years(candidate) == pytest.approx(3.5)


def test_falls_back_to_explicit_years(normalizer: RecordNormalizer):
    candidate = build_candidate(experience_text="Fresher", experience_years=4)

    assert normalizer.normalize_experience_years(candidate) == pytest.approx(4.0)


def test_no_experience_data_is_zero(normalizer: RecordNormalizer):
    assert normalizer.normalize_experience_years(build_candidate()) == 0.0


def test_end_before_start_is_floored(normalizer: RecordNormalizer):
    candidate = build_candidate(
        work_experiences=[{"start_date": "2022-01-01", "end_date": "2020-01-01"}],
        experience_text="2 years",
    )

    assert normalizer.normalize_experience_years(candidate) == pytest.approx(2.0)


def test_skills_from_list_and_string_are_lowercased():
    from_list = build_candidate(skills=[" Python ", "React", ""])
    from_text = build_candidate(skills="Python, React ,AWS")

    assert normalize_skills(from_list) == {"python", "react"}
    assert normalize_skills(from_text) == {"python", "react", "aws"}
    assert from_text.skills == ["Python", "React", "AWS"]


def test_normalize_bundles_all_values(normalizer: RecordNormalizer):
    candidate = build_candidate(
        experience_text="5 yrs",
        current_salary="600000",
        expected_salary="Not specified",
        skills=["Go"],
    )

    normalized = normalizer.normalize(candidate)

    assert normalized.experience_years == pytest.approx(5.0)
    assert normalized.current_salary_lpa == pytest.approx(6.0)
    assert normalized.expected_salary_lpa is None
    assert normalized.salaries == (6.0,)
    assert normalized.skills == {"go"}
