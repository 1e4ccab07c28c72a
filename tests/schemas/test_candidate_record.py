from __future__ import annotations

import pytest
from pydantic import ValidationError

from candidatematch.adapters import PortalAdapter
from candidatematch.schemas import CandidateRecord, EngagementFlags, StartRunResponse


def test_candidate_record_defaults():
    record = CandidateRecord(id="C-001")

    assert record.name == ""
    assert record.skills == []
    assert record.work_experiences == []
    assert record.ats_score is None
    assert record.ats_calculated_at is None
    assert record.like_count == 0
    assert record.is_saved is False


def test_candidate_record_requires_id():
    with pytest.raises(ValidationError):
        CandidateRecord(name="Nameless")


def test_candidate_record_bounds():
    with pytest.raises(ValidationError):
        CandidateRecord(id="C-1", like_count=-1)
    with pytest.raises(ValidationError):
        CandidateRecord(id="C-1", ats_score=101, ats_calculated_at="2025-01-01T00:00:00Z")
    with pytest.raises(ValidationError):
        CandidateRecord(id="C-1", ats_calculated_at="2025-01-01T00:00:00Z")


def test_portal_adapter_reads_camel_case_payload():
    adapter = PortalAdapter()
    parsed = adapter.parse_candidate(
        {
            "id": 42,
            "name": "Kavya Iyer",
            "currentDesignation": "QA Lead",
            "currentLocation": "Chennai",
            "preferredLocations": ["Bangalore"],
            "keySkills": "Selenium, Java",
            "currentSalary": "9 LPA",
            "experience": "6 years",
            "workExperiences": [
                {"startDate": "2019-04", "endDate": None, "isCurrent": True, "companyName": "Acme"},
            ],
            "educationDetails": [{"degree": "B.E", "college": "Anna University", "yearOfPassing": 2016}],
            "phoneVerified": True,
            "profileCompletion": "88",
            "atsScore": 73.5,
            "atsCalculatedAt": "2025-02-01T10:00:00Z",
            "likedByCurrent": True,
            "likeCount": 4,
        }
    )
    record = CandidateRecord.model_validate(parsed)

    assert record.id == "42"
    assert record.designation == "QA Lead"
    assert record.location == "Chennai"
    assert record.skills == ["Selenium", "Java"]
    assert record.work_experiences[0].is_current is True
    assert record.work_experiences[0].company == "Acme"
    assert record.education_details[0].institution == "Anna University"
    assert record.education_details[0].year == "2016"
    assert record.profile_completion == 88
    assert record.ats_score == pytest.approx(73.5)
    assert record.ats_calculated_at is not None
    assert record.liked_by_current is True
    assert record.like_count == 4


def test_portal_adapter_drops_orphaned_score():
    parsed = PortalAdapter().parse_candidate({"id": "C-9", "atsScore": 60, "likeCount": -3})

    assert parsed["ats_score"] is None
    assert parsed["ats_calculated_at"] is None
    assert parsed["like_count"] == 0


def test_portal_adapter_skips_empty_camel_case_values():
    parsed = PortalAdapter().parse_candidate(
        {"id": "C-3", "keySkills": [], "skills": ["Go", "Kubernetes"], "currentLocation": "", "location": "Noida"}
    )

    assert parsed["skills"] == ["Go", "Kubernetes"]
    assert parsed["location"] == "Noida"


def test_portal_adapter_can_handle():
    adapter = PortalAdapter()

    assert adapter.can_handle({}, {"provider": "Portal"})
    assert adapter.can_handle('{"provider": "portal"}', {})
    assert not adapter.can_handle("not json", {})


def test_start_run_response_ignores_bad_concurrency():
    assert StartRunResponse(suggested_concurrency="4").suggested_concurrency == 4
    assert StartRunResponse(suggested_concurrency=0).suggested_concurrency is None
    assert StartRunResponse(suggested_concurrency="many").suggested_concurrency is None


def test_engagement_flags_update_excludes_unset():
    assert EngagementFlags(is_saved=True).as_update() == {"is_saved": True}
