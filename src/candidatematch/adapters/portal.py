"""Job portal candidate payload adapter."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from ..schemas import CandidateRecord, EducationDetail, WorkExperience


class PortalAdapter:
    """Adapter converting portal listing payloads into CandidateRecord dicts.

    The portal API mixes camelCase and snake_case keys and sometimes nests the
    same value under different names; each field has a fixed lookup order.
    """

    provider = "portal"

    def can_handle(self, blob: bytes | str | dict[str, Any], metadata: dict[str, Any]) -> bool:
        provider = metadata.get("provider")
        if provider and provider.lower() == self.provider:
            return True
        try:
            data = self._load(blob)
        except ValueError:
            return False
        return str(data.get("provider", "")).lower() == self.provider

    def parse_candidate(self, blob: bytes | str | dict[str, Any]) -> dict[str, Any]:
        data = self._load(blob)
        payload = data.get("payload", data)

        experiences = [
            WorkExperience(
                start_date=_as_text(_first(item, "startDate", "start_date", "start")),
                end_date=_as_text(_first(item, "endDate", "end_date", "end")),
                is_current=bool(_first(item, "isCurrent", "is_current", default=False)),
                company=_first(item, "company", "companyName", "company_name"),
                designation=_first(item, "designation", "title", "position"),
            )
            for item in _first(payload, "workExperiences", "work_experiences", default=[]) or []
            if isinstance(item, dict)
        ]

        education_details = [
            EducationDetail(
                degree=_first(item, "degree", "qualification"),
                institution=_first(item, "institution", "college", "school"),
                year=_as_text(_first(item, "year", "yearOfPassing", "year_of_passing")),
            )
            for item in _first(payload, "educationDetails", "education_details", default=[]) or []
            if isinstance(item, dict)
        ]

        ats_score = _first(payload, "atsScore", "ats_score")
        ats_calculated_at = _first(payload, "atsCalculatedAt", "ats_calculated_at")
        if ats_score is None or ats_calculated_at is None:
            ats_score = ats_calculated_at = None
        completion = int(_as_float(_first(payload, "profileCompletion", "profile_completion")) or 0)

        candidate = CandidateRecord(
            id=str(_first(payload, "id", "candidateId", "candidate_id", default="")),
            name=_first(payload, "name", default="") or "",
            designation=_first(payload, "designation", "currentDesignation", default="") or "",
            headline=_first(payload, "headline"),
            summary=_first(payload, "summary", "additionalInfo", "additional_info", default="") or "",
            location=_first(payload, "location", "currentLocation", default="") or "",
            preferred_locations=_first(payload, "preferredLocations", "preferred_locations", default=[]) or [],
            work_experiences=experiences,
            experience_text=_as_text(_first(payload, "experience", "experienceText", "experience_text")) or "",
            experience_years=_as_float(_first(payload, "experienceYears", "experience_years")),
            current_salary=_as_text(_first(payload, "currentSalary", "current_salary")),
            expected_salary=_as_text(_first(payload, "expectedSalary", "expected_salary")),
            skills=_first(payload, "keySkills", "skills", "key_skills", default=[]),
            education=_as_text(_first(payload, "education")) or "",
            education_details=education_details,
            phone_verified=bool(_first(payload, "phoneVerified", "phone_verified", default=False)),
            email_verified=bool(_first(payload, "emailVerified", "email_verified", default=False)),
            profile_completion=min(100, max(0, completion)),
            ats_score=ats_score,
            ats_calculated_at=ats_calculated_at,
            is_viewed=bool(_first(payload, "isViewed", "is_viewed", default=False)),
            is_saved=bool(_first(payload, "isSaved", "is_saved", default=False)),
            liked_by_current=bool(_first(payload, "likedByCurrent", "liked_by_current", default=False)),
            like_count=max(0, int(_as_float(_first(payload, "likeCount", "like_count")) or 0)),
        )

        return candidate.model_dump(mode="python")

    @staticmethod
    def _load(blob: bytes | str | dict[str, Any]) -> dict[str, Any]:
        if isinstance(blob, dict):
            return blob
        if isinstance(blob, bytes):
            blob = blob.decode("utf-8")
        try:
            return json.loads(blob)
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid portal payload") from exc


def _first(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, (str, list, dict)) and not value:
            continue
        return value
    return default


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
