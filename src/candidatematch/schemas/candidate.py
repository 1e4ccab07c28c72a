from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def split_skill_tokens(value: Any) -> list[str]:
    """Split a skills field given as a list or a comma-delimited string."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    tokens: list[str] = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            tokens.append(text)
    return tokens


class WorkExperience(BaseModel):
    """Single employment history entry."""

    start_date: str | None = None
    end_date: str | None = None
    is_current: bool = False
    company: str | None = None
    designation: str | None = None

    model_config = ConfigDict(extra="allow")


class EducationDetail(BaseModel):
    """Structured education entry."""

    degree: str | None = None
    institution: str | None = None
    year: str | None = None

    model_config = ConfigDict(extra="allow")


class CandidateRecord(BaseModel):
    """Candidate as displayed on the employer candidate-listing screen."""

    id: str
    name: str = ""
    designation: str = ""
    headline: str | None = None
    summary: str = ""
    location: str = ""
    preferred_locations: list[str] = Field(default_factory=list)
    work_experiences: list[WorkExperience] = Field(default_factory=list)
    experience_text: str = ""
    experience_years: float | None = None
    current_salary: str | None = None
    expected_salary: str | None = None
    skills: list[str] = Field(default_factory=list)
    education: str = ""
    education_details: list[EducationDetail] = Field(default_factory=list)
    phone_verified: bool = False
    email_verified: bool = False
    profile_completion: int = Field(default=0, ge=0, le=100)
    ats_score: float | None = Field(default=None, ge=0, le=100)
    ats_calculated_at: datetime | None = None
    is_viewed: bool = False
    is_saved: bool = False
    liked_by_current: bool = False
    like_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="allow")

    @field_validator("skills", mode="before")
    @classmethod
    def _split_skills(cls, value: Any) -> list[str]:
        return split_skill_tokens(value)

    @model_validator(mode="after")
    def _check_ats_pair(self) -> "CandidateRecord":
        if (self.ats_score is None) != (self.ats_calculated_at is None):
            raise ValueError("ats_score and ats_calculated_at must be set together")
        return self
