"""Payload models exchanged with the external portal services."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .candidate import CandidateRecord


class RequirementSummary(BaseModel):
    """Job requirement the candidate listing belongs to."""

    id: str
    title: str = ""
    total_candidates: int = 0
    accessed_candidates: int = 0

    model_config = ConfigDict(extra="allow")


class Pagination(BaseModel):
    page: int = 1
    limit: int = 20
    total: int = 0
    total_pages: int = 0

    model_config = ConfigDict(extra="allow")


class CandidatePage(BaseModel):
    """One page returned by the candidate data service."""

    candidates: list[CandidateRecord] = Field(default_factory=list)
    requirement: RequirementSummary | None = None
    pagination: Pagination = Field(default_factory=Pagination)


class StartRunResponse(BaseModel):
    """Scoring service answer to a run start request."""

    target_candidate_ids: list[str] = Field(default_factory=list)
    total_candidates: int = 0
    suggested_concurrency: int | None = None

    @field_validator("suggested_concurrency", mode="before")
    @classmethod
    def _positive_or_none(cls, value: Any) -> int | None:
        try:
            number = int(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None


class ScoreResponse(BaseModel):
    """Scoring service answer for a single candidate."""

    ats_score: float = Field(ge=0, le=100)
    candidate: dict[str, Any] = Field(default_factory=dict)


class EngagementFlags(BaseModel):
    """Updated engagement state for a candidate; unset fields are left alone."""

    liked_by_current: bool | None = None
    like_count: int | None = Field(default=None, ge=0)
    is_saved: bool | None = None
    is_viewed: bool | None = None

    def as_update(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
