"""Pydantic schema definitions for the candidate listing pipeline."""

from __future__ import annotations

from .candidate import (
    CandidateRecord,
    EducationDetail,
    WorkExperience,
    split_skill_tokens,
)
from .filters import FilterSpec, build_filter_spec
from .services import (
    CandidatePage,
    EngagementFlags,
    Pagination,
    RequirementSummary,
    ScoreResponse,
    StartRunResponse,
)

__all__ = [
    "CandidateRecord",
    "EducationDetail",
    "WorkExperience",
    "split_skill_tokens",
    "FilterSpec",
    "build_filter_spec",
    "CandidatePage",
    "EngagementFlags",
    "Pagination",
    "RequirementSummary",
    "ScoreResponse",
    "StartRunResponse",
]
