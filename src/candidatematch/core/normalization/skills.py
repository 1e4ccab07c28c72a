"""Skill token normalization."""

from __future__ import annotations

from typing import Any

from ...schemas import CandidateRecord, split_skill_tokens


def normalize_skills(source: CandidateRecord | Any) -> frozenset[str]:
    """Return lowercased skill tokens for matching.

    Accepts a record or a raw skills value (list or comma-delimited string).
    Display casing stays on the record itself.
    """
    value = source.skills if isinstance(source, CandidateRecord) else source
    return frozenset(token.lower() for token in split_skill_tokens(value))
