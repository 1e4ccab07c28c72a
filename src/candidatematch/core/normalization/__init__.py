"""Record normalization policies."""

from .experience import ExperienceNormalizer
from .record import NormalizedRecord, RecordNormalizer
from .salary import SalaryConfig, SalaryNormalizer
from .skills import normalize_skills

__all__ = [
    "ExperienceNormalizer",
    "NormalizedRecord",
    "RecordNormalizer",
    "SalaryConfig",
    "SalaryNormalizer",
    "normalize_skills",
]
