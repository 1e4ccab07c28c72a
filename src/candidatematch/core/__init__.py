"""Core matching components: normalization, filtering, ranking and scoring."""

from __future__ import annotations

from .filters import FilterConfig, FilterEngine, Predicate
from .normalization import NormalizedRecord, RecordNormalizer, SalaryConfig
from .orchestrator import (
    OrchestratorConfig,
    RunContext,
    RunSummary,
    ScoreOrchestrator,
    ScoreTask,
    ScoringService,
    TaskState,
)
from .ranking import (
    LiveRankingStore,
    MergeOutcome,
    RankingSnapshot,
    RunProgress,
    ScorePatch,
)

__all__ = [
    "FilterConfig",
    "FilterEngine",
    "Predicate",
    "NormalizedRecord",
    "RecordNormalizer",
    "SalaryConfig",
    "OrchestratorConfig",
    "RunContext",
    "RunSummary",
    "ScoreOrchestrator",
    "ScoreTask",
    "ScoringService",
    "TaskState",
    "LiveRankingStore",
    "MergeOutcome",
    "RankingSnapshot",
    "RunProgress",
    "ScorePatch",
]
