"""Dependency injection container for the matching pipeline."""

from __future__ import annotations

from dependency_injector import containers, providers

from .adapters import PortalAdapter
from .core import (
    FilterConfig,
    FilterEngine,
    LiveRankingStore,
    OrchestratorConfig,
    RecordNormalizer,
    SalaryConfig,
    ScoreOrchestrator,
)
from .pipeline import AdapterRegistry, CandidateLoader, OutputWriter, RankingSession


class MatchingContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    portal_adapter = providers.Singleton(PortalAdapter)

    adapter_registry = providers.Singleton(
        AdapterRegistry,
        adapters=providers.List(portal_adapter),
    )

    candidate_loader = providers.Factory(CandidateLoader, registry=adapter_registry)
    output_writer = providers.Singleton(OutputWriter)

    normalizer = providers.Singleton(RecordNormalizer)
    filter_engine = providers.Singleton(FilterEngine, normalizer=normalizer)
    ranking_store = providers.Singleton(LiveRankingStore)
    orchestrator = providers.Singleton(ScoreOrchestrator, store=ranking_store)

    session = providers.Factory(
        RankingSession,
        store=ranking_store,
        filter_engine=filter_engine,
        orchestrator=orchestrator,
    )


def create_container(*, settings: dict | None = None) -> MatchingContainer:
    """Instantiate container with optional overrides."""

    container = MatchingContainer()

    if not settings:
        return container

    normalization_settings = settings.get("normalization", {}) if isinstance(settings, dict) else {}

    if "salary" in normalization_settings:
        salary_config = SalaryConfig(**normalization_settings["salary"])
        container.normalizer.override(
            providers.Singleton(RecordNormalizer, salary_config=salary_config)
        )

    if settings.get("filters"):
        filter_config = FilterConfig(**settings["filters"])
        container.filter_engine.override(
            providers.Singleton(FilterEngine, normalizer=container.normalizer, config=filter_config)
        )

    if settings.get("orchestrator"):
        orchestrator_config = OrchestratorConfig(**settings["orchestrator"])
        container.orchestrator.override(
            providers.Singleton(ScoreOrchestrator, store=container.ranking_store, config=orchestrator_config)
        )

    return container
