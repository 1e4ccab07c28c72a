"""Candidate listing session assembly and execution."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Literal, Protocol, runtime_checkable

import pendulum
import structlog

from . import __version__
from .adapters import CandidateAdapter, PortalAdapter
from .core import FilterEngine, LiveRankingStore, RunSummary, ScoreOrchestrator, ScoringService
from .errors import CandidateMatchError
from .schemas import CandidatePage, CandidateRecord, EngagementFlags, FilterSpec

ScoreScope = Literal["current", "all"]


@runtime_checkable
class CandidateDataService(Protocol):
    """External candidate listing service."""

    def list_candidates(
        self,
        requirement_id: str,
        *,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        sort_by: str | None = None,
    ) -> CandidatePage:
        """Return one page of candidates for the requirement."""


@runtime_checkable
class EngagementService(Protocol):
    """External like/save/view mutations."""

    def like(self, candidate_id: str) -> EngagementFlags: ...

    def unlike(self, candidate_id: str) -> EngagementFlags: ...

    def save(self, candidate_id: str, requirement_id: str) -> EngagementFlags: ...

    def unsave(self, candidate_id: str, requirement_id: str) -> EngagementFlags: ...

    def mark_viewed(self, requirement_id: str, candidate_id: str) -> EngagementFlags: ...


class AdapterRegistry:
    """Registry mapping providers to candidate adapters."""

    def __init__(self, adapters: Iterable[CandidateAdapter]):
        self._adapters = {adapter.provider: adapter for adapter in adapters}

    def get(self, provider: str) -> CandidateAdapter:
        try:
            return self._adapters[provider]
        except KeyError as exc:
            raise KeyError(f"Unsupported provider: {provider!r}") from exc

    def providers(self) -> List[str]:
        return list(self._adapters.keys())


class CandidateLoadError(CandidateMatchError, ValueError):
    """Raised when candidate loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[CandidateRecord]):
        super().__init__("Candidate loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Candidate loading failed: {self.errors}"


class CandidateLoader:
    """Load candidate records from JSON lines through adapters.

    Lines without a ``provider`` key are read with the portal adapter.
    """

    def __init__(self, registry: AdapterRegistry, *, default_provider: str = PortalAdapter.provider):
        self._registry = registry
        self._default_provider = default_provider

    def load(self, path: Path) -> list[CandidateRecord]:
        candidates: list[CandidateRecord] = []
        errors: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw:
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                if not isinstance(record, dict):
                    errors.append(f"line {idx}: expected a JSON object")
                    continue
                provider = record.get("provider") or self._default_provider
                try:
                    adapter = self._registry.get(provider)
                except KeyError:
                    errors.append(f"line {idx}: unsupported provider '{provider}'")
                    continue
                try:
                    candidate = CandidateRecord.model_validate(adapter.parse_candidate(record))
                except Exception as exc:  # noqa: BLE001
                    errors.append(f"line {idx}: {exc}")
                    continue
                if not candidate.id:
                    errors.append(f"line {idx}: missing candidate id")
                    continue
                candidates.append(candidate)
        if errors:
            raise CandidateLoadError(errors, candidates)
        return candidates


class OutputWriter:
    """Persist ranked listings."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False, default=_json_default))
            handle.write("\n")


class RankingSession:
    """One employer viewing session over a requirement's candidate listing.

    The session keeps the last loaded candidate set, re-filters it when the
    filters change, and streams ATS scores into the shared ranking store.
    """

    def __init__(
        self,
        *,
        store: LiveRankingStore,
        filter_engine: FilterEngine,
        orchestrator: ScoreOrchestrator,
        requirement_id: str | None = None,
        data_service: CandidateDataService | None = None,
        scoring_service: ScoringService | None = None,
        engagement_service: EngagementService | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._store = store
        self._filter_engine = filter_engine
        self._orchestrator = orchestrator
        self._requirement_id = requirement_id
        self._data_service = data_service
        self._scoring_service = scoring_service
        self._engagement_service = engagement_service
        self._audit_logger = audit_logger
        self._loaded: list[CandidateRecord] = []
        self._filters = FilterSpec()
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> LiveRankingStore:
        return self._store

    @property
    def filters(self) -> FilterSpec:
        return self._filters

    def load(self, candidates: Iterable[CandidateRecord]) -> list[CandidateRecord]:
        self._loaded = list(candidates)
        return self._apply_filters()

    def set_filters(self, spec: FilterSpec) -> list[CandidateRecord]:
        self._filters = spec
        return self._apply_filters()

    def refresh(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        sort_by: str | None = None,
    ) -> CandidatePage:
        """Fetch a page from the candidate data service and display it."""
        service = self._require(self._data_service, "candidate data service")
        result = service.list_candidates(
            self._require(self._requirement_id, "requirement id"),
            page=page,
            page_size=page_size,
            search=search,
            sort_by=sort_by,
        )
        self.load(result.candidates)
        return result

    async def score(
        self,
        scope: ScoreScope = "current",
        *,
        page: int | None = None,
        limit: int | None = None,
        concurrency_limit: int | None = None,
    ) -> RunSummary:
        """Stream ATS scores for the displayed candidates or the whole requirement."""
        requirement_id = self._require(self._requirement_id, "requirement id")
        service = self._require(self._scoring_service, "scoring service")
        targets: Any = "all" if scope == "all" else [record.id for record in self._store.current_view()]

        summary = await self._orchestrator.start(
            service,
            requirement_id,
            targets,
            page=page,
            limit=limit,
            concurrency_limit=concurrency_limit,
        )

        if scope == "all" and self._data_service is not None:
            try:
                self.refresh(page=page or 1, page_size=limit or 20, sort_by="ats")
            except CandidateMatchError as exc:
                self._logger.warning(
                    "ats.run.refresh_failed",
                    requirement_id=requirement_id,
                    token=summary.token,
                    error=str(exc),
                )

        self._audit(
            {
                "event": "ats_run",
                "requirement_id": requirement_id,
                "scope": scope,
                **summary.as_dict(),
            }
        )
        return summary

    def toggle_like(self, candidate_id: str) -> CandidateRecord | None:
        service = self._require(self._engagement_service, "engagement service")
        record = self._store.get(candidate_id)
        if record is None:
            return None
        if record.liked_by_current:
            flags = service.unlike(candidate_id)
        else:
            flags = service.like(candidate_id)
        liked = flags.liked_by_current
        if flags.like_count is None and liked is not None and liked != record.liked_by_current:
            delta = 1 if liked else -1
            flags = flags.model_copy(update={"like_count": max(0, record.like_count + delta)})
        self._store.apply_engagement(candidate_id, flags)
        return self._store.get(candidate_id)

    def toggle_save(self, candidate_id: str) -> CandidateRecord | None:
        service = self._require(self._engagement_service, "engagement service")
        requirement_id = self._require(self._requirement_id, "requirement id")
        record = self._store.get(candidate_id)
        if record is None:
            return None
        if record.is_saved:
            flags = service.unsave(candidate_id, requirement_id)
        else:
            flags = service.save(candidate_id, requirement_id)
        self._store.apply_engagement(candidate_id, flags)
        return self._store.get(candidate_id)

    def mark_viewed(self, candidate_id: str) -> CandidateRecord | None:
        service = self._require(self._engagement_service, "engagement service")
        flags = service.mark_viewed(self._require(self._requirement_id, "requirement id"), candidate_id)
        self._store.apply_engagement(candidate_id, flags)
        return self._store.get(candidate_id)

    def export(self) -> dict[str, Any]:
        progress = self._store.progress()
        return {
            "metadata": {
                "requirement_id": self._requirement_id,
                "loaded": len(self._loaded),
                "displayed": len(self._store),
                "filters": self._filters.model_dump(mode="json"),
                "progress": _progress_dict(progress),
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
            },
            "candidates": [record.model_dump(mode="json") for record in self._store.current_view()],
        }

    def _apply_filters(self) -> list[CandidateRecord]:
        filtered = self._filter_engine.apply(self._loaded, self._filters)
        self._store.replace(filtered)
        self._audit(
            {
                "event": "filters_applied",
                "requirement_id": self._requirement_id,
                "loaded": len(self._loaded),
                "displayed": len(filtered),
            }
        )
        return filtered

    def _audit(self, record: dict[str, Any]) -> None:
        if self._audit_logger:
            self._audit_logger.append({"timestamp": pendulum.now().to_iso8601_string(), **record})

    @staticmethod
    def _require(value: Any, name: str) -> Any:
        if value is None:
            raise CandidateMatchError(f"No {name} configured for this session")
        return value


def default_registry() -> AdapterRegistry:
    """Return the default adapter registry."""
    return AdapterRegistry(adapters=[PortalAdapter()])


def _progress_dict(progress: Any) -> dict[str, Any] | None:
    if progress is None:
        return None
    return {
        "token": progress.token,
        "total": progress.total,
        "succeeded": progress.succeeded,
        "failed": progress.failed,
        "batch_index": progress.batch_index,
        "batch_count": progress.batch_count,
        "done": progress.done,
    }


def _json_default(value):  # type: ignore[override]
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
