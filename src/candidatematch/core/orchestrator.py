"""Bounded-concurrency streaming ATS score orchestration."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Protocol, Sequence, runtime_checkable

import pendulum
import structlog

from ..errors import PartialFailure, RunStartError
from ..schemas import ScoreResponse, StartRunResponse
from .ranking import LiveRankingStore, MergeOutcome, ScorePatch

ScoreCall = Callable[[str], Awaitable[float]]


@runtime_checkable
class ScoringService(Protocol):
    """External scoring service contract (blocking calls)."""

    def start_run(
        self,
        requirement_id: str,
        candidate_ids: Sequence[str] | Literal["all"],
        *,
        page: int | None = None,
        limit: int | None = None,
    ) -> StartRunResponse:
        """Register a run and return the ids to score."""

    def score_one(self, requirement_id: str, candidate_id: str) -> ScoreResponse:
        """Score a single candidate against the requirement."""


@dataclass
class OrchestratorConfig:
    """Scheduling knobs for scoring runs."""

    concurrency_limit: int | None = None
    default_concurrency: int = 5
    pacing_delay: float = 0.5
    call_timeout: float | None = 60.0


class TaskState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class ScoreTask:
    """Lifecycle of one candidate's scoring call within a run."""

    candidate_id: str
    context_token: int
    state: TaskState = TaskState.PENDING
    score: float | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class RunContext:
    token: int
    concurrency_limit: int
    pacing_delay: float


@dataclass(slots=True)
class RunSummary:
    """Final tally of a scoring run."""

    token: int
    total: int
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    discarded: int = 0
    superseded: bool = False
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def partial_failure(self) -> PartialFailure | None:
        if not self.failed:
            return None
        return PartialFailure(failed=self.failed, total=self.total, errors=dict(self.failures))

    def as_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "discarded": self.discarded,
            "superseded": self.superseded,
            "failures": dict(self.failures),
        }


def batched(items: Sequence[str], size: int) -> list[list[str]]:
    """Split ``items`` into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [list(items[idx : idx + size]) for idx in range(0, len(items), size)]


class ScoreOrchestrator:
    """Score a target set in sequential batches and stream results to the store.

    Each batch runs concurrently and acts as a barrier. A call that outlives
    its timeout keeps its slot until it returns, so no more than the
    concurrency limit of calls are ever in flight. Results are proposed to the
    store as soon as each call finishes; a run that has been superseded by a
    newer one keeps its in-flight calls but dispatches no further batches, and
    results the store rejects as stale are counted as discarded.
    """

    def __init__(
        self,
        *,
        store: LiveRankingStore,
        config: OrchestratorConfig | None = None,
        now_provider: Any | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._store = store
        self._config = config or OrchestratorConfig()
        self._now_provider = now_provider or pendulum.now
        self._sleep = sleep or asyncio.sleep
        self._logger = structlog.get_logger(__name__)

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    async def start(
        self,
        service: ScoringService,
        requirement_id: str,
        candidate_ids: Sequence[str] | Literal["all"],
        *,
        page: int | None = None,
        limit: int | None = None,
        concurrency_limit: int | None = None,
        pacing_delay: float | None = None,
    ) -> RunSummary:
        """Ask the scoring service for a run, then score every target id."""
        try:
            started = await asyncio.to_thread(
                service.start_run,
                requirement_id,
                candidate_ids,
                page=page,
                limit=limit,
            )
        except Exception as exc:
            self._logger.error("ats.run.start_failed", requirement_id=requirement_id, error=str(exc))
            raise RunStartError(requirement_id, exc) from exc

        limit_value = (
            concurrency_limit
            or self._config.concurrency_limit
            or started.suggested_concurrency
            or self._config.default_concurrency
        )
        self._logger.info(
            "ats.run.accepted",
            requirement_id=requirement_id,
            targets=len(started.target_candidate_ids),
            total_candidates=started.total_candidates,
            concurrency=limit_value,
        )

        async def score(candidate_id: str) -> float:
            response = await asyncio.to_thread(service.score_one, requirement_id, candidate_id)
            return response.ats_score

        return await self.run(
            started.target_candidate_ids,
            score,
            concurrency_limit=limit_value,
            pacing_delay=pacing_delay,
        )

    async def run(
        self,
        target_ids: Sequence[str],
        score: ScoreCall,
        *,
        concurrency_limit: int | None = None,
        pacing_delay: float | None = None,
    ) -> RunSummary:
        limit = concurrency_limit or self._config.concurrency_limit or self._config.default_concurrency
        if limit < 1:
            raise ValueError("concurrency_limit must be positive")
        delay = self._config.pacing_delay if pacing_delay is None else pacing_delay

        ids = list(target_ids)
        token = self._store.open_context(len(ids))
        context = RunContext(token=token, concurrency_limit=limit, pacing_delay=delay)
        summary = RunSummary(token=token, total=len(ids))
        batches = batched(ids, limit)
        # Held until the underlying call returns, even past a timeout.
        slots = asyncio.Semaphore(limit)
        log = self._logger.bind(token=token)
        log.info("ats.run.started", total=len(ids), concurrency=limit, batches=len(batches))

        for index, batch in enumerate(batches):
            if index:
                await self._sleep(context.pacing_delay)
            if not self._store.is_active(context.token):
                summary.superseded = True
                summary.skipped = sum(len(rest) for rest in batches[index:])
                log.info("ats.run.superseded", skipped=summary.skipped, batch=index + 1)
                break

            self._store.mark_batch(context.token, index + 1, len(batches))
            log.info("ats.batch.started", batch=index + 1, batches=len(batches), size=len(batch))
            tasks = [ScoreTask(candidate_id=candidate_id, context_token=context.token) for candidate_id in batch]
            outcomes = await asyncio.gather(*(self._execute(task, score, slots) for task in tasks))

            for task, outcome in zip(tasks, outcomes):
                if outcome is MergeOutcome.STALE:
                    summary.discarded += 1
                elif task.state is TaskState.SUCCEEDED:
                    summary.succeeded += 1
                else:
                    summary.failed += 1
                    summary.failures[task.candidate_id] = task.error or "unknown error"
            log.info(
                "ats.batch.completed",
                batch=index + 1,
                succeeded=summary.succeeded,
                failed=summary.failed,
            )

        if not self._store.is_active(context.token):
            summary.superseded = True
        self._store.close_context(context.token)
        log.info(
            "ats.run.completed",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            discarded=summary.discarded,
            superseded=summary.superseded,
        )
        return summary

    async def _execute(self, task: ScoreTask, score: ScoreCall, slots: asyncio.Semaphore) -> MergeOutcome:
        """Run one scoring call and propose its patch.

        A timeout fails the task but does not cancel the call itself (a
        blocking client keeps its worker thread), so the call keeps its
        concurrency slot until it really returns.
        """
        await slots.acquire()
        call = asyncio.ensure_future(score(task.candidate_id))
        call.add_done_callback(lambda done: _release_slot(slots, done))
        task.state = TaskState.IN_FLIGHT
        try:
            if self._config.call_timeout:
                value = await asyncio.wait_for(asyncio.shield(call), self._config.call_timeout)
            else:
                value = await call
            value = float(value)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"score {value} outside 0-100")
        except asyncio.TimeoutError:
            task.state = TaskState.FAILED
            task.error = f"timed out after {self._config.call_timeout}s"
        except Exception as exc:  # noqa: BLE001
            task.state = TaskState.FAILED
            task.error = str(exc) or type(exc).__name__
        else:
            task.state = TaskState.SUCCEEDED
            task.score = value

        if task.state is TaskState.SUCCEEDED:
            patch = ScorePatch.success(
                task.candidate_id,
                task.context_token,
                ats_score=task.score,
                ats_calculated_at=self._now_provider(),
            )
        else:
            self._logger.warning(
                "ats.task.failed",
                token=task.context_token,
                candidate_id=task.candidate_id,
                error=task.error,
            )
            patch = ScorePatch.failure(task.candidate_id, task.context_token, task.error or "")
        return self._store.merge_patch(patch)


def _release_slot(slots: asyncio.Semaphore, call: asyncio.Future) -> None:
    slots.release()
    if not call.cancelled():
        # Marks a late failure as retrieved; the task already recorded it.
        call.exception()


__all__ = [
    "OrchestratorConfig",
    "RunContext",
    "RunSummary",
    "ScoreOrchestrator",
    "ScoreTask",
    "ScoringService",
    "TaskState",
    "batched",
]
