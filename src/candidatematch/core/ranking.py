"""Live ranking store: the single source of truth for the displayed candidates."""

from __future__ import annotations

import bisect
import itertools
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

import structlog

from ..schemas import CandidateRecord, EngagementFlags


class MergeOutcome(str, Enum):
    """Result of proposing a patch to the store."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    STALE = "stale"
    UNKNOWN_CANDIDATE = "unknown_candidate"


@dataclass(frozen=True, slots=True)
class ScorePatch:
    """Score result proposed by a scoring run, tagged with the run's token."""

    candidate_id: str
    context_token: int
    ats_score: float | None = None
    ats_calculated_at: datetime | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.ats_score is not None

    @classmethod
    def success(
        cls,
        candidate_id: str,
        context_token: int,
        ats_score: float,
        ats_calculated_at: datetime,
    ) -> "ScorePatch":
        return cls(candidate_id, context_token, ats_score=ats_score, ats_calculated_at=ats_calculated_at)

    @classmethod
    def failure(cls, candidate_id: str, context_token: int, error: str) -> "ScorePatch":
        return cls(candidate_id, context_token, error=error)


@dataclass(frozen=True, slots=True)
class RunProgress:
    """Progress of the active scoring run."""

    token: int
    total: int
    succeeded: int = 0
    failed: int = 0
    batch_index: int = 0
    batch_count: int = 0
    done: bool = False

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed


@dataclass(frozen=True, slots=True)
class RankingSnapshot:
    """What subscribers receive after every state change."""

    candidates: tuple[CandidateRecord, ...]
    progress: RunProgress | None
    generation: int


Subscriber = Callable[[RankingSnapshot], None]


class LiveRankingStore:
    """Holds the displayed candidate set in ranked order.

    Order is ``ats_score`` descending with unscored candidates last; ties keep
    the index a candidate had in the last :meth:`replace` call. Score patches
    are accepted only for the active context token, so results from a
    superseded run are inert. All mutation happens under one lock;
    subscribers are notified after it is released.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, CandidateRecord] = {}
        self._base_index: dict[str, int] = {}
        self._view: list[str] = []
        self._generation = 0
        self._tokens = itertools.count(1)
        self._active_token: int | None = None
        self._run_total = 0
        self._run_outcomes: dict[str, bool] = {}
        self._batch_index = 0
        self._batch_count = 0
        self._run_done = False
        self._subscribers: list[Subscriber] = []
        self._logger = structlog.get_logger(__name__)

    def __len__(self) -> int:
        return len(self._view)

    @property
    def active_token(self) -> int | None:
        return self._active_token

    @property
    def generation(self) -> int:
        return self._generation

    def is_active(self, token: int) -> bool:
        return token == self._active_token

    def replace(self, candidates: Iterable[CandidateRecord]) -> None:
        """Swap in a freshly fetched or filtered candidate set."""
        records: dict[str, CandidateRecord] = {}
        duplicates: list[str] = []
        for record in candidates:
            if record.id in records:
                duplicates.append(record.id)
                continue
            records[record.id] = record

        with self._lock:
            self._records = records
            self._base_index = {candidate_id: idx for idx, candidate_id in enumerate(records)}
            self._view = sorted(records, key=self._sort_key)
            self._generation += 1
            snapshot = self._snapshot()

        if duplicates:
            self._logger.warning("ranking.duplicate_candidates", candidate_ids=duplicates)
        self._notify(snapshot)

    def current_view(self) -> list[CandidateRecord]:
        with self._lock:
            return [self._records[candidate_id] for candidate_id in self._view]

    def get(self, candidate_id: str) -> CandidateRecord | None:
        with self._lock:
            return self._records.get(candidate_id)

    def progress(self) -> RunProgress | None:
        with self._lock:
            return self._progress()

    def open_context(self, total: int) -> int:
        """Allocate a fresh token; any previous run's patches become stale."""
        with self._lock:
            token = next(self._tokens)
            superseded = self._active_token
            self._active_token = token
            self._run_total = total
            self._run_outcomes = {}
            self._batch_index = 0
            self._batch_count = 0
            self._run_done = False
            snapshot = self._snapshot()

        if superseded is not None:
            self._logger.info("ranking.context_superseded", previous=superseded, token=token)
        self._notify(snapshot)
        return token

    def mark_batch(self, token: int, batch_index: int, batch_count: int) -> bool:
        with self._lock:
            if token != self._active_token:
                return False
            self._batch_index = batch_index
            self._batch_count = batch_count
            snapshot = self._snapshot()
        self._notify(snapshot)
        return True

    def close_context(self, token: int) -> bool:
        with self._lock:
            if token != self._active_token:
                return False
            self._run_done = True
            snapshot = self._snapshot()
        self._notify(snapshot)
        return True

    def merge_patch(self, patch: ScorePatch) -> MergeOutcome:
        """Apply a score patch if it belongs to the active run.

        Re-applying an identical patch leaves the state untouched.
        """
        with self._lock:
            if patch.context_token != self._active_token:
                outcome = MergeOutcome.STALE
                snapshot = None
            else:
                outcome, changed = self._apply_patch(patch)
                snapshot = self._snapshot() if changed else None

        if outcome is MergeOutcome.STALE:
            self._logger.debug(
                "ranking.stale_patch",
                candidate_id=patch.candidate_id,
                token=patch.context_token,
                active_token=self._active_token,
            )
        if snapshot is not None:
            self._notify(snapshot)
        return outcome

    def apply_engagement(
        self,
        candidate_id: str,
        flags: EngagementFlags | Mapping[str, Any],
    ) -> bool:
        """Merge like/save/viewed flags returned by the engagement service."""
        if not isinstance(flags, EngagementFlags):
            flags = EngagementFlags.model_validate(flags)
        update = flags.as_update()
        with self._lock:
            record = self._records.get(candidate_id)
            if record is None or not update:
                return False
            if all(getattr(record, key) == value for key, value in update.items()):
                return False
            self._records[candidate_id] = record.model_copy(update=update)
            snapshot = self._snapshot()
        self._notify(snapshot)
        return True

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _apply_patch(self, patch: ScorePatch) -> tuple[MergeOutcome, bool]:
        previous = self._run_outcomes.get(patch.candidate_id)
        self._run_outcomes[patch.candidate_id] = patch.succeeded
        tally_changed = previous != patch.succeeded

        record = self._records.get(patch.candidate_id)
        if not patch.succeeded:
            return (MergeOutcome.APPLIED if tally_changed else MergeOutcome.UNCHANGED), tally_changed
        if record is None:
            return MergeOutcome.UNKNOWN_CANDIDATE, tally_changed
        if (
            record.ats_score == patch.ats_score
            and record.ats_calculated_at == patch.ats_calculated_at
        ):
            return (MergeOutcome.APPLIED if tally_changed else MergeOutcome.UNCHANGED), tally_changed

        self._records[patch.candidate_id] = record.model_copy(
            update={
                "ats_score": patch.ats_score,
                "ats_calculated_at": patch.ats_calculated_at,
            }
        )
        self._view.remove(patch.candidate_id)
        bisect.insort(self._view, patch.candidate_id, key=self._sort_key)
        return MergeOutcome.APPLIED, True

    def _sort_key(self, candidate_id: str) -> tuple[bool, float, int]:
        score = self._records[candidate_id].ats_score
        return (score is None, -(score or 0.0), self._base_index[candidate_id])

    def _progress(self) -> RunProgress | None:
        if self._active_token is None:
            return None
        succeeded = sum(1 for ok in self._run_outcomes.values() if ok)
        return RunProgress(
            token=self._active_token,
            total=self._run_total,
            succeeded=succeeded,
            failed=len(self._run_outcomes) - succeeded,
            batch_index=self._batch_index,
            batch_count=self._batch_count,
            done=self._run_done,
        )

    def _snapshot(self) -> RankingSnapshot:
        return RankingSnapshot(
            candidates=tuple(self._records[candidate_id] for candidate_id in self._view),
            progress=self._progress(),
            generation=self._generation,
        )

    def _notify(self, snapshot: RankingSnapshot) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:  # noqa: BLE001
                self._logger.exception("ranking.subscriber_failed", callback=repr(callback))


__all__ = [
    "LiveRankingStore",
    "MergeOutcome",
    "RankingSnapshot",
    "RunProgress",
    "ScorePatch",
]
