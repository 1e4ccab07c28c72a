"""HTTP clients for the portal's candidate, scoring and engagement services."""

from __future__ import annotations

import json
from typing import Any, Literal, Sequence
from urllib import error, parse, request

import structlog

from .adapters import PortalAdapter
from .errors import NetworkError, ServiceError
from .schemas import (
    CandidatePage,
    CandidateRecord,
    EngagementFlags,
    Pagination,
    RequirementSummary,
    ScoreResponse,
    StartRunResponse,
)


class PortalHTTPClient:
    """Minimal JSON client for the portal API envelope ``{success, data, message}``."""

    def __init__(self, base_url: str, api_token: str | None = None, *, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        if query:
            params = {key: value for key, value in query.items() if value is not None}
            if params:
                url = f"{url}?{parse.urlencode(params)}"

        data = json.dumps(body, ensure_ascii=False).encode("utf-8") if body is not None else None
        headers = {"Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        req = request.Request(url, data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=self._timeout) as resp:
                raw = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            self._logger.warning("portal.http_error", method=method, path=path, status=exc.code)
            raise ServiceError(f"{method} {path} failed with HTTP {exc.code}", status=exc.code) from exc
        except (error.URLError, TimeoutError, OSError) as exc:
            self._logger.warning("portal.request_failed", method=method, path=path, error=str(exc))
            raise NetworkError(f"{method} {path}: {exc}") from exc

        try:
            envelope = json.loads(raw) if raw else {}
        except json.JSONDecodeError as exc:
            raise ServiceError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(envelope, dict):
            raise ServiceError(f"{method} {path} returned an unexpected payload")
        if envelope.get("success") is False:
            raise ServiceError(envelope.get("message") or f"{method} {path} was rejected")
        return envelope.get("data", {})


class HTTPCandidateDataClient(PortalHTTPClient):
    """Candidate data service: paginated requirement candidate listing."""

    def __init__(self, *args: Any, adapter: PortalAdapter | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._adapter = adapter or PortalAdapter()

    def list_candidates(
        self,
        requirement_id: str,
        *,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        sort_by: str | None = None,
    ) -> CandidatePage:
        data = self._request(
            "GET",
            f"/requirements/{parse.quote(requirement_id)}/candidates",
            query={"page": page, "limit": page_size, "search": search or None, "sortBy": sort_by},
        ) or {}

        candidates = [
            CandidateRecord.model_validate(self._adapter.parse_candidate(item))
            for item in data.get("candidates", [])
        ]
        requirement = data.get("requirement")
        pagination = data.get("pagination") or {}
        return CandidatePage(
            candidates=candidates,
            requirement=RequirementSummary(
                id=str(requirement.get("id", requirement_id)),
                title=requirement.get("title", ""),
                total_candidates=requirement.get("totalCandidates", 0),
                accessed_candidates=requirement.get("accessedCandidates", 0),
            )
            if isinstance(requirement, dict)
            else None,
            pagination=Pagination(
                page=pagination.get("page", page),
                limit=pagination.get("limit", page_size),
                total=pagination.get("total", len(candidates)),
                total_pages=pagination.get("totalPages", 0),
            ),
        )


class HTTPScoringClient(PortalHTTPClient):
    """Scoring service: run registration and per-candidate ATS scoring."""

    def start_run(
        self,
        requirement_id: str,
        candidate_ids: Sequence[str] | Literal["all"],
        *,
        page: int | None = None,
        limit: int | None = None,
    ) -> StartRunResponse:
        body: dict[str, Any] = {"page": page, "limit": limit}
        if candidate_ids == "all":
            body["processAll"] = True
        else:
            body["candidateIds"] = list(candidate_ids)
        data = self._request(
            "POST",
            f"/requirements/{parse.quote(requirement_id)}/calculate-ats",
            body={key: value for key, value in body.items() if value is not None},
        ) or {}
        if not data.get("streaming"):
            raise ServiceError(f"Scoring run for requirement {requirement_id} did not start in streaming mode")

        pooling = data.get("pooling") or {}
        return StartRunResponse(
            target_candidate_ids=[str(cid) for cid in data.get("candidateIds", [])],
            total_candidates=data.get("totalCandidates", 0),
            suggested_concurrency=pooling.get("maxConcurrent"),
        )

    def score_one(self, requirement_id: str, candidate_id: str) -> ScoreResponse:
        data = self._request(
            "POST",
            f"/requirements/{parse.quote(requirement_id)}"
            f"/calculate-candidate-ats/{parse.quote(candidate_id)}",
        ) or {}
        if data.get("atsScore") is None:
            raise ServiceError(f"No ATS score returned for candidate {candidate_id}")
        return ScoreResponse(ats_score=data["atsScore"], candidate=data.get("candidate") or {})


class HTTPEngagementClient(PortalHTTPClient):
    """Engagement service: likes, per-requirement saves and profile views."""

    def like(self, candidate_id: str) -> EngagementFlags:
        data = self._request("POST", f"/candidate-likes/{parse.quote(candidate_id)}") or {}
        return EngagementFlags(liked_by_current=bool(data.get("liked", True)))

    def unlike(self, candidate_id: str) -> EngagementFlags:
        data = self._request("DELETE", f"/candidate-likes/{parse.quote(candidate_id)}") or {}
        return EngagementFlags(liked_by_current=bool(data.get("liked", False)))

    def save(self, candidate_id: str, requirement_id: str) -> EngagementFlags:
        data = self._request(
            "POST",
            f"/candidate-likes/{parse.quote(candidate_id)}",
            body={"requirementId": requirement_id},
        ) or {}
        return EngagementFlags(is_saved=bool(data.get("saved", True)))

    def unsave(self, candidate_id: str, requirement_id: str) -> EngagementFlags:
        data = self._request(
            "DELETE",
            f"/candidate-likes/{parse.quote(candidate_id)}",
            query={"requirementId": requirement_id},
        ) or {}
        return EngagementFlags(is_saved=not data.get("removed", True))

    def mark_viewed(self, requirement_id: str, candidate_id: str) -> EngagementFlags:
        self._request(
            "GET",
            f"/requirements/{parse.quote(requirement_id)}/candidates/{parse.quote(candidate_id)}",
        )
        return EngagementFlags(is_viewed=True)


__all__ = [
    "PortalHTTPClient",
    "HTTPCandidateDataClient",
    "HTTPScoringClient",
    "HTTPEngagementClient",
]
