from __future__ import annotations

import json
from typing import Any
from urllib import error

import pytest

from candidatematch import clients
from candidatematch.clients import (
    HTTPCandidateDataClient,
    HTTPEngagementClient,
    HTTPScoringClient,
)
from candidatematch.errors import NetworkError, ServiceError

BASE_URL = "https://portal.example.com/api/"


class FakeResponse:
    def __init__(self, payload: Any):
        self._raw = payload if isinstance(payload, str) else json.dumps(payload)

    def read(self) -> bytes:
        return self._raw.encode("utf-8")

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None


class FakePortal:
    """Records outgoing requests and replays queued responses."""

    def __init__(self, monkeypatch: pytest.MonkeyPatch):
        self.requests: list[Any] = []
        self.responses: list[Any] = []
        monkeypatch.setattr(clients.request, "urlopen", self)

    def reply(self, payload: Any) -> None:
        self.responses.append(payload)

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        payload = self.responses.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)

    def body(self, index: int = -1) -> Any:
        data = self.requests[index].data
        return json.loads(data.decode("utf-8")) if data else None


@pytest.fixture
def portal(monkeypatch: pytest.MonkeyPatch) -> FakePortal:
    return FakePortal(monkeypatch)


def test_list_candidates_parses_envelope(portal: FakePortal):
    portal.reply(
        {
            "success": True,
            "data": {
                "candidates": [
                    {"id": "C-1", "name": "Nikhil", "atsScore": 80, "atsCalculatedAt": "2025-01-01T00:00:00Z"},
                    {"id": "C-2", "name": "Sara", "keySkills": ["Go"]},
                ],
                "requirement": {"id": "R-1", "title": "Backend Engineer", "totalCandidates": 2},
                "pagination": {"page": 2, "limit": 2, "total": 12, "totalPages": 6},
            },
        }
    )
    client = HTTPCandidateDataClient(BASE_URL, "secret")

    page = client.list_candidates("R-1", page=2, page_size=2, sort_by="ats")

    req = portal.requests[0]
    assert req.get_method() == "GET"
    assert req.full_url == f"{BASE_URL}requirements/R-1/candidates?page=2&limit=2&sortBy=ats"
    assert req.get_header("Authorization") == "Bearer secret"
    assert [record.id for record in page.candidates] == ["C-1", "C-2"]
    assert page.candidates[0].ats_score == 80
    assert page.candidates[1].skills == ["Go"]
    assert page.requirement.title == "Backend Engineer"
    assert page.pagination.total_pages == 6


def test_start_run_sends_ids_and_reads_pooling(portal: FakePortal):
    portal.reply(
        {
            "success": True,
            "data": {
                "streaming": True,
                "candidateIds": [1, 2],
                "totalCandidates": 2,
                "pooling": {"maxConcurrent": 3},
            },
        }
    )
    client = HTTPScoringClient(BASE_URL)

    started = client.start_run("R-1", ["1", "2"], page=1, limit=20)

    assert portal.requests[0].get_method() == "POST"
    assert portal.requests[0].full_url.endswith("/requirements/R-1/calculate-ats")
    assert portal.body() == {"candidateIds": ["1", "2"], "page": 1, "limit": 20}
    assert started.target_candidate_ids == ["1", "2"]
    assert started.suggested_concurrency == 3


def test_start_run_process_all(portal: FakePortal):
    portal.reply({"success": True, "data": {"streaming": True, "candidateIds": [], "totalCandidates": 0}})

    started = HTTPScoringClient(BASE_URL).start_run("R-1", "all")

    assert portal.body() == {"processAll": True}
    assert started.suggested_concurrency is None


def test_start_run_without_streaming_is_service_error(portal: FakePortal):
    portal.reply({"success": True, "data": {"streaming": False, "candidateIds": ["1"], "totalCandidates": 1}})

    with pytest.raises(ServiceError, match="streaming"):
        HTTPScoringClient(BASE_URL).start_run("R-1", ["1"])


def test_score_one_returns_score(portal: FakePortal):
    portal.reply({"success": True, "data": {"atsScore": 64.5, "candidate": {"id": "C-1"}}})

    response = HTTPScoringClient(BASE_URL).score_one("R-1", "C-1")

    assert portal.requests[0].full_url.endswith("/requirements/R-1/calculate-candidate-ats/C-1")
    assert response.ats_score == pytest.approx(64.5)


def test_score_one_without_score_is_service_error(portal: FakePortal):
    portal.reply({"success": True, "data": {"candidate": {}}})

    with pytest.raises(ServiceError):
        HTTPScoringClient(BASE_URL).score_one("R-1", "C-1")


def test_rejected_envelope_raises_service_error(portal: FakePortal):
    portal.reply({"success": False, "message": "Requirement not found"})

    with pytest.raises(ServiceError, match="Requirement not found"):
        HTTPScoringClient(BASE_URL).start_run("R-404", "all")


def test_http_error_keeps_status(portal: FakePortal):
    portal.reply(error.HTTPError(f"{BASE_URL}x", 503, "Service Unavailable", None, None))

    with pytest.raises(ServiceError) as exc:
        HTTPCandidateDataClient(BASE_URL).list_candidates("R-1")
    assert exc.value.status == 503


def test_transport_failure_is_network_error(portal: FakePortal):
    portal.reply(error.URLError("connection refused"))

    with pytest.raises(NetworkError) as exc:
        HTTPScoringClient(BASE_URL).score_one("R-1", "C-1")
    assert exc.value.retryable is True


def test_invalid_json_is_service_error(portal: FakePortal):
    portal.reply("<html>oops</html>")

    with pytest.raises(ServiceError):
        HTTPCandidateDataClient(BASE_URL).list_candidates("R-1")


def test_engagement_mutations(portal: FakePortal):
    client = HTTPEngagementClient(BASE_URL)
    portal.reply({"success": True, "data": {"liked": True}})
    portal.reply({"success": True, "data": {"liked": False}})
    portal.reply({"success": True, "data": {"saved": True}})
    portal.reply({"success": True, "data": {"removed": True}})
    portal.reply({"success": True, "data": {"id": "C-1"}})

    assert client.like("C-1").liked_by_current is True
    assert client.unlike("C-1").liked_by_current is False
    assert client.save("C-1", "R-1").is_saved is True
    assert client.unsave("C-1", "R-1").is_saved is False
    assert client.mark_viewed("R-1", "C-1").is_viewed is True

    methods = [req.get_method() for req in portal.requests]
    assert methods == ["POST", "DELETE", "POST", "DELETE", "GET"]
    assert portal.body(2) == {"requirementId": "R-1"}
    assert portal.requests[3].full_url.endswith("/candidate-likes/C-1?requirementId=R-1")
    assert portal.requests[4].full_url.endswith("/requirements/R-1/candidates/C-1")
