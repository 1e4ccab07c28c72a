from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from candidatematch import cli
from candidatematch.cli import app
from candidatematch.errors import ServiceError
from candidatematch.schemas import ScoreResponse, StartRunResponse

SCORES = {"C-001": 40.0, "C-002": 90.0, "C-003": 65.0}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def candidates_path(tmp_path: Path) -> Path:
    candidates = [
        {
            "id": "C-001",
            "name": "Priya Sharma",
            "designation": "Backend Engineer",
            "location": "Bangalore",
            "keySkills": ["Python", "Django"],
            "experience": "5 years",
            "currentSalary": "12 LPA",
            "phoneVerified": True,
        },
        {
            "id": "C-002",
            "name": "Arjun Mehta",
            "designation": "Data Engineer",
            "location": "Pune",
            "keySkills": "Python, Spark",
            "experience": "7 years",
            "expectedSalary": "150000",
        },
        {
            "id": "C-003",
            "name": "Divya Nair",
            "designation": "Frontend Developer",
            "location": "Kochi",
            "keySkills": ["React"],
            "experience": "3 years",
        },
    ]
    path = tmp_path / "candidates.jsonl"
    path.write_text("\n".join(json.dumps(item) for item in candidates), encoding="utf-8")
    return path


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"orchestrator": {"pacing_delay": 0}}), encoding="utf-8")
    return path


class StubScoringClient:
    def __init__(self, base_url: str, api_token: str | None = None, *, timeout: float = 30.0):
        self.base_url = base_url

    def start_run(self, requirement_id, candidate_ids, *, page=None, limit=None) -> StartRunResponse:
        return StartRunResponse(
            target_candidate_ids=list(candidate_ids),
            total_candidates=len(candidate_ids),
            suggested_concurrency=2,
        )

    def score_one(self, requirement_id: str, candidate_id: str) -> ScoreResponse:
        return ScoreResponse(ats_score=SCORES[candidate_id], candidate={"id": candidate_id})


class RefusingScoringClient(StubScoringClient):
    def start_run(self, requirement_id, candidate_ids, *, page=None, limit=None) -> StartRunResponse:
        raise ServiceError("ATS quota exceeded", status=429)


def test_cli_filters_candidates_and_writes_output(
    tmp_path: Path, runner: CliRunner, candidates_path: Path
) -> None:
    filters_path = tmp_path / "filters.yaml"
    filters_path.write_text(
        yaml.safe_dump({"skills_include": "python", "experience": [4, 10], "location_exclude": "pune"}),
        encoding="utf-8",
    )
    output_path = tmp_path / "results.json"
    audit_path = tmp_path / "audit.jsonl"

    result = runner.invoke(
        app,
        [
            "--candidates",
            str(candidates_path),
            "--filters",
            str(filters_path),
            "--output",
            str(output_path),
            "--audit-log",
            str(audit_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "Ranked 1 candidates" in result.stdout

    rendered = json.loads(output_path.read_text(encoding="utf-8"))
    assert [item["id"] for item in rendered["candidates"]] == ["C-001"]
    assert rendered["metadata"]["loaded"] == 3
    assert rendered["metadata"]["filters"]["skills_include"] == ["python"]
    assert rendered["metadata"]["progress"] is None

    audit_lines = audit_path.read_text(encoding="utf-8").strip().splitlines()
    assert json.loads(audit_lines[-1])["displayed"] == 1


def test_cli_streams_scores_and_ranks(
    tmp_path: Path,
    runner: CliRunner,
    candidates_path: Path,
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(cli, "HTTPScoringClient", StubScoringClient)
    output_path = tmp_path / "ranked.json"

    result = runner.invoke(
        app,
        [
            "--candidates",
            str(candidates_path),
            "--config",
            str(config_path),
            "--service-url",
            "https://portal.example.com/api",
            "--requirement-id",
            "R-1",
            "--score",
            "--output",
            str(output_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "Scored 3/3 (0 failed)" in result.stdout

    rendered = json.loads(output_path.read_text(encoding="utf-8"))
    assert [item["id"] for item in rendered["candidates"]] == ["C-002", "C-003", "C-001"]
    assert rendered["candidates"][0]["ats_score"] == 90.0
    assert rendered["candidates"][0]["ats_calculated_at"]
    run = rendered["metadata"]["run"]
    assert (run["total"], run["succeeded"], run["failed"]) == (3, 3, 0)
    assert rendered["metadata"]["progress"]["batch_count"] == 2
    assert rendered["metadata"]["progress"]["done"] is True


def test_cli_exits_when_run_cannot_start(
    tmp_path: Path,
    runner: CliRunner,
    candidates_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(cli, "HTTPScoringClient", RefusingScoringClient)
    output_path = tmp_path / "ranked.json"

    result = runner.invoke(
        app,
        [
            "--candidates",
            str(candidates_path),
            "--service-url",
            "https://portal.example.com/api",
            "--requirement-id",
            "R-1",
            "--score",
            "--output",
            str(output_path),
        ],
    )

    assert result.exit_code == 1
    assert not output_path.exists()


def test_cli_requires_a_candidate_source(tmp_path: Path, runner: CliRunner) -> None:
    result = runner.invoke(app, ["--output", str(tmp_path / "out.json")])

    assert result.exit_code != 0
    assert not (tmp_path / "out.json").exists()
