"""Typer CLI entrypoint for the candidate ranking pipeline."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog
import typer
import yaml
from pydantic import ValidationError

from .clients import HTTPCandidateDataClient, HTTPScoringClient
from .container import create_container
from .errors import CandidateMatchError, RunStartError
from .logging import configure_logging
from .pipeline import AuditLogger, CandidateLoadError
from .schemas import build_filter_spec
from .schemas.config import load_config

app = typer.Typer(help="Candidate filtering and streaming ATS ranking CLI.")
logger = structlog.get_logger(__name__)


def _read_yaml(path: Path, param_name: str) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise typer.BadParameter(f"{path.name} must be a YAML object", param_name=param_name)
    return loaded


@app.command()
def run(
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    candidates: Optional[Path] = typer.Option(
        None, exists=True, readable=True, dir_okay=False, help="Candidates JSONL path."
    ),
    filters: Optional[Path] = typer.Option(
        None, exists=True, readable=True, dir_okay=False, help="Filter YAML path."
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    requirement_id: Optional[str] = typer.Option(None, help="Requirement the listing belongs to."),
    service_url: Optional[str] = typer.Option(None, help="Portal API base URL."),
    api_token: Optional[str] = typer.Option(None, envvar="CANDIDATEMATCH_API_TOKEN", help="Portal API token."),
    score: bool = typer.Option(False, "--score/--no-score", help="Stream ATS scores for the listing."),
    score_all: bool = typer.Option(False, help="Score every candidate of the requirement."),
    concurrency: Optional[int] = typer.Option(None, min=1, help="Override concurrent scoring calls."),
    page: int = typer.Option(1, min=1, help="Listing page when fetching from the portal."),
    page_size: int = typer.Option(20, min=1, help="Listing page size when fetching from the portal."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Filter a candidate listing, optionally stream ATS scores, and write the ranking."""
    configure_logging(log_level)

    settings: dict[str, Any] = {}
    if config:
        try:
            settings = load_config(_read_yaml(config, "config")).to_settings()
        except ValidationError as exc:
            raise typer.BadParameter(str(exc), param_name="config") from exc

    service_settings = settings.get("service", {})
    base_url = service_url or service_settings.get("base_url")
    token = api_token or service_settings.get("api_token")
    timeout = service_settings.get("timeout", 30.0)

    container = create_container(settings=settings)
    data_client = HTTPCandidateDataClient(base_url, token, timeout=timeout) if base_url else None
    scoring_client = HTTPScoringClient(base_url, token, timeout=timeout) if base_url else None
    session = container.session(
        requirement_id=requirement_id,
        data_service=data_client,
        scoring_service=scoring_client,
        audit_logger=AuditLogger(audit_log) if audit_log else None,
    )

    spec = build_filter_spec(_read_yaml(filters, "filters") if filters else None)
    session.set_filters(spec)

    if candidates:
        loader = container.candidate_loader()
        try:
            records = loader.load(candidates)
        except CandidateLoadError as exc:
            records = exc.partial
            logger.warning("candidates.partial_load", loaded=len(records), errors=len(exc.errors))
            for message in exc.errors:
                typer.echo(f"Skipped candidate: {message}", err=True)
        session.load(records)
    elif data_client and requirement_id:
        try:
            session.refresh(page=page, page_size=page_size)
        except CandidateMatchError as exc:
            typer.echo(f"Could not fetch candidates: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    else:
        raise typer.BadParameter(
            "Provide --candidates or both --service-url and --requirement-id",
            param_name="candidates",
        )

    summary = None
    if score or score_all:
        if not (scoring_client and requirement_id):
            raise typer.BadParameter(
                "Scoring needs --service-url and --requirement-id",
                param_name="score",
            )
        try:
            summary = asyncio.run(
                session.score(
                    "all" if score_all else "current",
                    page=page,
                    limit=page_size,
                    concurrency_limit=concurrency,
                )
            )
        except RunStartError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    payload = session.export()
    if summary is not None:
        payload["metadata"]["run"] = summary.as_dict()
    container.output_writer().write(output, payload)

    message = f"Ranked {len(payload['candidates'])} candidates. Results saved to {output}."
    if summary is not None:
        message += f" Scored {summary.succeeded}/{summary.total} ({summary.failed} failed)."
    typer.echo(message)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
