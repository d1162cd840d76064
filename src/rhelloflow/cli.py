"""Typer CLI entrypoint for scorecard operations on a JSON store."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from pydantic import BaseModel

from .audit import AuditLogger
from .config import load_settings
from .container import ScorecardContainer, create_container
from .errors import ExternalTestError, PersistenceError, RhelloFlowError
from .logging import configure_logging
from .schemas import User
from .stores import JsonFileStore, StaticIdentity

app = typer.Typer(help="Scorecard scoring, grading and technical test CLI.")


@app.callback()
def main_options(
    ctx: typer.Context,
    store: Optional[Path] = typer.Option(
        None,
        dir_okay=False,
        envvar="RHELLOFLOW_STORE",
        help="JSON store path (defaults to store.path from config, then ./rhelloflow.json).",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
    user: Optional[str] = typer.Option(None, envvar="RHELLOFLOW_USER", help="Acting user id."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Grading audit log output (JSONL)."),
) -> None:
    configure_logging(log_level)
    try:
        settings = load_settings(config)
    except (yaml.YAMLError, ValueError) as exc:
        raise typer.BadParameter(f"Invalid config file: {exc}", param_name="config") from exc

    store_path = store or Path(settings.get("store", {}).get("path", "rhelloflow.json"))
    try:
        json_store = JsonFileStore(store_path)
    except PersistenceError as exc:
        raise typer.BadParameter(str(exc), param_name="store") from exc

    ctx.obj = create_container(
        settings=settings,
        store=json_store,
        identity=StaticIdentity(User(id=user) if user else None),
        audit_logger=AuditLogger(audit_log) if audit_log else None,
    )


@app.command()
def score(
    ctx: typer.Context,
    scorecard_id: str = typer.Argument(..., help="Scorecard id."),
    persist: bool = typer.Option(False, help="Write the recomputed aggregate back to the scorecard."),
) -> None:
    """Recompute a scorecard's total score and match percentage."""
    container = _container(ctx)
    recorder = container.score_recorder()
    recorded = _run(lambda: recorder.refresh(scorecard_id) if persist else recorder.compute(scorecard_id))
    _echo(
        {
            "scorecard_id": scorecard_id,
            "total_score": recorded.result.display_total,
            "match_percentage": recorded.result.match_percentage,
            "graded_weight": recorded.result.graded_weight,
            "graded_count": recorded.result.graded_count,
            "all_scores_set": container.completion_gate().all_scores_set(recorded.criteria, recorded.answers),
        }
    )


@app.command()
def pending(
    ctx: typer.Context,
    scorecard_id: str = typer.Argument(..., help="Scorecard id."),
) -> None:
    """List open-text answers still waiting for a grade."""
    container = _container(ctx)
    recorded = _run(lambda: container.score_recorder().compute(scorecard_id))
    summary = container.completion_gate().pending_open_text(recorded.criteria, recorded.answers)
    _echo(
        {
            "scorecard_id": scorecard_id,
            "pending": summary.items,
            "count": summary.count,
            "total_weight": summary.total_weight,
            "message": summary.message(),
        }
    )


@app.command()
def grade(
    ctx: typer.Context,
    scorecard_id: str = typer.Argument(..., help="Scorecard id."),
    answer_id: str = typer.Argument(..., help="Open-text answer id."),
    value: int = typer.Argument(..., help="Grade from 1 to 5."),
) -> None:
    """Grade one open-text answer and refresh the scorecard aggregate."""
    container = _container(ctx)
    view = _run(lambda: container.grading_view(scorecard_id=scorecard_id))
    result = _run(lambda: view.grade(answer_id, value))
    _echo(
        {
            "scorecard_id": scorecard_id,
            "answer_id": answer_id,
            "total_score": result.display_total,
            "match_percentage": result.match_percentage,
            "pending": view.pending.message(),
        }
    )


@app.command("issue-test")
def issue_test(
    ctx: typer.Context,
    candidate_id: str = typer.Argument(..., help="Candidate id."),
    template_id: str = typer.Argument(..., help="Technical test template id."),
    vaga_id: Optional[str] = typer.Option(None, help="Vacancy id."),
    days: Optional[int] = typer.Option(None, min=1, help="Days until the link expires."),
) -> None:
    """Create a technical test link for a candidate."""
    service = _container(ctx).external_tests()
    issued = _run(lambda: service.issue_link(candidate_id, template_id, vaga_id=vaga_id, expiration_days=days))
    _echo(issued)


@app.command("submit-test")
def submit_test(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Test token."),
    answers: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Answers JSON list."),
) -> None:
    """Submit a candidate's answers for a technical test."""
    try:
        responses = json.loads(answers.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid answers JSON: {exc}", param_name="answers") from exc
    if not isinstance(responses, list):
        raise typer.BadParameter("Answers file must hold a JSON list", param_name="answers")

    service = _container(ctx).external_tests()
    recorded = _run(lambda: service.submit_test(token, responses))
    _echo(
        {
            "scorecard_id": recorded.scorecard.id,
            "total_score": recorded.result.total_score,
            "match_percentage": recorded.result.match_percentage,
        }
    )


@app.command()
def rank(
    ctx: typer.Context,
    vaga_id: str = typer.Argument(..., help="Vacancy id."),
) -> None:
    """Rank a vacancy's candidates by their average scorecard total."""
    ranking = _run(lambda: _container(ctx).reports().rank_vaga(vaga_id))
    _echo({"vaga_id": ranking.vaga_id, "total_candidates": ranking.total_candidates, "candidates": ranking.candidates})


@app.command()
def history(
    ctx: typer.Context,
    candidate_id: str = typer.Argument(..., help="Candidate id."),
) -> None:
    """Show every scorecard a candidate received."""
    result = _run(lambda: _container(ctx).reports().candidate_history(candidate_id))
    _echo(
        {
            "candidate_id": result.candidate_id,
            "average_match_percentage": result.average_match_percentage,
            "scorecards": result.entries,
        }
    )


def _container(ctx: typer.Context) -> ScorecardContainer:
    return ctx.obj


def _run(action):
    try:
        return action()
    except ExternalTestError as exc:
        typer.echo(f"{exc.code}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except RhelloFlowError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, default=_json_default, ensure_ascii=False, indent=2))


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
