"""Typer CLI for checking assessments and inspecting stores."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from .config import read_config_file
from .container import create_container
from .core import AnswerValidator, completion_stats, compute_visibility
from .logging import configure_logging
from .schemas import Assessment

app = typer.Typer(help="Assessment definition and runtime tooling.")


@app.command()
def check(
    assessment: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Assessment JSON path."),
    answers: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Answers JSON path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Report visible questions, validation errors and completion for an answer set."""
    configure_logging(log_level)

    record = _read_json(assessment, param_hint="'--assessment'")
    try:
        definition = Assessment.model_validate(record)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid assessment: {exc}", param_hint="'--assessment'") from exc
    answer_set = _read_json(answers, param_hint="'--answers'")
    if not isinstance(answer_set, dict):
        raise typer.BadParameter("Answers file must be a JSON object", param_hint="'--answers'")

    visible = compute_visibility(definition, answer_set)
    errors = AnswerValidator().validate(definition, answer_set, visible)
    stats = completion_stats(definition, answer_set, visible)
    ordered_visible = [q.id for q in definition.iter_questions() if q.id in visible]

    typer.echo(
        json.dumps(
            {
                "assessment_id": definition.id,
                "visible": ordered_visible,
                "errors": errors,
                "completion": asdict(stats),
                "valid": not errors,
            },
            ensure_ascii=False,
            indent=2,
        )
    )
    if errors:
        raise typer.Exit(code=1)


@app.command()
def stats(
    data: Optional[Path] = typer.Option(None, dir_okay=False, help="JSON data file of the record store."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: Optional[str] = typer.Option(
        None, help="Log level for structured logging; overrides the config file."
    ),
) -> None:
    """Print assessment counts for a record store."""
    settings: dict[str, Any] = {}
    level = "WARNING"
    if config:
        try:
            app_config = read_config_file(config)
        except ValidationError as exc:
            raise typer.BadParameter(f"Invalid config: {exc}", param_hint="'--config'") from exc
        settings = app_config.to_settings()
        level = app_config.log_level
    if data:
        settings["store"] = {"backend": "json", "path": str(data)}

    configure_logging(log_level or level)

    container = create_container(settings=settings)
    repository = container.repository()
    summary = asyncio.run(repository.assessment_stats())
    typer.echo(json.dumps(asdict(summary), ensure_ascii=False, indent=2))


def _read_json(path: Path, *, param_hint: str) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid JSON: {exc}", param_hint=param_hint) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
