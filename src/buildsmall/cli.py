"""CLI commands for the build-small issue agent."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer

from .config import AgentSettings, issue_from_env
from .errors import ApplyError, EnvironmentSetupError, PipelineError, TransportError
from .models import GeminiClient
from .pipeline import REPORT_ARTIFACT, run_pipeline
from .report import PR_BODY_MODES, render_plan_comment, render_pr_body
from .tools.runner import SubprocessRunner

APP_HELP = "Turn an issue into a validated change proposal."

app = typer.Typer(help=APP_HELP)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("build-small")
def build_small(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the agent configuration file (defaults to .agent/config.yaml when present).",
    ),
    repo_root: Path = typer.Option(
        Path("."),
        "--repo-root",
        help="Working tree the patch is applied to.",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory receiving agent_plan.md, pr_body.md and failure artifacts.",
    ),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """Ask the model for a patch, apply it, build, and write the PR body."""
    _configure_logging(log_level)

    try:
        settings = AgentSettings.from_env(
            os.environ,
            config_path=config,
            repo_root=repo_root,
            output_dir=output_dir,
        )
    except PipelineError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=error.exit_code) from error

    client = GeminiClient(
        api_key=settings.api_key,
        base_url=settings.model.base_url,
        model=settings.model.name,
        timeout=settings.model.timeout,
    )
    runner = SubprocessRunner()

    try:
        result = run_pipeline(settings, client=client, runner=runner)
    except TransportError as error:
        typer.echo(f"Model call failed: {error}", err=True)
        raise typer.Exit(code=error.exit_code) from error
    except ApplyError as error:
        typer.echo(f"git apply failed.\nPatch was:\n{error.diff_text}", err=True)
        raise typer.Exit(code=error.exit_code) from error
    except EnvironmentSetupError as error:
        typer.echo(str(error), err=True)
        if error.result.output:
            typer.echo(error.result.output, err=True)
        raise typer.Exit(code=error.exit_code) from error
    except PipelineError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=error.exit_code) from error

    report_path = result.artifacts.get(REPORT_ARTIFACT)
    if report_path is not None:
        typer.echo(f"Wrote {report_path}")
    if not result.build_passed:
        typer.echo("Build failed. PR body generated; stopping so CI is honest.", err=True)
        raise typer.Exit(code=result.exit_code)
    typer.echo("Agent build-small completed successfully.")


@app.command("plan-comment")
def plan_comment(
    output: Path = typer.Option(Path("plan_comment.md"), "--output", "-o", help="Where to write the comment."),
) -> None:
    """Write the placeholder plan comment (no model call)."""
    issue = issue_from_env(os.environ)
    output.write_text(render_plan_comment(issue), encoding="utf-8")
    typer.echo(f"Wrote {output}")


@app.command("pr-body")
def pr_body(
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help=f"One of {', '.join(PR_BODY_MODES)}; defaults to $MODE or smoke.",
    ),
    output: Path = typer.Option(Path("pr_body.md"), "--output", "-o", help="Where to write the PR body."),
) -> None:
    """Write the PR body for the smoke and research variants (no model call)."""
    issue = issue_from_env(os.environ)
    selected = mode or os.environ.get("MODE", "smoke")
    output.write_text(render_pr_body(issue, selected), encoding="utf-8")
    typer.echo(f"Wrote {output}")


if __name__ == "__main__":
    app()
