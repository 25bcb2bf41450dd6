"""CLI interface for verifying program text against example cases."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from harness.cases import load_drafts
from harness.config import HarnessConfig, load_config
from harness.controller import HostController, RunView, SandboxChannel
from harness.render import format_logs, format_result, format_summary
from harness.schemas import CaseDraft, RunFailure, RunSuccess

app = typer.Typer(help="Spec Interpreter: run program text against example cases in a sandbox")

DEMO_CODE = """import math


def solution(n):
    return math.sqrt(n)
"""

DEMO_CASES = [
    CaseDraft(id="case-1", args="9", expected="3"),
    CaseDraft(id="case-2", args="0", expected="0"),
    CaseDraft(id="case-3", args="2", expected="1.41421356237"),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _view_to_response(view: RunView) -> dict[str, object]:
    if view.status == "error":
        return RunFailure(error=view.error or "", logs=view.logs).to_dict()
    return RunSuccess(results=view.results, logs=view.logs).to_dict()


def _print_view(view: RunView) -> None:
    summary = format_summary(view)
    if view.status == "error":
        typer.secho(f"❌ {summary}", fg=typer.colors.RED, err=True)
    elif view.pass_count == len(view.results):
        typer.secho(f"✅ {summary}", fg=typer.colors.GREEN)
    else:
        typer.secho(f"⚠️  {summary}", fg=typer.colors.YELLOW)

    for result in view.results:
        lines = format_result(result)
        typer.secho(lines[0], fg=typer.colors.GREEN if result.passed else typer.colors.RED)
        for line in lines[1:]:
            typer.echo(line)

    for line in format_logs(view.logs):
        typer.echo(line)


def _execute(
    code: str,
    drafts: list[CaseDraft],
    config: HarnessConfig,
    as_json: bool,
    strict: bool = True,
) -> None:
    channel = SandboxChannel(config.build_executor())
    with HostController(code=code, drafts=drafts, runner=channel) as controller:
        view = controller.run()

    if as_json:
        typer.echo(json.dumps(_view_to_response(view), indent=2))
    else:
        _print_view(view)

    if view.status == "error":
        raise typer.Exit(1)
    if strict and view.pass_count != len(view.results):
        raise typer.Exit(1)


@app.command()
def run(
    code_path: str = typer.Argument(..., help="Python file defining solution()"),
    cases_path: str = typer.Argument(..., help="YAML/JSON list of {args, expected} cases"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Harness YAML config"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Wall-clock cap in seconds"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run a program file against a cases file."""
    _configure_logging(verbose)

    code_file = Path(code_path)
    if not code_file.exists():
        typer.secho(f"❌ Code file not found: {code_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    try:
        config = load_config(config_path) if config_path else HarnessConfig()
        drafts = load_drafts(cases_path)
    except FileNotFoundError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid input: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if timeout is not None:
        if timeout <= 0:
            typer.secho("❌ --timeout must be positive", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        config.timeout_seconds = timeout

    code = code_file.read_text(encoding="utf-8")
    _execute(code, drafts, config, as_json)


@app.command()
def demo(
    as_json: bool = typer.Option(False, "--json", help="Print the raw response as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run the built-in square-root example (the last case fails on purpose)."""
    _configure_logging(verbose)
    if not as_json:
        typer.secho("📄 Program:", fg=typer.colors.BLUE)
        typer.echo(DEMO_CODE)
    _execute(DEMO_CODE, list(DEMO_CASES), HarnessConfig(), as_json, strict=False)


if __name__ == "__main__":
    app()
