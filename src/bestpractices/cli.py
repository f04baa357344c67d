from __future__ import annotations

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.table import Table

from bestpractices import __version__
from bestpractices.config import load_config
from bestpractices.engine.types import STANDARDS, ValidationReport
from bestpractices.errors import DiscoveryError, InvalidStandardError
from bestpractices.init import InitError, InitOptions, init_project
from bestpractices.logging_utils import configure_logging
from bestpractices.reporters.html_reporter import render_html
from bestpractices.reporters.json_reporter import parse_json_report, render_json
from bestpractices.reporters.markdown import render_markdown
from bestpractices.reporters.terminal import render_terminal
from bestpractices.rules.registry import checks_for_standard
from bestpractices.utils import split_csv
from bestpractices.validation import validate as run_validation

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Best Practices SDK: code quality, security and performance validation.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("terminal", "json", "markdown", "html")
DEFAULT_REPORT_PATH = "validation-report.json"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
) -> None:
    """Best Practices CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False}
    return {"verbose": bool(ctx.obj.get("verbose", False)), "quiet": bool(ctx.obj.get("quiet", False))}


def _emit_output(fmt: str, *, report: ValidationReport, show_details: bool = True) -> None:
    normalized = fmt.strip().lower()
    if normalized == "terminal":
        render_terminal(report, console=console, show_details=show_details)
        return
    if normalized == "json":
        typer.echo(render_json(report))
        return
    if normalized == "markdown":
        typer.echo(render_markdown(report))
        return
    if normalized == "html":
        typer.echo(render_html(report))
        return
    raise typer.BadParameter(f"Unsupported format. Use: {', '.join(OUTPUT_FORMATS)}.")


@app.command()
def validate(
    path: Annotated[
        Path,
        typer.Argument(help="Project directory (default: current directory)."),
    ] = Path("."),
    standards: Annotated[
        str,
        typer.Option("--standards", "-s", help="Comma-separated standards: code, security, performance."),
    ] = ",".join(STANDARDS),
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Insert placeholder comments above uncommented functions."),
    ] = False,
    output_format: Annotated[
        str,
        typer.Option("--format", help=f"Output format: {', '.join(OUTPUT_FORMATS)}.", show_default=True),
    ] = "terminal",
    save_report: Annotated[
        bool,
        typer.Option("--report", help="Also save a JSON report (see --output)."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help=f"JSON report path (default: {DEFAULT_REPORT_PATH}).", show_default=False),
    ] = None,
    threshold: Annotated[
        int | None,
        typer.Option("--threshold", min=0, max=100, help="Override the pass threshold (0-100)."),
    ] = None,
) -> None:
    """
    Validate a project and exit non-zero when it does not pass.

    Exit codes: 0 passed, 1 failed, 2 invalid arguments or project root.
    """

    settings = _cli_settings()
    if output_format.strip().lower() not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Unsupported format. Use: {', '.join(OUTPUT_FORMATS)}.")

    config = load_config(path)
    if threshold is not None:
        config = replace(config, policy=replace(config.policy, pass_threshold=threshold))

    try:
        report = run_validation(path, split_csv(standards), auto_fix=fix, config=config)
    except InvalidStandardError as exc:
        err_console.print(f"Invalid standards: {exc}")
        raise typer.Exit(code=2) from exc
    except DiscoveryError as exc:
        err_console.print(f"Cannot validate: {exc}")
        raise typer.Exit(code=2) from exc

    _emit_output(output_format, report=report, show_details=not settings["quiet"])

    if save_report or output is not None:
        report_path = output if output is not None else Path(DEFAULT_REPORT_PATH)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(render_json(report) + "\n", encoding="utf-8")
        logger.info("validation report saved: %s", report_path)

    if not report.passed:
        raise typer.Exit(code=1)


@app.command()
def report(
    input_json: Annotated[
        str,
        typer.Argument(help="Input JSON report path, or '-' to read from stdin."),
    ],
    output_format: Annotated[
        str,
        typer.Option("--format", help=f"Output format: {', '.join(OUTPUT_FORMATS)}.", show_default=True),
    ] = "terminal",
    project_root: Annotated[
        Path,
        typer.Option(
            "--project-root",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project root used to resolve relative paths in the JSON report (default: current directory).",
        ),
    ] = Path("."),
) -> None:
    """
    Render a previously saved JSON report in another format.
    """

    try:
        if input_json.strip() == "-":
            raw = sys.stdin.read()
        else:
            raw = Path(input_json).read_text(encoding="utf-8", errors="replace")
        parsed = parse_json_report(raw, project_root=project_root)
    except (OSError, ValueError) as exc:
        err_console.print(f"Invalid JSON report: {exc}")
        raise typer.Exit(code=2) from exc

    settings = _cli_settings()
    _emit_output(output_format, report=parsed, show_details=not settings["quiet"])


@app.command("standards")
def list_standards(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the built-in checks, grouped by standard.
    """

    rows = [
        {
            "standard": check.standard,
            "rule": check.rule,
            "type": check.kind,
            "severity": check.default_severity,
            "description": check.description,
        }
        for standard in STANDARDS
        for check in checks_for_standard(standard)
    ]

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Standard")
    table.add_column("Rule")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Description")
    for row in rows:
        table.add_row(row["standard"], row["rule"], row["type"], row["severity"], row["description"])
    console.print(table)


@app.command()
def init(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Target project directory (default: current directory).",
        ),
    ] = Path("."),
    ci: Annotated[
        str | None,
        typer.Option(
            "--ci",
            help="Generate CI configuration (supported: github, gitlab).",
            show_default=False,
        ),
    ] = None,
    pre_commit: Annotated[
        bool,
        typer.Option("--pre-commit", help="Generate/patch .pre-commit-config.yaml."),
    ] = False,
) -> None:
    """
    Write a starter .bp-config.yml and optional CI / pre-commit integration.

    Existing files are never overwritten, so running it again is a no-op.
    """

    try:
        result = init_project(InitOptions(project_dir=path, ci=ci, pre_commit=pre_commit))
    except InitError as exc:
        raise typer.BadParameter(str(exc)) from exc

    for message in result.messages:
        console.print(message)

    if result.changed_files:
        console.print("\nChanged files:")
        for file_path in result.changed_files:
            try:
                display_path = file_path.relative_to(path)
            except ValueError:
                display_path = file_path
            console.print(f"- {display_path}")
