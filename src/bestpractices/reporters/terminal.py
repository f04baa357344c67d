from __future__ import annotations

from collections import defaultdict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bestpractices import __version__
from bestpractices.engine.scoring import STANDARD_LABELS
from bestpractices.engine.types import Issue, ValidationReport, severity_rank

_SEVERITY_ICON = {
    "critical": "✖",
    "error": "✖",
    "high": "✖",
    "warning": "⚠",
    "moderate": "⚠",
    "medium": "⚠",
    "info": "ℹ",
}
_SEVERITY_STYLE = {
    "critical": "bold red",
    "error": "bold red",
    "high": "red",
    "moderate": "yellow",
    "medium": "yellow",
    "warning": "yellow",
    "low": "dim",
    "info": "dim",
}


def render_terminal(report: ValidationReport, *, console: Console, show_details: bool = True) -> None:
    header = Text()
    header.append("Best Practices ", style="bold")
    header.append(f"v{__version__}", style="dim")

    console.print(Panel(header, subtitle=str(report.project_root), border_style="cyan"))

    if show_details:
        by_file: dict[str, list[Issue]] = defaultdict(list)
        for issue in report.issues:
            by_file[issue.file_path].append(issue)

        for file_path in sorted(by_file):
            console.print(Text(file_path, style="bold"))
            for issue in sorted(by_file[file_path], key=_sort_key):
                _print_issue(console, issue)
            console.print()

        if report.fixed:
            console.print(Text(f"Auto-fixed {len(report.fixed)} issue(s)", style="bold green"))
            for record in report.fixed:
                console.print(f"  ✔ {record.file_path}:{record.line}  {record.message}", style="green")
            console.print()

    _print_summary(report, console=console)


def _print_issue(console: Console, issue: Issue) -> None:
    icon = _SEVERITY_ICON.get(issue.severity, "•")
    style = _SEVERITY_STYLE.get(issue.severity, "")

    line = Text()
    line.append(f"  {icon} ", style=style)
    line.append(issue.rule, style="bold")
    line.append(f"  ({issue.line})", style="dim")
    line.append(f"  {issue.message}")
    console.print(line)


def _print_summary(report: ValidationReport, *, console: Console) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Standard")
    table.add_column("Score", justify="right")
    table.add_column("Issues", justify="right")
    for name in report.standards:
        result = report.per_standard[name]
        label = STANDARD_LABELS.get(name, name)
        if result.failed:
            label += " (failed)"
        table.add_row(label, f"{result.score}/100", str(len(result.issues)))
    console.print(table)

    verdict_style = "bold green" if report.passed else "bold red"
    verdict = "PASSED" if report.passed else "FAILED"
    summary = Text()
    summary.append(f"Overall score: {report.overall_score}/100 ", style="bold")
    summary.append(verdict, style=verdict_style)
    summary.append(f" (threshold {report.threshold})", style="dim")
    console.print(summary)


def _sort_key(issue: Issue) -> tuple[int, int, str]:
    return severity_rank(issue.severity), issue.line, issue.rule
