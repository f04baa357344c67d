from __future__ import annotations

from bestpractices.engine.scoring import STANDARD_LABELS
from bestpractices.engine.types import Issue, ValidationReport


def render_markdown(report: ValidationReport) -> str:
    lines: list[str] = []
    lines.append("# Best Practices report")
    lines.append("")
    verdict = "PASSED" if report.passed else "FAILED"
    lines.append(f"- Overall score: **{report.overall_score}/100** ({verdict}, threshold {report.threshold})")
    for name in report.standards:
        result = report.per_standard[name]
        suffix = " (scan failed)" if result.failed else ""
        lines.append(f"- {STANDARD_LABELS.get(name, name)}: {result.score}/100{suffix}")
    lines.append(f"- Issues: {len(report.issues)}")
    if report.fixed:
        lines.append(f"- Auto-fixed: {len(report.fixed)}")
    lines.append("")

    lines.append("## Issues")
    lines.append("")
    if not report.issues:
        lines.append("No issues found.")
        lines.append("")
    else:
        lines.append("| File | Line | Standard | Rule | Severity | Message |")
        lines.append("| --- | ---: | --- | --- | --- | --- |")
        for issue in report.issues:
            lines.append(_issue_row(issue))
        lines.append("")

    if report.fixed:
        lines.append("## Fixed")
        lines.append("")
        lines.append("| File | Line | Rule | Fix |")
        lines.append("| --- | ---: | --- | --- |")
        for record in report.fixed:
            lines.append(
                f"| {_md_escape_cell(record.file_path)} | {record.line} | `{record.rule}` | "
                f"{_md_escape_cell(record.message)}: {_md_escape_cell(record.fix)} |"
            )
        lines.append("")

    return "\n".join(lines)


def _issue_row(issue: Issue) -> str:
    return (
        f"| {_md_escape_cell(issue.file_path)} | {issue.line} | {issue.standard} | `{issue.rule}` | "
        f"{issue.severity} | {_md_escape_cell(issue.message)} |"
    )


def _md_escape_cell(text: str) -> str:
    # Markdown tables break on pipes/newlines.
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ").strip()
