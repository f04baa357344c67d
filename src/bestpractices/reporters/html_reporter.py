from __future__ import annotations

import html
from collections import defaultdict
from pathlib import Path

from bestpractices import __version__
from bestpractices.engine.scoring import STANDARD_LABELS
from bestpractices.engine.types import Issue, ValidationReport, severity_rank
from bestpractices.rules.registry import check_by_kind
from bestpractices.rules.secrets import HARDCODED_SECRET


def render_html(report: ValidationReport) -> str:
    """
    Render a standalone HTML report.

    Stdlib only; output is deterministic so it can be archived as a CI
    artifact and diffed.
    """

    checks = check_by_kind()
    by_file: dict[str, list[Issue]] = defaultdict(list)
    for issue in report.issues:
        by_file[issue.file_path].append(issue)

    verdict = "passed" if report.passed else "failed"

    out: list[str] = []
    out.append("<!doctype html>")
    out.append('<html lang="en">')
    out.append("<head>")
    out.append('  <meta charset="utf-8">')
    out.append('  <meta name="viewport" content="width=device-width, initial-scale=1">')
    out.append("  <title>Best Practices report</title>")
    out.append("  <style>")
    out.append(_CSS)
    out.append("  </style>")
    out.append("</head>")
    out.append("<body>")

    out.append("  <header>")
    out.append("    <h1>Best Practices report</h1>")
    out.append(f'    <div class="meta">Version {html.escape(__version__)}</div>')
    out.append("  </header>")
    out.append('  <main id="main">')

    out.append('  <section class="summary">')
    out.append("    <h2>Summary</h2>")
    out.append("    <ul>")
    out.append(
        f'      <li><strong>Overall score</strong>: {int(report.overall_score)}/100 '
        f'<span class="verdict {verdict}">{verdict.upper()}</span> (threshold {int(report.threshold)})</li>'
    )
    out.append(f"      <li><strong>Issues</strong>: {len(report.issues)}</li>")
    out.append(f"      <li><strong>Auto-fixed</strong>: {len(report.fixed)}</li>")
    out.append("    </ul>")
    out.append("  </section>")

    out.append('  <section class="scores">')
    out.append("    <h2>Standards</h2>")
    out.append("    <table>")
    out.append("      <thead><tr><th>Standard</th><th>Score</th><th>Issues</th></tr></thead>")
    out.append("      <tbody>")
    for name in report.standards:
        result = report.per_standard[name]
        label = STANDARD_LABELS.get(name, name)
        note = " (scan failed)" if result.failed else ""
        out.append(
            f"        <tr><td>{html.escape(label)}{note}</td>"
            f"<td>{int(result.score)}/100</td><td>{len(result.issues)}</td></tr>"
        )
    out.append("      </tbody>")
    out.append("    </table>")
    out.append(_render_scores_svg(report))
    out.append("  </section>")

    for file_path in sorted(by_file):
        file_lines = _read_lines_safe(report.project_root, file_path)
        out.append(f'  <section class="file" id="{_anchor_for_file(file_path)}">')
        out.append(f"    <h2>{html.escape(file_path)}</h2>")
        out.append('    <ul class="issues">')
        for issue in sorted(by_file[file_path], key=_sort_key):
            check = checks.get(issue.kind)
            out.append(_render_issue(issue, file_lines=file_lines, description=check.description if check else None))
        out.append("    </ul>")
        out.append("  </section>")

    if report.fixed:
        out.append('  <section class="fixed">')
        out.append("    <h2>Auto-fixed</h2>")
        out.append("    <ul>")
        for record in report.fixed:
            out.append(
                f"      <li><code>{html.escape(record.file_path)}:{int(record.line)}</code> "
                f"{html.escape(record.message)}: {html.escape(record.fix)}</li>"
            )
        out.append("    </ul>")
        out.append("  </section>")

    out.append("  </main>")
    out.append("</body>")
    out.append("</html>")
    out.append("")
    return "\n".join(out)


def _render_issue(issue: Issue, *, file_lines: list[str], description: str | None) -> str:
    snippet = ""
    idx = issue.line - 1
    # Lines holding a secret are never echoed.
    if issue.secret_type is None and issue.kind != HARDCODED_SECRET.kind and 0 <= idx < len(file_lines):
        snippet = f"<pre><code>{html.escape(file_lines[idx].rstrip())}</code></pre>"

    title = f' title="{html.escape(description)}"' if description else ""
    severity = html.escape(issue.severity)
    return (
        f'      <li class="issue" data-severity="{severity}" data-standard="{html.escape(issue.standard)}">'
        f'<span class="badge sev-{severity}">{severity}</span> '
        f'<span class="rule"{title}>{html.escape(issue.rule)}</span> '
        f'<span class="loc">(line {int(issue.line)})</span> '
        f'<span class="message">{html.escape(issue.message)}</span>'
        f"{snippet}"
        "</li>"
    )


def _sort_key(issue: Issue) -> tuple[int, int, str]:
    return severity_rank(issue.severity), issue.line, issue.rule


def _anchor_for_file(path: str) -> str:
    safe = "".join(ch if ch.isalnum() else "-" for ch in path)
    return "file-" + safe.strip("-")


def _read_lines_safe(project_root: Path, rel_path: str) -> list[str]:
    """Read lines for snippets, refusing to escape the project root."""

    candidate = project_root / Path(rel_path)
    try:
        resolved_root = project_root.resolve()
        resolved = candidate.resolve()
        resolved.relative_to(resolved_root)
    except (OSError, RuntimeError, ValueError):
        return []
    if not resolved.is_file():
        return []

    try:
        return resolved.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def _render_scores_svg(report: ValidationReport) -> str:
    width = 520
    height = 24 * len(report.standards) + 16
    left = 140
    bar_width = width - left - 20

    parts: list[str] = []
    parts.append(f'    <svg class="scores-svg" viewBox="0 0 {width} {height}" role="img" aria-label="Scores chart">')
    y = 16
    for name in report.standards:
        score = report.per_standard[name].score
        filled = int(bar_width * score / 100)
        label = html.escape(STANDARD_LABELS.get(name, name))
        parts.append(f'      <text x="0" y="{y + 12}">{label}</text>')
        parts.append(f'      <rect x="{left}" y="{y}" width="{bar_width}" height="14" class="bar-bg"/>')
        parts.append(f'      <rect x="{left}" y="{y}" width="{filled}" height="14" class="bar"/>')
        y += 24
    parts.append("    </svg>")
    return "\n".join(parts)


_CSS = """    body { font-family: system-ui, sans-serif; margin: 2rem auto; max-width: 960px; color: #1f2328; }
    header .meta { color: #6e7781; }
    table { border-collapse: collapse; margin-bottom: 1rem; }
    th, td { border: 1px solid #d0d7de; padding: 0.3rem 0.6rem; text-align: left; }
    .verdict.passed { color: #1a7f37; font-weight: bold; }
    .verdict.failed { color: #cf222e; font-weight: bold; }
    .issues { list-style: none; padding-left: 0; }
    .issue { margin-bottom: 0.6rem; }
    .badge { border-radius: 4px; padding: 0 0.4rem; font-size: 0.8rem; background: #eaeef2; }
    .sev-critical, .sev-error, .sev-high { background: #ffebe9; color: #cf222e; }
    .sev-warning, .sev-moderate, .sev-medium { background: #fff8c5; color: #9a6700; }
    .rule { font-weight: bold; }
    .loc { color: #6e7781; }
    pre { background: #f6f8fa; padding: 0.4rem; overflow-x: auto; }
    .bar-bg { fill: #eaeef2; }
    .bar { fill: #2da44e; }"""
