from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any

from bestpractices import __version__
from bestpractices.engine.types import STANDARDS, FixRecord, Issue, ScanResult, Standard, ValidationReport, severity_rank

REPORT_SCHEMA_VERSION = 1


def render_json(report: ValidationReport) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "Best Practices SDK", "version": __version__},
        "overall_score": report.overall_score,
        "passed": report.passed,
        "threshold": report.threshold,
        "standards": list(report.standards),
        "scores": report.scores,
        "results": {name: _result_to_dict(report.per_standard[name]) for name in report.standards},
        "summary": {
            "issues": len(report.issues),
            "fixed": len(report.fixed),
            "by_severity": _severity_counts(report.issues),
        },
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def _severity_counts(issues: tuple[Issue, ...]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for issue in sorted(issues, key=lambda i: severity_rank(i.severity)):
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts


def _result_to_dict(result: ScanResult) -> dict[str, Any]:
    return {
        "score": result.score,
        "failed": result.failed,
        "metrics": dict(result.metrics),
        "issues": [_issue_to_dict(issue) for issue in result.issues],
        "fixed": [_fix_to_dict(record) for record in result.fixed],
    }


def _issue_to_dict(issue: Issue) -> dict[str, Any]:
    data: dict[str, Any] = {
        "file": issue.file_path,
        "line": issue.line,
        "type": issue.kind,
        "severity": issue.severity,
        "message": issue.message,
        "rule": issue.rule,
        "standard": issue.standard,
    }
    if issue.secret_type is not None:
        data["secretType"] = issue.secret_type
    if issue.package_name is not None:
        data["packageName"] = issue.package_name
    return data


def _fix_to_dict(record: FixRecord) -> dict[str, Any]:
    return {
        "file": record.file_path,
        "line": record.line,
        "type": record.kind,
        "rule": record.rule,
        "message": record.message,
        "fix": record.fix,
    }


def parse_json_report(text: str, *, project_root: Path) -> ValidationReport:
    """
    Parse a JSON report produced by `render_json()` back into a report.

    This powers `bp report`, which re-renders saved results in another format
    without re-scanning.
    """

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("JSON report must be an object.")

    raw_score = data.get("overall_score")
    raw_passed = data.get("passed")
    if not isinstance(raw_score, int) or not isinstance(raw_passed, bool):
        raise ValueError("JSON report missing required fields: overall_score/passed.")

    raw_standards = data.get("standards")
    raw_results = data.get("results")
    if not isinstance(raw_standards, list) or not isinstance(raw_results, dict):
        raise ValueError("JSON report missing required fields: standards/results.")

    standards: list[Standard] = []
    per_standard: dict[Standard, ScanResult] = {}
    for raw_name in raw_standards:
        name = str(raw_name)
        if name not in STANDARDS or name in per_standard:
            continue
        raw_result = raw_results.get(name)
        if not isinstance(raw_result, dict):
            raise ValueError(f"JSON report has no results for standard {name!r}.")
        standards.append(name)  # type: ignore[arg-type]
        per_standard[name] = _parse_result(name, raw_result)  # type: ignore[index, arg-type]

    if not standards:
        raise ValueError("JSON report lists no known standards.")

    raw_threshold = data.get("threshold", 0)
    threshold = raw_threshold if isinstance(raw_threshold, int) else 0

    return ValidationReport(
        project_root=project_root,
        standards=tuple(standards),
        overall_score=raw_score,
        passed=raw_passed,
        threshold=threshold,
        per_standard=MappingProxyType(per_standard),
        issues=tuple(issue for name in standards for issue in per_standard[name].issues),
        fixed=tuple(record for name in standards for record in per_standard[name].fixed),
    )


def _parse_result(standard: Standard, item: dict[str, Any]) -> ScanResult:
    metrics: dict[str, int] = {}
    raw_metrics = item.get("metrics", {})
    if isinstance(raw_metrics, dict):
        for key, value in raw_metrics.items():
            if isinstance(value, int) and not isinstance(value, bool):
                metrics[str(key)] = value

    raw_issues = item.get("issues", [])
    raw_fixed = item.get("fixed", [])
    if not isinstance(raw_issues, list) or not isinstance(raw_fixed, list):
        raise ValueError(f"JSON report `{standard}` issues/fixed must be lists.")

    score = item.get("score", 0)
    return ScanResult(
        standard=standard,
        score=score if isinstance(score, int) else 0,
        issues=tuple(_parse_issue(standard, raw) for raw in raw_issues if isinstance(raw, dict)),
        fixed=tuple(_parse_fix(raw) for raw in raw_fixed if isinstance(raw, dict)),
        metrics=MappingProxyType(metrics),
        failed=bool(item.get("failed", False)),
    )


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _line(value: Any) -> int:
    return value if isinstance(value, int) and value > 0 else 1


def _parse_issue(standard: Standard, item: dict[str, Any]) -> Issue:
    return Issue(
        file_path=str(item.get("file", "")),
        line=_line(item.get("line")),
        kind=str(item.get("type", "")),
        severity=str(item.get("severity", "info")).strip().lower(),
        message=str(item.get("message", "")),
        rule=str(item.get("rule", "")),
        standard=standard,
        secret_type=_optional_str(item.get("secretType")),
        package_name=_optional_str(item.get("packageName")),
    )


def _parse_fix(item: dict[str, Any]) -> FixRecord:
    return FixRecord(
        file_path=str(item.get("file", "")),
        line=_line(item.get("line")),
        kind=str(item.get("type", "")),
        rule=str(item.get("rule", "")),
        message=str(item.get("message", "")),
        fix=str(item.get("fix", "")),
    )
