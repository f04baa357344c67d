from __future__ import annotations

import logging
from pathlib import Path

import pytest

from bestpractices.config import PerformanceStandardConfig
from bestpractices.scanner import discover_standard_files
from bestpractices.validators.performance import check_code_patterns, declared_dependencies, scan_performance
from helpers import write_file


def _scan(project: Path, config: PerformanceStandardConfig | None = None):
    files = discover_standard_files(project, "performance")
    return scan_performance(files, config or PerformanceStandardConfig(), project_root=project)


def test_oversized_file_reports_bundle_and_large_file(project: Path) -> None:
    write_file(project, "src/big.js", "x" * 600_000)

    result = _scan(project)

    assert [(i.kind, i.file_path) for i in result.issues] == [
        ("large-file", "src/big.js"),
        ("bundle-size", "package.json"),
    ]
    assert result.issues[0].message == "Large file detected: 586KB (consider splitting or optimizing)"
    assert result.issues[1].message == "Bundle size 586KB exceeds limit of 500KB"
    assert result.metrics["bundle_size"] == 600_000
    assert result.metrics["bundle_limit"] == 512_000
    assert result.metrics["large_files"] == 1
    # 100 - (600000 / 512000 - 1) * 20 - 5, rounded
    assert result.score == 92


def test_bundle_limit_comes_from_config(project: Path) -> None:
    write_file(project, "src/app.js", "const answer = 42;\n")

    result = _scan(project, PerformanceStandardConfig(bundle_size="10B"))

    assert [i.kind for i in result.issues] == ["bundle-size"]
    assert result.metrics["bundle_limit"] == 10


def test_nested_loop_is_reported_at_the_inner_loop(project: Path) -> None:
    write_file(
        project,
        "src/loops.js",
        "for (let i = 0; i < 3; i++) {\n"
        "  for (let j = 0; j < 3; j++) {\n"
        "    work(i, j);\n"
        "  }\n"
        "}\n",
    )

    result = _scan(project)

    nested = [i for i in result.issues if i.kind == "nested-loop"]
    assert len(nested) == 1
    assert nested[0].line == 2
    assert nested[0].severity == "info"
    assert result.metrics["performance_issues"] == 1


def test_single_loop_is_not_reported(project: Path) -> None:
    write_file(project, "src/loop.js", "for (const item of items) {\n  work(item);\n}\n")

    assert _scan(project).issues == ()


@pytest.mark.parametrize(
    ("line", "kind"),
    [
        ("console.log(value);", "console-log"),
        ("const a = document.getElementById('a'), b = document.getElementById('b');", "dom-query"),
        ("rows.forEach(r => r.cells.forEach(c => paint(c)));", "nested-foreach"),
        ("const copy = JSON.parse(JSON.stringify(state));", "inefficient-clone"),
    ],
)
def test_anti_patterns(line: str, kind: str) -> None:
    issues = check_code_patterns("src/app.js", ["const x = 1;", line])

    assert [(i.kind, i.line, i.rule) for i in issues] == [(kind, 2, "performance-optimization")]


def test_unused_dependencies(project: Path) -> None:
    write_file(
        project,
        "package.json",
        '{"dependencies": {"react": "^18.0.0", "lodash": "^4.0.0", "@scope/ui": "1.0.0", "chart.js": "4.0.0"},'
        ' "devDependencies": {"left-pad": "1.0.0"}}',
    )
    write_file(
        project,
        "src/app.js",
        "import React from 'react';\n"
        "import { Button } from '@scope/ui/button';\n"
        "const chart = await import('chart.js');\n",
    )

    result = _scan(project)

    unused = [i for i in result.issues if i.kind == "unused-dependency"]
    assert [i.package_name for i in unused] == ["lodash", "left-pad"]
    assert unused[0].message == "Unused dependency detected: lodash"
    assert result.metrics["unused_dependencies"] == 2
    assert result.score == 96


def test_malformed_package_json_is_skipped(project: Path, caplog: pytest.LogCaptureFixture) -> None:
    write_file(project, "package.json", "{not json")

    with caplog.at_level(logging.WARNING):
        assert declared_dependencies(project) == []
    assert "skipping unused dependency check" in caplog.text


def test_empty_project_scores_100(project: Path) -> None:
    result = _scan(project)

    assert result.score == 100
    assert result.metrics["total_files"] == 0
