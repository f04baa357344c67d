from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType

from bestpractices.config import PerformanceStandardConfig
from bestpractices.engine.scoring import performance_score
from bestpractices.engine.types import Issue, ScanResult
from bestpractices.errors import FileReadSkipped
from bestpractices.rules.antipatterns import (
    ANTI_PATTERNS,
    BUNDLE_SIZE,
    LARGE_FILE,
    LARGE_FILE_BYTES,
    LOOP_RE,
    NESTED_LOOP,
    NESTED_LOOP_MESSAGE,
    PERFORMANCE_RULE,
    UNUSED_DEPENDENCY,
    AntiPattern,
    find_nested_loop,
    imported_packages,
)
from bestpractices.scanner import read_source
from bestpractices.utils import format_kb, safe_relpath

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "package.json"


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        logger.debug("cannot stat %s (%s)", path, exc)
        return 0


def check_sizes(
    files: list[Path],
    *,
    project_root: Path,
    bundle_limit: int,
) -> tuple[list[Issue], int, int]:
    """Return (issues, total bundle bytes, large file count)."""

    issues: list[Issue] = []
    total = 0
    large = 0
    for path in files:
        size = _file_size(path)
        total += size
        if size > LARGE_FILE_BYTES:
            large += 1
            issues.append(
                Issue(
                    file_path=safe_relpath(path, project_root),
                    line=1,
                    kind=LARGE_FILE.kind,
                    severity=LARGE_FILE.default_severity,
                    message=f"Large file detected: {format_kb(size)} (consider splitting or optimizing)",
                    rule=LARGE_FILE.rule,
                    standard="performance",
                )
            )

    if total > bundle_limit:
        issues.append(
            Issue(
                file_path=PACKAGE_MANIFEST,
                line=1,
                kind=BUNDLE_SIZE.kind,
                severity=BUNDLE_SIZE.default_severity,
                message=f"Bundle size {format_kb(total)} exceeds limit of {format_kb(bundle_limit)}",
                rule=BUNDLE_SIZE.rule,
                standard="performance",
            )
        )
    return issues, total, large


def check_code_patterns(
    relative: str,
    lines: list[str],
    anti_patterns: tuple[AntiPattern, ...] = ANTI_PATTERNS,
) -> list[Issue]:
    issues: list[Issue] = []
    for index, line in enumerate(lines):
        for anti_pattern in anti_patterns:
            if anti_pattern.pattern.search(line):
                issues.append(
                    Issue(
                        file_path=relative,
                        line=index + 1,
                        kind=anti_pattern.kind,
                        severity=anti_pattern.severity,
                        message=anti_pattern.message,
                        rule=PERFORMANCE_RULE,
                        standard="performance",
                    )
                )

        if LOOP_RE.search(line):
            nested = find_nested_loop(lines, index)
            if nested is not None:
                issues.append(
                    Issue(
                        file_path=relative,
                        line=nested + 1,
                        kind=NESTED_LOOP.kind,
                        severity=NESTED_LOOP.default_severity,
                        message=NESTED_LOOP_MESSAGE,
                        rule=PERFORMANCE_RULE,
                        standard="performance",
                    )
                )
    return issues


def declared_dependencies(project_root: Path) -> list[str]:
    """
    Names from `dependencies` and `devDependencies` in package.json.

    A missing manifest yields nothing; a malformed one is logged and skipped.
    """

    manifest = project_root / PACKAGE_MANIFEST
    if not manifest.is_file():
        return []
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("cannot read %s (%s); skipping unused dependency check", manifest, exc)
        return []
    if not isinstance(data, dict):
        logger.warning("%s is not a JSON object; skipping unused dependency check", manifest)
        return []

    names: list[str] = []
    for section in ("dependencies", "devDependencies"):
        table = data.get(section)
        if not isinstance(table, dict):
            continue
        for name in table:
            if name not in names:
                names.append(name)
    return names


def check_unused_dependencies(declared: list[str], used: set[str]) -> list[Issue]:
    return [
        Issue(
            file_path=PACKAGE_MANIFEST,
            line=1,
            kind=UNUSED_DEPENDENCY.kind,
            severity=UNUSED_DEPENDENCY.default_severity,
            message=f"Unused dependency detected: {name}",
            rule=UNUSED_DEPENDENCY.rule,
            standard="performance",
            package_name=name,
        )
        for name in declared
        if name not in used
    ]


def scan_performance(
    files: Iterable[Path],
    config: PerformanceStandardConfig,
    *,
    project_root: Path,
) -> ScanResult:
    file_list = list(files)
    bundle_limit = config.max_bundle_bytes

    size_issues, bundle_size, large_files = check_sizes(file_list, project_root=project_root, bundle_limit=bundle_limit)

    pattern_issues: list[Issue] = []
    used: set[str] = set()
    for path in file_list:
        try:
            text = read_source(path)
        except FileReadSkipped as exc:
            logger.debug("skipping %s", exc)
            continue
        used |= imported_packages(text)
        pattern_issues.extend(check_code_patterns(safe_relpath(path, project_root), text.split("\n")))

    unused_issues = check_unused_dependencies(declared_dependencies(project_root), used)

    metrics = {
        "bundle_size": bundle_size,
        "bundle_limit": bundle_limit,
        "total_files": len(file_list),
        "large_files": large_files,
        "unused_dependencies": len(unused_issues),
        "performance_issues": len(pattern_issues),
    }
    return ScanResult(
        standard="performance",
        score=performance_score(metrics),
        issues=(*size_issues, *unused_issues, *pattern_issues),
        metrics=MappingProxyType(metrics),
    )
