from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType

from bestpractices.autofix import PLACEHOLDER_FIX, apply_insertions, plan_comment_insertion, rewrite_file
from bestpractices.config import CodeStandardConfig
from bestpractices.engine.scoring import code_score
from bestpractices.engine.types import FixRecord, Issue, ScanResult
from bestpractices.errors import FileReadSkipped
from bestpractices.rules.functions import (
    FUNCTION_MATCHERS,
    LONG_FUNCTION,
    MISSING_COMMENT,
    FunctionMatcher,
    extract_functions,
    has_adjacent_comment,
)
from bestpractices.scanner import read_lines
from bestpractices.utils import safe_relpath

logger = logging.getLogger(__name__)


def scan_code(
    files: Iterable[Path],
    config: CodeStandardConfig,
    *,
    project_root: Path,
    auto_fix: bool = False,
    matchers: tuple[FunctionMatcher, ...] = FUNCTION_MATCHERS,
) -> ScanResult:
    """
    Check comment coverage and function length for JS/TS sources.

    With `auto_fix`, uncommented functions get a placeholder comment inserted
    above them and are reported in `fixed` instead of `issues`; each touched
    file is rewritten once.
    """

    issues: list[Issue] = []
    fixed: list[FixRecord] = []
    total_files = 0
    total_functions = 0
    commented_functions = 0
    long_functions = 0

    for path in files:
        total_files += 1
        try:
            lines = read_lines(path)
        except FileReadSkipped as exc:
            logger.debug("skipping %s", exc)
            continue

        relative = safe_relpath(path, project_root)
        insertions = []
        for function in extract_functions(lines, matchers):
            total_functions += 1
            line_no = function.start + 1

            if has_adjacent_comment(lines, function.start):
                commented_functions += 1
            elif config.enforce_comments:
                message = f"Function '{function.name}' missing in-line comment"
                if auto_fix:
                    insertions.append(plan_comment_insertion(lines, function))
                    commented_functions += 1
                    fixed.append(
                        FixRecord(
                            file_path=relative,
                            line=line_no,
                            kind=MISSING_COMMENT.kind,
                            rule=MISSING_COMMENT.rule,
                            message=message,
                            fix=PLACEHOLDER_FIX,
                        )
                    )
                else:
                    issues.append(
                        Issue(
                            file_path=relative,
                            line=line_no,
                            kind=MISSING_COMMENT.kind,
                            severity=MISSING_COMMENT.default_severity,
                            message=message,
                            rule=MISSING_COMMENT.rule,
                            standard="code",
                        )
                    )

            if function.line_count > config.max_function_lines:
                long_functions += 1
                issues.append(
                    Issue(
                        file_path=relative,
                        line=line_no,
                        kind=LONG_FUNCTION.kind,
                        severity=LONG_FUNCTION.default_severity,
                        message=(
                            f"Function '{function.name}' has {function.line_count} lines "
                            f"(max: {config.max_function_lines})"
                        ),
                        rule=LONG_FUNCTION.rule,
                        standard="code",
                    )
                )

        if insertions:
            rewrite_file(path, apply_insertions(lines, insertions))

    metrics = {
        "total_files": total_files,
        "total_functions": total_functions,
        "commented_functions": commented_functions,
        "long_functions": long_functions,
        "fixed_functions": len(fixed),
    }
    return ScanResult(
        standard="code",
        score=code_score(metrics),
        issues=tuple(issues),
        fixed=tuple(fixed),
        metrics=MappingProxyType(metrics),
    )
