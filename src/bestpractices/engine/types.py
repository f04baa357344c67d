from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Literal

Standard = Literal["code", "security", "performance"]

# Severities are an open vocabulary: dependency audits report their own labels
# (e.g. "moderate") and those are kept verbatim.
Severity = str

STANDARDS: tuple[Standard, ...] = ("code", "security", "performance")

# Presentation order for grouping; unknown severities sort last.
SEVERITY_ORDER: tuple[str, ...] = ("critical", "error", "high", "moderate", "medium", "warning", "low", "info")


def severity_rank(severity: str) -> int:
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        return len(SEVERITY_ORDER)


@dataclass(frozen=True, slots=True)
class Issue:
    file_path: str
    line: int  # 1-based
    kind: str
    severity: Severity
    message: str
    rule: str
    standard: Standard
    secret_type: str | None = None
    package_name: str | None = None


@dataclass(frozen=True, slots=True)
class FixRecord:
    file_path: str
    line: int  # 1-based, before the fix was applied
    kind: str
    rule: str
    message: str
    fix: str


@dataclass(frozen=True, slots=True)
class ScanResult:
    standard: Standard
    score: int
    issues: tuple[Issue, ...] = ()
    fixed: tuple[FixRecord, ...] = ()
    metrics: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    failed: bool = False


@dataclass(frozen=True, slots=True)
class ValidationReport:
    project_root: Path
    standards: tuple[Standard, ...]
    overall_score: int
    passed: bool
    threshold: int
    per_standard: Mapping[Standard, ScanResult]
    issues: tuple[Issue, ...]
    fixed: tuple[FixRecord, ...] = ()

    @property
    def scores(self) -> dict[Standard, int]:
        return {name: self.per_standard[name].score for name in self.standards}
