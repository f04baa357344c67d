from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from bestpractices.config import SecurityStandardConfig
from bestpractices.dependency_audit import AuditRunner, parse_audit_payload
from bestpractices.engine.scoring import security_score
from bestpractices.engine.types import Issue, ScanResult
from bestpractices.errors import FileReadSkipped
from bestpractices.patterns import SECRET_COMMENT_PREFIXES, is_comment_line
from bestpractices.rules.secrets import (
    HARDCODED_SECRET,
    SECRET_SIGNATURES,
    VULNERABLE_DEPENDENCY,
    SecretSignature,
    first_secret_match,
    is_allowed_secret,
    is_test_file,
)
from bestpractices.scanner import read_lines
from bestpractices.utils import safe_relpath

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "package.json"
SECRET_PREVIEW_CHARS = 20


@dataclass(frozen=True, slots=True)
class SecretScan:
    issues: tuple[Issue, ...]
    secrets_found: int
    files_scanned: int


@dataclass(frozen=True, slots=True)
class VulnerabilityScan:
    issues: tuple[Issue, ...]
    vulnerabilities: int


def scan_secrets(
    files: Iterable[Path],
    config: SecurityStandardConfig,
    *,
    project_root: Path,
    signatures: tuple[SecretSignature, ...] = SECRET_SIGNATURES,
) -> SecretScan:
    issues: list[Issue] = []
    files_scanned = 0

    for path in files:
        files_scanned += 1
        relative = safe_relpath(path, project_root)
        if is_test_file(relative):
            continue
        try:
            lines = read_lines(path)
        except FileReadSkipped as exc:
            logger.debug("skipping %s", exc)
            continue

        for line_no, line in enumerate(lines, start=1):
            if is_comment_line(line, SECRET_COMMENT_PREFIXES):
                continue
            found = first_secret_match(line, signatures)
            if found is None:
                continue
            if is_allowed_secret(line, config.allowed_secret_patterns):
                continue

            signature, matched = found
            issues.append(
                Issue(
                    file_path=relative,
                    line=line_no,
                    kind=HARDCODED_SECRET.kind,
                    severity=HARDCODED_SECRET.default_severity,
                    message=f"{signature.description}: {matched[:SECRET_PREVIEW_CHARS]}...",
                    rule=HARDCODED_SECRET.rule,
                    standard="security",
                    secret_type=signature.name,
                )
            )

    return SecretScan(issues=tuple(issues), secrets_found=len(issues), files_scanned=files_scanned)


def scan_vulnerabilities(project_root: Path, runner: AuditRunner) -> VulnerabilityScan:
    """
    Audit declared dependencies through `runner`.

    Projects without a package.json are not audited. Runner failures
    (ScanFailure) propagate to the caller.
    """

    if not (project_root / PACKAGE_MANIFEST).is_file():
        return VulnerabilityScan(issues=(), vulnerabilities=0)

    result = runner.run(project_root)
    if result.exit_code != 0:
        logger.debug("dependency audit exited with %s; parsing its report anyway", result.exit_code)

    issues = tuple(
        Issue(
            file_path=PACKAGE_MANIFEST,
            line=1,
            kind=VULNERABLE_DEPENDENCY.kind,
            severity=finding.severity,
            message=f"Vulnerability in {finding.package_name}: {finding.title}",
            rule=VULNERABLE_DEPENDENCY.rule,
            standard="security",
            package_name=finding.package_name,
        )
        for finding in parse_audit_payload(result.payload)
    )
    return VulnerabilityScan(issues=issues, vulnerabilities=len(issues))


def scan_security(
    files: Iterable[Path],
    config: SecurityStandardConfig,
    *,
    project_root: Path,
    runner: AuditRunner,
) -> ScanResult:
    issues: list[Issue] = []
    metrics = {"files_scanned": 0, "secrets_found": 0, "vulnerabilities": 0}

    if config.scan_secrets:
        secrets = scan_secrets(files, config, project_root=project_root)
        issues.extend(secrets.issues)
        metrics["files_scanned"] = secrets.files_scanned
        metrics["secrets_found"] = secrets.secrets_found

    if config.vulnerability_scan:
        vulnerabilities = scan_vulnerabilities(project_root, runner)
        issues.extend(vulnerabilities.issues)
        metrics["vulnerabilities"] = vulnerabilities.vulnerabilities

    return ScanResult(
        standard="security",
        score=security_score(metrics),
        issues=tuple(issues),
        metrics=MappingProxyType(metrics),
    )
