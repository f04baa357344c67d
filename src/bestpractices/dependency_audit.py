from __future__ import annotations

import json
import logging
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from bestpractices.config import DEFAULT_AUDIT_COMMAND, DEFAULT_AUDIT_TIMEOUT
from bestpractices.errors import ScanFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    payload: Mapping[str, Any]
    exit_code: int = 0


@dataclass(frozen=True, slots=True)
class AuditFinding:
    package_name: str
    severity: str
    title: str


class AuditRunner(Protocol):
    def run(self, project_root: Path) -> AuditResult: ...


@dataclass(frozen=True, slots=True)
class NpmAuditRunner:
    """
    Run `npm audit --json` in the project root.

    npm exits non-zero whenever it finds vulnerabilities, so the exit code is
    recorded and stdout is parsed regardless. Failures surface as ScanFailure
    with an `audit-*` kind.
    """

    command: tuple[str, ...] = DEFAULT_AUDIT_COMMAND
    timeout_seconds: float = DEFAULT_AUDIT_TIMEOUT

    def run(self, project_root: Path) -> AuditResult:
        try:
            completed = subprocess.run(
                list(self.command),
                cwd=str(project_root),
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ScanFailure(f"{self.command[0]} is unavailable", kind="audit-unavailable") from exc
        except subprocess.TimeoutExpired as exc:
            raise ScanFailure(
                f"dependency audit timed out after {self.timeout_seconds:g}s",
                kind="audit-timeout",
            ) from exc

        logger.debug("%s exited with %s", " ".join(self.command), completed.returncode)
        try:
            payload = json.loads(completed.stdout or "")
        except json.JSONDecodeError as exc:
            detail = (completed.stderr or "").strip().splitlines()
            msg = detail[-1] if detail else "output is not JSON"
            raise ScanFailure(f"dependency audit failed: {msg}", kind="audit-failed") from exc
        if not isinstance(payload, dict):
            raise ScanFailure("dependency audit failed: expected a JSON object", kind="audit-failed")

        return AuditResult(payload=payload, exit_code=completed.returncode)


def _first_via_title(via: Any) -> str | None:
    if not isinstance(via, list):
        return None
    for entry in via:
        if isinstance(entry, dict) and isinstance(entry.get("title"), str):
            return entry["title"]
    for entry in via:
        if isinstance(entry, str):
            return f"via {entry}"
    return None


def parse_audit_payload(payload: Mapping[str, Any]) -> list[AuditFinding]:
    """
    Extract one finding per vulnerable package.

    Understands both the npm 7+ `vulnerabilities` map and the npm 6
    `advisories` map. Severities are copied verbatim.
    """

    findings: list[AuditFinding] = []

    vulnerabilities = payload.get("vulnerabilities")
    if isinstance(vulnerabilities, dict):
        for name, data in vulnerabilities.items():
            if not isinstance(data, dict):
                continue
            findings.append(
                AuditFinding(
                    package_name=str(data.get("name") or name),
                    severity=str(data.get("severity") or "moderate"),
                    title=_first_via_title(data.get("via")) or "known vulnerability",
                )
            )
        return findings

    advisories = payload.get("advisories")
    if isinstance(advisories, dict):
        seen: set[str] = set()
        for advisory in advisories.values():
            if not isinstance(advisory, dict):
                continue
            name = str(advisory.get("module_name") or "unknown")
            if name in seen:
                continue
            seen.add(name)
            findings.append(
                AuditFinding(
                    package_name=name,
                    severity=str(advisory.get("severity") or "moderate"),
                    title=str(advisory.get("title") or "known vulnerability"),
                )
            )

    return findings
