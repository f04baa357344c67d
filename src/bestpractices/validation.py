from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from types import MappingProxyType

from bestpractices.config import BestPracticesConfig, load_config
from bestpractices.dependency_audit import AuditRunner, NpmAuditRunner
from bestpractices.engine.scoring import is_passing, overall_score
from bestpractices.engine.types import STANDARDS, Issue, ScanResult, Standard, ValidationReport
from bestpractices.errors import DiscoveryError, InvalidStandardError, ScanFailure
from bestpractices.scanner import discover_standard_files, worker_count_from_env
from bestpractices.validators.code import scan_code
from bestpractices.validators.performance import scan_performance
from bestpractices.validators.security import scan_security

logger = logging.getLogger(__name__)

SCAN_FAILURE_RULE = "scan-failure"
SCAN_FAILURE_SEVERITY = "critical"


def normalize_standards(standards: Iterable[str]) -> tuple[Standard, ...]:
    """Validate standard names, dropping duplicates but keeping request order."""

    resolved: list[Standard] = []
    for raw in standards:
        name = raw.strip().lower() if isinstance(raw, str) else None
        if name not in STANDARDS:
            allowed = ", ".join(STANDARDS)
            raise InvalidStandardError(f"Unknown standard {raw!r} (expected one of: {allowed}).")
        if name not in resolved:
            resolved.append(name)  # type: ignore[arg-type]
    if not resolved:
        raise InvalidStandardError("At least one standard must be requested.")
    return tuple(resolved)


def _resolve_root(path: Path | str) -> Path:
    root = Path(path)
    try:
        root = root.resolve()
    except OSError as exc:
        raise DiscoveryError(f"Cannot resolve project root {path}: {exc}") from exc
    if not root.is_dir():
        raise DiscoveryError(f"Project root is not a directory: {root}")
    return root


def _default_runner(config: BestPracticesConfig) -> AuditRunner:
    return NpmAuditRunner(command=config.audit.command, timeout_seconds=config.audit.timeout_seconds)


def _run_standard(
    standard: Standard,
    *,
    root: Path,
    config: BestPracticesConfig,
    auto_fix: bool,
    audit_runner: AuditRunner,
) -> ScanResult:
    files = discover_standard_files(root, standard, ignore_paths=config.ignore.paths)
    logger.debug("%s: %d file(s) discovered", standard, len(files))

    if standard == "code":
        return scan_code(files, config.code, project_root=root, auto_fix=auto_fix)
    if standard == "security":
        return scan_security(files, config.security, project_root=root, runner=audit_runner)
    return scan_performance(files, config.performance, project_root=root)


def failed_result(standard: Standard, exc: BaseException) -> ScanResult:
    kind = exc.kind if isinstance(exc, ScanFailure) else "scan-error"
    issue = Issue(
        file_path=".",
        line=1,
        kind=kind,
        severity=SCAN_FAILURE_SEVERITY,
        message=f"{standard.capitalize()} validation failed: {exc}",
        rule=SCAN_FAILURE_RULE,
        standard=standard,
    )
    return ScanResult(standard=standard, score=0, issues=(issue,), failed=True)


def _contained_run(
    standard: Standard,
    *,
    root: Path,
    config: BestPracticesConfig,
    auto_fix: bool,
    audit_runner: AuditRunner,
) -> ScanResult:
    try:
        return _run_standard(standard, root=root, config=config, auto_fix=auto_fix, audit_runner=audit_runner)
    except DiscoveryError:
        raise
    except Exception as exc:
        logger.warning("%s validation failed: %s", standard, exc)
        logger.debug("%s validation traceback", standard, exc_info=True)
        return failed_result(standard, exc)


def scan_standard(
    path: Path | str,
    standard: str,
    *,
    auto_fix: bool = False,
    config: BestPracticesConfig | None = None,
    audit_runner: AuditRunner | None = None,
) -> ScanResult:
    """Run a single standard with the same failure containment as `validate`."""

    (resolved,) = normalize_standards([standard])
    root = _resolve_root(path)
    effective = config if config is not None else load_config(root)
    runner = audit_runner if audit_runner is not None else _default_runner(effective)
    return _contained_run(resolved, root=root, config=effective, auto_fix=auto_fix, audit_runner=runner)


def validate(
    path: Path | str,
    standards: Iterable[str] = STANDARDS,
    *,
    auto_fix: bool = False,
    config: BestPracticesConfig | None = None,
    audit_runner: AuditRunner | None = None,
    workers: int | None = None,
) -> ValidationReport:
    """
    Validate the project at `path` against the requested standards.

    Standards run concurrently and are reported in request order. A failing
    standard scores 0 with a single critical issue; only an invalid standard
    list (InvalidStandardError) or an unusable root (DiscoveryError) raise.
    """

    requested = normalize_standards(standards)
    root = _resolve_root(path)
    effective = config if config is not None else load_config(root)
    runner = audit_runner if audit_runner is not None else _default_runner(effective)

    max_workers = workers if workers is not None else worker_count_from_env(default=len(requested))
    max_workers = max(1, min(max_workers, len(requested)))

    run = partial(_contained_run, root=root, config=effective, auto_fix=auto_fix, audit_runner=runner)
    completed: dict[Standard, ScanResult] = {}
    pending = list(requested)
    if auto_fix and "code" in pending:
        # The other standards read the files auto-fix rewrites.
        completed["code"] = run("code")
        pending.remove("code")

    if max_workers <= 1 or len(pending) <= 1:
        completed.update((standard, run(standard)) for standard in pending)
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(pending))) as executor:
            completed.update(zip(pending, executor.map(run, pending)))
    results = [completed[standard] for standard in requested]

    per_standard = {result.standard: result for result in results}
    issues = tuple(issue for result in results for issue in result.issues)
    fixed = tuple(record for result in results for record in result.fixed)
    score = overall_score(result.score for result in results)
    passed = is_passing(score, issues, policy=effective.policy)

    logger.debug("overall score %d (%s)", score, "passed" if passed else "failed")
    return ValidationReport(
        project_root=root,
        standards=requested,
        overall_score=score,
        passed=passed,
        threshold=effective.policy.pass_threshold,
        per_standard=MappingProxyType(per_standard),
        issues=issues,
        fixed=fixed,
    )
