from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from bestpractices.config import path_is_ignored
from bestpractices.engine.types import Standard
from bestpractices.errors import DiscoveryError, FileReadSkipped

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    "node_modules",
    "bower_components",
    "jspm_packages",
    ".venv",
    "venv",
    "__pycache__",
    "dist",
    "build",
    "out",
    "coverage",
    ".nyc_output",
    ".git",
    ".hg",
    ".svn",
}

MINIFIED_GLOBS: tuple[str, ...] = ("**/*.min.js", "**/*.min.css")

CODE_GLOBS: tuple[str, ...] = ("**/*.js", "**/*.jsx", "**/*.ts", "**/*.tsx")

STANDARD_GLOBS: dict[Standard, tuple[str, ...]] = {
    "code": CODE_GLOBS,
    "security": (
        *CODE_GLOBS,
        "**/*.json",
        "**/*.yaml",
        "**/*.yml",
        "**/*.env*",
        "**/*.config.js",
        "**/.*rc",
    ),
    "performance": (*CODE_GLOBS, "**/*.css", "**/*.scss", "**/*.sass"),
}

# Lockfiles are machine generated and full of integrity hashes.
STANDARD_EXCLUDES: dict[Standard, tuple[str, ...]] = {
    "code": (),
    "security": (
        "**/package-lock.json",
        "**/npm-shrinkwrap.json",
        "**/yarn.lock",
        "**/pnpm-lock.yaml",
    ),
    "performance": (),
}

BP_WORKERS_ENV = "BP_WORKERS"
DEFAULT_MAX_WORKERS = 32


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = max(1, default if default is not None else (cpu * 2))
    if raw_value is None:
        return min(resolved_default, max_workers)

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return min(resolved_default, max_workers)

    try:
        workers = int(normalized)
    except ValueError:
        return min(resolved_default, max_workers)

    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(BP_WORKERS_ENV), default=default)


def glob_matches(relative_posix: str, pattern: str) -> bool:
    """
    Case-sensitive glob match against a root-relative POSIX path.

    `*` may cross directory separators; a leading `**/` also matches files that
    sit directly under the root.
    """

    if fnmatch.fnmatchcase(relative_posix, pattern):
        return True
    if pattern.startswith("**/"):
        return fnmatch.fnmatchcase(relative_posix, pattern[3:])
    return False


def _matches_any(relative_posix: str, patterns: Iterable[str]) -> bool:
    return any(glob_matches(relative_posix, pattern) for pattern in patterns)


def discover_files(
    root: Path,
    include: Iterable[str],
    exclude: Iterable[str] = (),
    *,
    ignore_paths: Iterable[str] = (),
) -> list[Path]:
    """
    Return every file under `root` matching an include glob and no exclude glob.

    Dependency, build and VCS directories are pruned, minified assets are always
    excluded, and `ignore_paths` takes the `ignore.paths` config syntax. The
    result is sorted and free of duplicates.
    """

    root_path = Path(root)
    if not root_path.is_dir():
        raise DiscoveryError(f"Project root is not a directory: {root_path}")
    if not os.access(root_path, os.R_OK | os.X_OK):
        raise DiscoveryError(f"Project root is not readable: {root_path}")

    include_patterns = tuple(include)
    exclude_patterns = (*MINIFIED_GLOBS, *exclude)
    ignore_patterns = tuple(ignore_paths)

    def _on_walk_error(exc: OSError) -> None:
        logger.debug("skipping unreadable directory %s (%s)", exc.filename, exc.strerror)

    files: set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(root_path, topdown=True, onerror=_on_walk_error):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS]
        base = Path(dirpath)

        for filename in filenames:
            path = base / filename
            relative = path.relative_to(root_path).as_posix()

            if not _matches_any(relative, include_patterns):
                continue
            if _matches_any(relative, exclude_patterns):
                continue
            if ignore_patterns and path_is_ignored(relative, ignore_patterns):
                continue

            files.add(path)

    return sorted(files)


def discover_standard_files(root: Path, standard: Standard, *, ignore_paths: Iterable[str] = ()) -> list[Path]:
    return discover_files(
        root,
        STANDARD_GLOBS[standard],
        STANDARD_EXCLUDES[standard],
        ignore_paths=ignore_paths,
    )


def read_source(path: Path) -> str:
    """Read `path` as strict UTF-8, raising FileReadSkipped when that is impossible."""

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise FileReadSkipped(f"unreadable file: {path} ({exc.strerror or exc})") from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileReadSkipped(f"not valid UTF-8: {path}") from exc


def read_lines(path: Path) -> list[str]:
    return read_source(path).split("\n")
