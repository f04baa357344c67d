from __future__ import annotations

from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    Return a stable, POSIX-style path for issues and reports.

    Prefer a path relative to `root`; fall back to `path.as_posix()` when the
    path is outside the root or cannot be resolved.
    """

    try:
        resolved_path = path.resolve()
    except OSError:
        resolved_path = path

    try:
        resolved_root = root.resolve()
    except OSError:
        resolved_root = root

    try:
        return resolved_path.relative_to(resolved_root).as_posix()
    except ValueError:
        return path.as_posix()


def format_kb(size_bytes: int) -> str:
    return f"{round(size_bytes / 1024)}KB"


def split_csv(value: str) -> tuple[str, ...]:
    """Split "a, b;c" style CLI values into stripped, lowercased tokens."""

    tokens = []
    for raw in value.replace(";", ",").split(","):
        token = raw.strip().lower()
        if token:
            tokens.append(token)
    return tuple(tokens)
