from __future__ import annotations

from pathlib import Path

import pytest

from bestpractices.errors import DiscoveryError, FileReadSkipped
from bestpractices.scanner import (
    STANDARD_GLOBS,
    discover_files,
    discover_standard_files,
    glob_matches,
    read_lines,
    read_source,
    resolve_worker_count,
    worker_count_from_env,
)
from helpers import write_file


def _rel(root: Path, paths: list[Path]) -> list[str]:
    return [p.relative_to(root).as_posix() for p in paths]


def test_discover_code_files_sorted_and_pruned(project: Path) -> None:
    write_file(project, "src/b.ts", "")
    write_file(project, "src/a.js", "")
    write_file(project, "index.jsx", "")
    write_file(project, "README.md", "")
    write_file(project, "node_modules/dep/index.js", "")
    write_file(project, "dist/bundle.js", "")
    write_file(project, "src/vendor.min.js", "")

    files = discover_files(project, STANDARD_GLOBS["code"])
    assert _rel(project, files) == ["index.jsx", "src/a.js", "src/b.ts"]


def test_discover_security_files_skip_lockfiles(project: Path) -> None:
    write_file(project, "package.json", "{}")
    write_file(project, "package-lock.json", "{}")
    write_file(project, "yarn.lock", "")
    write_file(project, ".env.local", "")
    write_file(project, ".eslintrc", "")
    write_file(project, "config/app.yml", "")
    write_file(project, "webpack.config.js", "")

    files = discover_standard_files(project, "security")
    assert _rel(project, files) == [
        ".env.local",
        ".eslintrc",
        "config/app.yml",
        "package.json",
        "webpack.config.js",
    ]


def test_discover_performance_includes_styles(project: Path) -> None:
    write_file(project, "styles/site.css", "")
    write_file(project, "styles/site.min.css", "")
    write_file(project, "styles/theme.scss", "")
    write_file(project, "coverage/report.css", "")

    files = discover_standard_files(project, "performance")
    assert _rel(project, files) == ["styles/site.css", "styles/theme.scss"]


def test_discover_applies_ignore_paths_and_excludes(project: Path) -> None:
    write_file(project, "src/app.js", "")
    write_file(project, "vendor/lib.js", "")
    write_file(project, "src/app.generated.js", "")

    files = discover_standard_files(project, "code", ignore_paths=("vendor/", "*.generated.*"))
    assert _rel(project, files) == ["src/app.js"]

    files = discover_files(project, ["**/*.js"], ["src/**"])
    assert _rel(project, files) == ["vendor/lib.js"]


def test_discover_is_deterministic(project: Path) -> None:
    for name in ("c.js", "a.js", "b/d.js"):
        write_file(project, name, "")
    first = discover_files(project, STANDARD_GLOBS["code"])
    second = discover_files(project, STANDARD_GLOBS["code"])
    assert first == second
    assert len(set(first)) == len(first)


def test_discover_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(DiscoveryError):
        discover_files(tmp_path / "missing", STANDARD_GLOBS["code"])

    file_root = write_file(tmp_path, "file.js", "")
    with pytest.raises(DiscoveryError):
        discover_files(file_root, STANDARD_GLOBS["code"])


def test_glob_matches_root_level_double_star() -> None:
    assert glob_matches("a.js", "**/*.js")
    assert glob_matches("src/deep/a.js", "**/*.js")
    assert glob_matches(".eslintrc", "**/.*rc")
    assert not glob_matches("a.JS", "**/*.js")


def test_read_source_rejects_non_utf8(tmp_path: Path) -> None:
    path = write_file(tmp_path, "latin1.js", b"const s = '\xe9';\n")
    with pytest.raises(FileReadSkipped):
        read_source(path)

    with pytest.raises(FileReadSkipped):
        read_source(tmp_path / "missing.js")


def test_read_lines_splits_on_newlines(tmp_path: Path) -> None:
    path = write_file(tmp_path, "a.js", "one\ntwo\n")
    assert read_lines(path) == ["one", "two", ""]


def test_resolve_worker_count_branches() -> None:
    assert resolve_worker_count("auto", default=3, max_workers=10) == 3
    assert resolve_worker_count("", default=3, max_workers=10) == 3
    assert resolve_worker_count("not-an-int", default=3, max_workers=10) == 3
    assert resolve_worker_count("0", default=3, max_workers=10) == 3
    assert resolve_worker_count("4", default=3, max_workers=10) == 4
    assert resolve_worker_count("99", default=3, max_workers=10) == 10


def test_worker_count_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BP_WORKERS", "2")
    assert worker_count_from_env(default=3) == 2
    monkeypatch.setenv("BP_WORKERS", "1000")
    assert worker_count_from_env(default=3) == 32
