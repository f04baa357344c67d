from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import yaml

CONFIG_FILENAME: Final[str] = ".bp-config.yml"


def _config_snippet(*, project_name: str) -> str:
    return f"""\
version: "1.0.0"
project:
  name: {json.dumps(project_name)}

standards:
  code:
    enforceComments: true
    maxFunctionLines: 50
    testCoverage: 80

  security:
    scanSecrets: true
    vulnerabilityScan: true
    allowedSecretPatterns: []

  performance:
    bundleSize: "500KB"
    loadTime: "2s"

policy:
  passThreshold: 80
  blockingSeverities: [critical, error]

audit:
  command: [npm, audit, --json, --audit-level=moderate]
  timeout: 30

ignore:
  paths: []
"""


_GITHUB_WORKFLOW_YML: Final[str] = """\
name: Best Practices
on:
  push:
    branches: [main]
  pull_request:

permissions:
  contents: read

jobs:
  validate:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - uses: actions/setup-node@v4
        with:
          node-version: 20
      - uses: actions/setup-python@v5
        with:
          python-version: "3.12"
      - run: npm ci
      - run: pip install bestpractices-sdk
      - run: bp validate . --report --output validation-report.json
      - if: always()
        uses: actions/upload-artifact@v4
        with:
          name: validation-report
          path: validation-report.json
"""

_GITLAB_CI_YML: Final[str] = """\
stages:
  - validate

best-practices:
  stage: validate
  image: python:3.12
  script:
    - pip install bestpractices-sdk
    - bp validate . --report --output validation-report.json
  artifacts:
    when: always
    paths:
      - validation-report.json
"""

_PRE_COMMIT_CONFIG_YAML: Final[str] = """\
repos:
  - repo: local
    hooks:
      - id: bestpractices
        name: Best Practices
        entry: bp validate --standards code,security
        language: system
        pass_filenames: false
"""

_PRE_COMMIT_INSERTION_BLOCK: Final[str] = """\
  - repo: local
    hooks:
      - id: bestpractices
        name: Best Practices
        entry: bp validate --standards code,security
        language: system
        pass_filenames: false
"""

SUPPORTED_CI: Final[tuple[str, ...]] = ("github", "gitlab")


class InitError(RuntimeError):
    """Raised when `bp init` cannot proceed safely."""


@dataclass(frozen=True, slots=True)
class InitOptions:
    project_dir: Path
    ci: str | None = None
    pre_commit: bool = False


@dataclass(frozen=True, slots=True)
class InitResult:
    changed_files: tuple[Path, ...] = ()
    messages: tuple[str, ...] = ()


def init_project(options: InitOptions) -> InitResult:
    """
    Write a starter `.bp-config.yml` and optional CI / pre-commit integration.

    Idempotency rules:
    - Never overwrite existing files.
    - If config/hook/workflow already exists, skip that part.
    - If a file exists but cannot be parsed safely, do not modify it.
    """

    project_dir = options.project_dir
    changed_files: list[Path] = []
    messages: list[str] = []

    ci = options.ci.strip().lower() if options.ci is not None else None
    if ci is not None and ci not in SUPPORTED_CI:
        raise InitError(f"Unsupported CI provider: {options.ci!r} (supported: {', '.join(SUPPORTED_CI)}).")

    config_path = project_dir / CONFIG_FILENAME
    if _write_if_missing(config_path, _config_snippet(project_name=project_dir.resolve().name), messages):
        changed_files.append(config_path)

    if ci == "github":
        workflow_path = project_dir / ".github" / "workflows" / "best-practices.yml"
        if _write_if_missing(workflow_path, _GITHUB_WORKFLOW_YML, messages):
            changed_files.append(workflow_path)
    elif ci == "gitlab":
        gitlab_path = project_dir / ".gitlab-ci.yml"
        if _write_if_missing(gitlab_path, _GITLAB_CI_YML, messages):
            changed_files.append(gitlab_path)

    if options.pre_commit:
        precommit_path = project_dir / ".pre-commit-config.yaml"
        if _ensure_pre_commit_config(precommit_path, messages):
            changed_files.append(precommit_path)

    if not changed_files:
        messages.append("No changes needed (already initialized).")

    return InitResult(changed_files=tuple(changed_files), messages=tuple(messages))


def _write_if_missing(path: Path, content: str, messages: list[str]) -> bool:
    if path.exists():
        messages.append(f"Found existing `{path.name}`; leaving unchanged.")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    messages.append(f"Created `{path.name}`.")
    return True


def _ensure_pre_commit_config(precommit_path: Path, messages: list[str]) -> bool:
    if not precommit_path.exists():
        precommit_path.write_text(_PRE_COMMIT_CONFIG_YAML, encoding="utf-8")
        messages.append("Created `.pre-commit-config.yaml` with a local Best Practices hook.")
        return True

    existing = precommit_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(existing)
    except yaml.YAMLError as exc:
        messages.append(f"Skipped `.pre-commit-config.yaml` (invalid YAML: {exc}).")
        return False

    if _precommit_has_hook(data):
        messages.append("Found existing Best Practices hook in `.pre-commit-config.yaml`; leaving unchanged.")
        return False

    updated = _insert_into_precommit_repos(existing)
    if updated is None:
        messages.append("Skipped `.pre-commit-config.yaml` (could not safely insert into `repos:`).")
        return False

    precommit_path.write_text(updated, encoding="utf-8")
    messages.append("Patched `.pre-commit-config.yaml` to add a local Best Practices hook.")
    return True


def _precommit_has_hook(data: object) -> bool:
    if not isinstance(data, dict):
        return False
    repos = data.get("repos")
    if not isinstance(repos, list):
        return False
    for repo in repos:
        hooks = repo.get("hooks") if isinstance(repo, dict) else None
        if not isinstance(hooks, list):
            continue
        if any(isinstance(hook, dict) and hook.get("id") == "bestpractices" for hook in hooks):
            return True
    return False


def _insert_into_precommit_repos(precommit_text: str) -> str | None:
    """
    Insert the hook block as the last item under the top-level `repos:` key.

    Line-based so user formatting and comments survive. Returns None when
    there is no top-level `repos:` key.
    """

    lines = precommit_text.splitlines(keepends=True)

    repos_line_index = None
    for i, line in enumerate(lines):
        if line.rstrip() == "repos:":
            repos_line_index = i
            break

    if repos_line_index is None:
        return None

    # The block ends at the first non-comment line with zero indent.
    insertion_index = len(lines)
    item_indent: str | None = None
    for j in range(repos_line_index + 1, len(lines)):
        stripped = lines[j].strip()
        if stripped == "" or stripped.startswith("#"):
            continue
        if item_indent is None and stripped.startswith("-"):
            item_indent = lines[j][: len(lines[j]) - len(lines[j].lstrip())]
        if not lines[j].startswith((" ", "-")):
            insertion_index = j
            break

    if insertion_index > 0 and not lines[insertion_index - 1].endswith("\n"):
        lines[insertion_index - 1] += "\n"
    block = _PRE_COMMIT_INSERTION_BLOCK
    if item_indent is not None and item_indent != "  ":
        block = "".join(item_indent + line[2:] for line in block.splitlines(keepends=True))
    lines.insert(insertion_index, block)
    return "".join(lines)
