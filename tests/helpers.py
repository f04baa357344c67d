from __future__ import annotations

from pathlib import Path
from typing import Any

from bestpractices.dependency_audit import AuditResult

UNCOMMENTED_FUNCTION = """\
function add(a, b) {
  const sum = a + b;
  const doubled = sum * 2;
  return doubled;
}
"""

COMMENTED_FUNCTION = """\
// Multiplies two numbers.
function multiply(a, b) {
  const product = a * b;
  const halved = product / 2;
  return halved;
}
"""


def write_file(root: Path, relpath: str, content: str | bytes) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


class StubAuditRunner:
    """Audit runner returning a canned payload and recording calls."""

    def __init__(self, payload: dict[str, Any] | None = None, *, exit_code: int = 0, error: Exception | None = None) -> None:
        self.payload = payload if payload is not None else {"vulnerabilities": {}}
        self.exit_code = exit_code
        self.error = error
        self.calls: list[Path] = []

    def run(self, project_root: Path) -> AuditResult:
        self.calls.append(project_root)
        if self.error is not None:
            raise self.error
        return AuditResult(payload=self.payload, exit_code=self.exit_code)
