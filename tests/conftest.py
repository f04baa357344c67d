from __future__ import annotations

from pathlib import Path

import pytest

from helpers import StubAuditRunner


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture()
def stub_runner() -> StubAuditRunner:
    return StubAuditRunner()


@pytest.fixture(autouse=True)
def _clear_worker_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BP_WORKERS", raising=False)
