from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from bestpractices.config import (
    DEFAULT_AUDIT_COMMAND,
    BestPracticesConfig,
    ConfigError,
    load_config,
    parse_config_table,
    parse_duration,
    parse_size,
    path_is_ignored,
)


def test_load_config_defaults_when_no_config(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    assert config == BestPracticesConfig()
    assert config.code.enforce_comments is True
    assert config.code.max_function_lines == 50
    assert config.performance.max_bundle_bytes == 500 * 1024
    assert config.policy.pass_threshold == 80
    assert config.policy.blocking_severities == ("critical", "error")
    assert config.audit.command == DEFAULT_AUDIT_COMMAND
    assert config.source is None


def test_load_config_reads_bp_config_yml(tmp_path: Path) -> None:
    (tmp_path / ".bp-config.yml").write_text(
        """
version: "1.0.0"
standards:
  code:
    enforceComments: false
    maxFunctionLines: 20
  security:
    vulnerabilityScan: false
    allowedSecretPatterns: [internal-fake]
  performance:
    bundleSize: "1MB"
    loadTime: "500ms"
policy:
  passThreshold: 70
  blockingSeverities: [Critical]
ignore:
  paths: ["vendor/"]
""".lstrip(),
        encoding="utf-8",
    )

    config = load_config(tmp_path)
    assert config.source == ".bp-config.yml"
    assert config.code.enforce_comments is False
    assert config.code.max_function_lines == 20
    assert config.security.vulnerability_scan is False
    assert config.security.allowed_secret_patterns == ("internal-fake",)
    assert config.performance.max_bundle_bytes == 1024 * 1024
    assert config.performance.max_load_time_ms == 500
    assert config.policy.pass_threshold == 70
    assert config.policy.blocking_severities == ("critical",)
    assert config.ignore.paths == ("vendor/",)


def test_load_config_reads_package_json_key(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "demo", "bestPractices": {"code": {"maxFunctionLines": 10}}}),
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.source == "package.json"
    assert config.code.max_function_lines == 10


def test_package_json_without_key_falls_through_to_pyproject(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text('{"name": "demo"}', encoding="utf-8")
    (tmp_path / "pyproject.toml").write_text(
        """
[tool.bestpractices.audit]
command = "npm audit --json"
timeout = 5

[tool.bestpractices.standards.code]
max-function-lines = 12
""".lstrip(),
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.source == "pyproject.toml"
    assert config.code.max_function_lines == 12
    assert config.audit.command == ("npm", "audit", "--json")
    assert config.audit.timeout_seconds == 5.0


def test_malformed_config_logs_warning_and_uses_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / ".bp-config.yml").write_text("standards: [unclosed\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="bestpractices.config"):
        config = load_config(tmp_path)
    assert config == BestPracticesConfig()
    assert "config parse warning" in caplog.text


def test_invalid_value_logs_warning_and_uses_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / ".bp-config.json").write_text('{"code": {"maxFunctionLines": "many"}}', encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="bestpractices.config"):
        config = load_config(tmp_path)
    assert config.code.max_function_lines == 50
    assert "maxFunctionLines" in caplog.text


def test_parse_config_table_rejects_bad_types() -> None:
    with pytest.raises(ConfigError):
        parse_config_table({"standards": ["code"]})
    with pytest.raises(ConfigError):
        parse_config_table({"policy": {"passThreshold": 101}})
    with pytest.raises(ConfigError):
        parse_config_table({"security": {"scanSecrets": "yes"}})
    with pytest.raises(ConfigError):
        parse_config_table({"audit": {"timeout": 0}})


def test_parse_config_table_accepts_key_spellings() -> None:
    config = parse_config_table(
        {
            "code": {"enforce_comments": False, "max-function-lines": 7},
            "performance": {"bundle_size": 2048},
        }
    )
    assert config.code.enforce_comments is False
    assert config.code.max_function_lines == 7
    assert config.performance.max_bundle_bytes == 2048


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("500KB", 512_000),
        ("1.5 MB", 1_572_864),
        ("10b", 10),
        ("2GB", 2 * 1024**3),
        ("1TB", 1024**4),
        ("lots", 500_000),
        ("", 500_000),
        (None, 500_000),
    ],
)
def test_parse_size(raw: str | None, expected: int) -> None:
    assert parse_size(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("2s", 2000), ("500ms", 500), ("1m", 60_000), ("1.5s", 1500), ("soon", 2000), (None, 2000)],
)
def test_parse_duration(raw: str | None, expected: int) -> None:
    assert parse_duration(raw) == expected


def test_path_is_ignored_patterns() -> None:
    assert path_is_ignored("vendor/lib.js", ["vendor/"])
    assert path_is_ignored("src/app.generated.js", ["*.generated.*"])
    assert path_is_ignored("src/legacy/old.js", ["src/*/old.js"])
    assert not path_is_ignored("src/app.js", ["vendor/", "*.min.js"])
