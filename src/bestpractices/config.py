from __future__ import annotations

import fnmatch
import json
import logging
import re
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a Best Practices configuration value is invalid."""


DEFAULT_MAX_FUNCTION_LINES = 50
DEFAULT_TEST_COVERAGE = 80
DEFAULT_BUNDLE_SIZE = "500KB"
DEFAULT_LOAD_TIME = "2s"
DEFAULT_BUNDLE_BYTES = 500_000
DEFAULT_LOAD_TIME_MS = 2000
DEFAULT_PASS_THRESHOLD = 80
DEFAULT_BLOCKING_SEVERITIES: tuple[str, ...] = ("critical", "error")
DEFAULT_AUDIT_COMMAND: tuple[str, ...] = ("npm", "audit", "--json", "--audit-level=moderate")
DEFAULT_AUDIT_TIMEOUT = 30.0

# Searched in order; the first file that exists wins.
CONFIG_FILENAMES: tuple[str, ...] = (
    ".bp-config.yml",
    ".bp-config.yaml",
    ".bp-config.json",
    "package.json",
    "pyproject.toml",
)

_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}
_TIME_UNITS = {"ms": 1, "s": 1000, "m": 60_000}
_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGT]?B)$", re.IGNORECASE)
_TIME_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(ms|s|m)$", re.IGNORECASE)


def parse_size(value: str | int | None) -> int:
    """
    Parse a size such as "500KB" or "1.5 MB" into bytes (1024-based units).

    Unparsable input falls back to 500 000 bytes.
    """

    if isinstance(value, bool):
        return DEFAULT_BUNDLE_BYTES
    if isinstance(value, int):
        return value if value > 0 else DEFAULT_BUNDLE_BYTES
    if not isinstance(value, str):
        return DEFAULT_BUNDLE_BYTES
    match = _SIZE_RE.match(value.strip())
    if match is None:
        return DEFAULT_BUNDLE_BYTES
    return int(round(float(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]))


def parse_duration(value: str | int | None) -> int:
    """Parse a duration such as "2s" or "500ms" into milliseconds (fallback: 2000)."""

    if isinstance(value, bool):
        return DEFAULT_LOAD_TIME_MS
    if isinstance(value, int):
        return value if value > 0 else DEFAULT_LOAD_TIME_MS
    if not isinstance(value, str):
        return DEFAULT_LOAD_TIME_MS
    match = _TIME_RE.match(value.strip())
    if match is None:
        return DEFAULT_LOAD_TIME_MS
    return int(round(float(match.group(1)) * _TIME_UNITS[match.group(2).lower()]))


@dataclass(frozen=True, slots=True)
class CodeStandardConfig:
    enforce_comments: bool = True
    max_function_lines: int = DEFAULT_MAX_FUNCTION_LINES
    # Informational only; coverage is not measured by the scanners.
    test_coverage: int = DEFAULT_TEST_COVERAGE


@dataclass(frozen=True, slots=True)
class SecurityStandardConfig:
    scan_secrets: bool = True
    vulnerability_scan: bool = True
    allowed_secret_patterns: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PerformanceStandardConfig:
    bundle_size: str = DEFAULT_BUNDLE_SIZE
    load_time: str = DEFAULT_LOAD_TIME

    @property
    def max_bundle_bytes(self) -> int:
        return parse_size(self.bundle_size)

    @property
    def max_load_time_ms(self) -> int:
        return parse_duration(self.load_time)


@dataclass(frozen=True, slots=True)
class PolicyConfig:
    pass_threshold: int = DEFAULT_PASS_THRESHOLD
    blocking_severities: tuple[str, ...] = DEFAULT_BLOCKING_SEVERITIES


@dataclass(frozen=True, slots=True)
class AuditConfig:
    command: tuple[str, ...] = DEFAULT_AUDIT_COMMAND
    timeout_seconds: float = DEFAULT_AUDIT_TIMEOUT


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BestPracticesConfig:
    code: CodeStandardConfig = field(default_factory=CodeStandardConfig)
    security: SecurityStandardConfig = field(default_factory=SecurityStandardConfig)
    performance: PerformanceStandardConfig = field(default_factory=PerformanceStandardConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    source: str | None = None


def load_config(project_dir: Path | str = ".") -> BestPracticesConfig:
    """
    Load configuration for the project in `project_dir`.

    Looks for `.bp-config.yml`, `.bp-config.yaml`, `.bp-config.json`, the
    `bestPractices` (or `bp`) key of `package.json`, then
    `[tool.bestpractices]` in `pyproject.toml`. The first existing file is
    used. A malformed file never aborts a run: the problem is logged and the
    defaults are returned.
    """

    project_dir_path = Path(project_dir)
    for filename in CONFIG_FILENAMES:
        path = project_dir_path / filename
        if not path.is_file():
            continue
        try:
            table = _read_config_table(path)
            if table is None:
                continue
            config = parse_config_table(table)
        except (ConfigError, OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
            logger.warning("config parse warning: ignoring %s (%s); using defaults", path, exc)
            return BestPracticesConfig()
        logger.debug("loaded config from %s", path)
        return replace(config, source=path.name)

    return BestPracticesConfig()


def _read_config_table(path: Path) -> dict[str, Any] | None:
    """Return the raw config mapping from `path`, or None if it holds no config."""

    text = path.read_text(encoding="utf-8")
    name = path.name
    if name.endswith((".yml", ".yaml")):
        data = yaml.safe_load(text)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{name} must contain a mapping at the top level.")
        return data

    if name == "pyproject.toml":
        data = tomllib.loads(text)
        tool_table = data.get("tool", {})
        if not isinstance(tool_table, dict):
            return None
        table = tool_table.get("bestpractices")
        if table is None:
            return None
        if not isinstance(table, dict):
            raise ConfigError("`tool.bestpractices` must be a table.")
        return table

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"{name} must contain a JSON object.")
    if name == "package.json":
        table = data.get("bestPractices", data.get("bp"))
        if table is None:
            return None
        if not isinstance(table, dict):
            raise ConfigError("`bestPractices` in package.json must be an object.")
        return table
    return data


def parse_config_table(table: dict[str, Any]) -> BestPracticesConfig:
    """
    Build a config from an already-decoded mapping.

    Standard sections may live under `standards` (`standards.code...`) or at
    the top level (`code...`). Keys accept camelCase, snake_case and
    kebab-case spellings.
    """

    standards = _get(table, "standards")
    if standards is None:
        standards = table
    elif not isinstance(standards, dict):
        raise ConfigError("`standards` must be a mapping.")

    return BestPracticesConfig(
        code=_parse_code(_section(standards, "code", field_name="standards.code")),
        security=_parse_security(_section(standards, "security", field_name="standards.security")),
        performance=_parse_performance(_section(standards, "performance", field_name="standards.performance")),
        policy=_parse_policy(_section(table, "policy", field_name="policy")),
        audit=_parse_audit(_section(table, "audit", field_name="audit")),
        ignore=_parse_ignore(_section(table, "ignore", field_name="ignore")),
    )


def _key_variants(key: str) -> tuple[str, ...]:
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
    kebab = snake.replace("_", "-")
    return (key, snake, kebab)


def _get(table: dict[str, Any], key: str, default: Any = None) -> Any:
    for variant in _key_variants(key):
        if variant in table:
            return table[variant]
    return default


def _section(table: dict[str, Any], key: str, *, field_name: str) -> dict[str, Any]:
    value = _get(table, key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"`{field_name}` must be a mapping.")
    return value


def _bool(table: dict[str, Any], key: str, default: bool, *, field_name: str) -> bool:
    value = _get(table, key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"`{field_name}.{key}` must be a boolean.")
    return value


def _int(table: dict[str, Any], key: str, default: int, *, field_name: str, minimum: int = 0, maximum: int | None = None) -> int:
    value = _get(table, key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"`{field_name}.{key}` must be an integer.")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise ConfigError(f"`{field_name}.{key}` must be {bounds}.")
    return value


def _str_list(table: dict[str, Any], key: str, *, field_name: str) -> tuple[str, ...] | None:
    value = _get(table, key)
    if value is None:
        return None
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}.{key}` must be a list of strings.")
    return tuple(v.strip() for v in value if v.strip())


def _unit_string(table: dict[str, Any], key: str, default: str, *, field_name: str, unit: str) -> str:
    value = _get(table, key, default)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"`{field_name}.{key}` must be a string such as {default!r}.")
    if isinstance(value, int):
        return f"{value}{unit}"
    return str(value)


def _parse_code(value: dict[str, Any]) -> CodeStandardConfig:
    name = "standards.code"
    return CodeStandardConfig(
        enforce_comments=_bool(value, "enforceComments", True, field_name=name),
        max_function_lines=_int(value, "maxFunctionLines", DEFAULT_MAX_FUNCTION_LINES, field_name=name, minimum=1),
        test_coverage=_int(value, "testCoverage", DEFAULT_TEST_COVERAGE, field_name=name, maximum=100),
    )


def _parse_security(value: dict[str, Any]) -> SecurityStandardConfig:
    name = "standards.security"
    allowed = _str_list(value, "allowedSecretPatterns", field_name=name)
    return SecurityStandardConfig(
        scan_secrets=_bool(value, "scanSecrets", True, field_name=name),
        vulnerability_scan=_bool(value, "vulnerabilityScan", True, field_name=name),
        allowed_secret_patterns=allowed or (),
    )


def _parse_performance(value: dict[str, Any]) -> PerformanceStandardConfig:
    name = "standards.performance"
    return PerformanceStandardConfig(
        bundle_size=_unit_string(value, "bundleSize", DEFAULT_BUNDLE_SIZE, field_name=name, unit="B"),
        load_time=_unit_string(value, "loadTime", DEFAULT_LOAD_TIME, field_name=name, unit="ms"),
    )


def _parse_policy(value: dict[str, Any]) -> PolicyConfig:
    severities = _str_list(value, "blockingSeverities", field_name="policy")
    return PolicyConfig(
        pass_threshold=_int(value, "passThreshold", DEFAULT_PASS_THRESHOLD, field_name="policy", maximum=100),
        blocking_severities=tuple(s.lower() for s in severities) if severities is not None else DEFAULT_BLOCKING_SEVERITIES,
    )


def _parse_audit(value: dict[str, Any]) -> AuditConfig:
    raw_command = _get(value, "command")
    command = DEFAULT_AUDIT_COMMAND
    if raw_command is not None:
        if isinstance(raw_command, str):
            command = tuple(raw_command.split())
        elif isinstance(raw_command, list) and all(isinstance(v, str) for v in raw_command):
            command = tuple(raw_command)
        else:
            raise ConfigError("`audit.command` must be a string or a list of strings.")
        if not command:
            raise ConfigError("`audit.command` must not be empty.")

    timeout = _get(value, "timeout", DEFAULT_AUDIT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("`audit.timeout` must be a positive number of seconds.")

    return AuditConfig(command=command, timeout_seconds=float(timeout))


def _parse_ignore(value: dict[str, Any]) -> IgnoreConfig:
    paths = _str_list(value, "paths", field_name="ignore")
    return IgnoreConfig(paths=paths or ())


def path_is_ignored(relative_posix: str, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if a root-relative POSIX path matches any ignore pattern.

    Supported patterns:
    - Directory prefixes: "vendor/" matches "vendor/...".
    - Globs without slashes: "*.generated.*" matches basenames.
    - Globs with slashes: "src/**/legacy/*.js" matches full relative paths.
    """

    basename = relative_posix.rsplit("/", 1)[-1]
    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if relative_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatchcase(relative_posix, pattern):
                return True
        elif fnmatch.fnmatchcase(basename, pattern) or fnmatch.fnmatchcase(relative_posix, pattern):
            return True

    return False
