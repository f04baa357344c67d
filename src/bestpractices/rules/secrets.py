from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePosixPath

from bestpractices.rules.base import CheckMeta


@dataclass(frozen=True, slots=True)
class SecretSignature:
    name: str
    pattern: re.Pattern[str]
    description: str


# Ordered: when several signatures match one line, the first one is reported.
SECRET_SIGNATURES: tuple[SecretSignature, ...] = (
    SecretSignature("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}"), "AWS Access Key ID"),
    SecretSignature("AWS Secret Key", re.compile(r"[A-Za-z0-9/+=]{40}"), "AWS Secret Access Key"),
    SecretSignature(
        "Password",
        re.compile(r"""(?:password|pwd|pass)\s*[:=]\s*["'][^"']{6,}["']""", re.IGNORECASE),
        "Hardcoded password",
    ),
    SecretSignature("Private Key", re.compile(r"-----BEGIN (RSA )?PRIVATE KEY-----"), "Private key detected"),
    SecretSignature(
        "JWT Token",
        re.compile(r"eyJ[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.?[A-Za-z0-9\-_.+/=]*"),
        "JSON Web Token",
    ),
    SecretSignature(
        "Database URL",
        re.compile(r"""(mongodb|mysql|postgresql)://[^\s"']+""", re.IGNORECASE),
        "Database connection string",
    ),
    SecretSignature(
        "API Key",
        re.compile(r"""(?:api[_-]?key|apikey)\s*[:=]\s*["'][^"']{16,}["']""", re.IGNORECASE),
        "API key detected",
    ),
    SecretSignature(
        "Generic Secret",
        re.compile(r"""(?:secret|token)\s*[:=]\s*["'][A-Za-z0-9+/=]{20,}["']""", re.IGNORECASE),
        "Generic secret or token",
    ),
)

DEFAULT_ALLOWED_TOKENS: tuple[str, ...] = (
    "example",
    "placeholder",
    "dummy",
    "test-key",
    "sample",
    "your-api-key-here",
    "xxxxx",
    "aaaaa",
    "changeme",
    "replace-me",
)

TEST_FILE_MARKERS: tuple[str, ...] = (".test.", ".spec.")
TEST_DIRECTORIES = frozenset({"test", "tests", "__tests__"})
FIXTURES_DIRECTORY = "fixtures"

HARDCODED_SECRET = CheckMeta(
    rule="no-hardcoded-secrets",
    kind="hardcoded-secret",
    standard="security",
    default_severity="high",
    description="Credentials, keys and tokens must not be committed in source or config files.",
)
VULNERABLE_DEPENDENCY = CheckMeta(
    rule="no-vulnerable-dependencies",
    kind="vulnerability",
    standard="security",
    default_severity="moderate",
    description="Dependencies reported by the package audit (npm audit) as vulnerable.",
)

SECURITY_CHECKS: tuple[CheckMeta, ...] = (HARDCODED_SECRET, VULNERABLE_DEPENDENCY)


def is_test_file(relative_posix: str) -> bool:
    """
    Classify a project-relative path as a test file.

    Files named `*.test.*`/`*.spec.*` always are. Otherwise a `test`, `tests`
    or `__tests__` directory segment decides, except under `fixtures/` where
    only the segments after `fixtures/<project>/` are considered.
    """

    path = PurePosixPath(relative_posix)
    if any(marker in path.name for marker in TEST_FILE_MARKERS):
        return True

    parts = path.parts
    if FIXTURES_DIRECTORY in parts:
        index = parts.index(FIXTURES_DIRECTORY)
        if index < len(parts) - 1:
            return any(part in TEST_DIRECTORIES for part in parts[index + 2 :])

    return any(part in TEST_DIRECTORIES for part in parts)


def is_allowed_secret(line: str, extra_tokens: Iterable[str] = ()) -> bool:
    lowered = line.strip().lower()
    if "//" in lowered and ("example" in lowered or "placeholder" in lowered):
        return True
    for token in (*DEFAULT_ALLOWED_TOKENS, *extra_tokens):
        if token and token.lower() in lowered:
            return True
    return False


def first_secret_match(
    line: str,
    signatures: tuple[SecretSignature, ...] = SECRET_SIGNATURES,
) -> tuple[SecretSignature, str] | None:
    for signature in signatures:
        match = signature.pattern.search(line)
        if match is not None:
            return signature, match.group(0)
    return None
