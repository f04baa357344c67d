from __future__ import annotations

import re
from dataclasses import dataclass

from bestpractices.rules.base import CheckMeta

LARGE_FILE_BYTES = 100_000
NESTED_LOOP_LOOKAHEAD = 10
PERFORMANCE_RULE = "performance-optimization"


@dataclass(frozen=True, slots=True)
class AntiPattern:
    kind: str
    pattern: re.Pattern[str]
    severity: str
    message: str


ANTI_PATTERNS: tuple[AntiPattern, ...] = (
    AntiPattern(
        "console-log",
        re.compile(r"console\.log\("),
        "warning",
        "console.log() statements can impact performance in production",
    ),
    AntiPattern(
        "dom-query",
        re.compile(r"document\.getElementById\(.+\).*\.getElementById"),
        "warning",
        "Multiple DOM queries should be cached",
    ),
    AntiPattern(
        "nested-foreach",
        re.compile(r"\.forEach\(.+\.forEach"),
        "info",
        "Nested forEach can be performance-intensive",
    ),
    AntiPattern(
        "inefficient-clone",
        re.compile(r"JSON\.parse\(JSON\.stringify\("),
        "warning",
        "Deep cloning with JSON is inefficient for large objects",
    ),
)

LOOP_RE = re.compile(r"\bfor\s*\(")
NESTED_LOOP_MESSAGE = "Nested loops can cause performance issues with large datasets"

REQUIRE_RE = re.compile(r"""require\(\s*['"`]([^'"`]+)['"`]\s*\)""")
IMPORT_FROM_RE = re.compile(r"""\bimport\b[^;'"`]*?\bfrom\s+['"`]([^'"`]+)['"`]""")
SIDE_EFFECT_IMPORT_RE = re.compile(r"""\bimport\s+['"`]([^'"`]+)['"`]""")
DYNAMIC_IMPORT_RE = re.compile(r"""\bimport\(\s*['"`]([^'"`]+)['"`]\s*\)""")
IMPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    REQUIRE_RE,
    IMPORT_FROM_RE,
    SIDE_EFFECT_IMPORT_RE,
    DYNAMIC_IMPORT_RE,
)

LARGE_FILE = CheckMeta(
    rule="max-file-size",
    kind="large-file",
    standard="performance",
    default_severity="warning",
    description=f"Individual source or style files above {LARGE_FILE_BYTES} bytes.",
)
BUNDLE_SIZE = CheckMeta(
    rule="max-bundle-size",
    kind="bundle-size",
    standard="performance",
    default_severity="high",
    description="Total size of source and style files above the bundleSize limit.",
)
UNUSED_DEPENDENCY = CheckMeta(
    rule="no-unused-dependencies",
    kind="unused-dependency",
    standard="performance",
    default_severity="warning",
    description="Packages declared in package.json that no file imports or requires.",
)
NESTED_LOOP = CheckMeta(
    rule=PERFORMANCE_RULE,
    kind="nested-loop",
    standard="performance",
    default_severity="info",
    description=NESTED_LOOP_MESSAGE,
)

PERFORMANCE_CHECKS: tuple[CheckMeta, ...] = (
    LARGE_FILE,
    BUNDLE_SIZE,
    UNUSED_DEPENDENCY,
    *(
        CheckMeta(
            rule=PERFORMANCE_RULE,
            kind=anti_pattern.kind,
            standard="performance",
            default_severity=anti_pattern.severity,
            description=anti_pattern.message,
        )
        for anti_pattern in ANTI_PATTERNS
    ),
    NESTED_LOOP,
)


def find_nested_loop(lines: list[str], start: int) -> int | None:
    """
    Return the index of the first loop nested inside the loop opened at `start`.

    Braces are counted from `start` over at most NESTED_LOOP_LOOKAHEAD lines;
    the scan gives up once the outer loop's braces balance.
    """

    depth = 0
    opened = False
    for index in range(start, min(len(lines), start + NESTED_LOOP_LOOKAHEAD)):
        line = lines[index]
        for char in line:
            if char == "{":
                depth += 1
                opened = True
            elif char == "}":
                depth -= 1
                if opened and depth == 0:
                    return None
        if index > start and opened and depth > 0 and LOOP_RE.search(line):
            return index
    return None


def package_root_name(specifier: str) -> str | None:
    """
    Map an import specifier to the package name declared in package.json.

    Relative and absolute paths yield None; `@scope/pkg/sub` becomes
    `@scope/pkg` and `pkg/sub` becomes `pkg`.
    """

    if not specifier or specifier.startswith((".", "/")):
        return None
    parts = specifier.split("/")
    if parts[0].startswith("@"):
        if len(parts) < 2:
            return parts[0]
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def imported_packages(text: str) -> set[str]:
    used: set[str] = set()
    for pattern in IMPORT_PATTERNS:
        for match in pattern.finditer(text):
            name = package_root_name(match.group(1))
            if name is not None:
                used.add(name)
    return used
