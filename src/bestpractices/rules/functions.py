from __future__ import annotations

import re
from dataclasses import dataclass

from bestpractices.patterns import CODE_COMMENT_PREFIXES, is_comment_marker, opens_block_comment
from bestpractices.rules.base import CheckMeta


@dataclass(frozen=True, slots=True)
class FunctionMatcher:
    label: str
    pattern: re.Pattern[str]


@dataclass(frozen=True, slots=True)
class FunctionSpan:
    name: str
    start: int  # 0-based line index
    end: int  # 0-based, inclusive

    @property
    def line_count(self) -> int:
        return self.end - self.start + 1


# Tried in order against each trimmed line; the first match wins.
FUNCTION_MATCHERS: tuple[FunctionMatcher, ...] = (
    FunctionMatcher("declaration", re.compile(r"^(?:export\s+)?(?:async\s+)?function\s+(\w+)")),
    FunctionMatcher("arrow", re.compile(r"(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?\([^)]*\)\s*=>")),
    FunctionMatcher("expression", re.compile(r"(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?function")),
    FunctionMatcher("object-method", re.compile(r"(\w+)\s*:\s*(?:async\s+)?function")),
    FunctionMatcher("method", re.compile(r"(?:async\s+)?(\w+)\s*\([^)]*\)\s*\{")),
)

# Block statements look exactly like a bare method signature: `if (x) {`.
CONTROL_KEYWORDS = frozenset({"if", "for", "while", "switch", "catch", "with", "return", "function"})

MISSING_COMMENT = CheckMeta(
    rule="enforce-comments",
    kind="missing-comment",
    standard="code",
    default_severity="warning",
    description="Every function needs a comment on the line(s) directly above it.",
)
LONG_FUNCTION = CheckMeta(
    rule="max-function-lines",
    kind="long-function",
    standard="code",
    default_severity="warning",
    description="Functions longer than maxFunctionLines (brace-counted) are flagged.",
)

CODE_CHECKS: tuple[CheckMeta, ...] = (MISSING_COMMENT, LONG_FUNCTION)


def match_function_name(
    line: str,
    matchers: tuple[FunctionMatcher, ...] = FUNCTION_MATCHERS,
) -> str | None:
    stripped = line.strip()
    if not stripped or stripped.startswith(CODE_COMMENT_PREFIXES):
        return None

    for matcher in matchers:
        match = matcher.pattern.search(stripped)
        if match is None:
            continue
        name = match.group(1)
        if name in CONTROL_KEYWORDS:
            return None
        return name
    return None


def find_function_end(lines: list[str], start: int) -> int:
    """
    Index of the line where the braces opened at or after `start` balance out.

    Braces inside strings and comments are counted too. When the braces never
    balance the function runs to the last line.
    """

    depth = 0
    opened = False
    for index in range(start, len(lines)):
        for char in lines[index]:
            if char == "{":
                depth += 1
                opened = True
            elif char == "}":
                depth -= 1
                if opened and depth == 0:
                    return index
    return len(lines) - 1


def has_adjacent_comment(lines: list[str], start: int) -> bool:
    if start > 0 and is_comment_marker(lines[start - 1]):
        return True
    return start > 1 and opens_block_comment(lines[start - 2])


def extract_functions(
    lines: list[str],
    matchers: tuple[FunctionMatcher, ...] = FUNCTION_MATCHERS,
) -> list[FunctionSpan]:
    functions: list[FunctionSpan] = []
    for index, line in enumerate(lines):
        name = match_function_name(line, matchers)
        if name is None:
            continue
        functions.append(FunctionSpan(name=name, start=index, end=find_function_end(lines, index)))
    return functions
