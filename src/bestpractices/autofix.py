from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from bestpractices.patterns import leading_whitespace
from bestpractices.rules.functions import FunctionSpan

logger = logging.getLogger(__name__)

PLACEHOLDER_FIX = "Added placeholder comment"


@dataclass(frozen=True, slots=True)
class CommentInsertion:
    """
    A placeholder comment to insert directly above `line` (1-based, in the
    original line numbering).
    """

    line: int
    function_name: str
    content: str


def placeholder_comment(function_name: str) -> str:
    return f"// {function_name} - Add description here"


def plan_comment_insertion(lines: list[str], function: FunctionSpan) -> CommentInsertion:
    target = lines[function.start]
    # Lines are split on "\n"; a trailing "\r" marks a CRLF file.
    line_ending = "\r" if target.endswith("\r") else ""
    return CommentInsertion(
        line=function.start + 1,
        function_name=function.name,
        content=leading_whitespace(target) + placeholder_comment(function.name) + line_ending,
    )


def apply_insertions(lines: list[str], insertions: Iterable[CommentInsertion]) -> list[str]:
    """
    Return a new line list with every insertion placed above its target line.

    Targets refer to the original numbering, so applying several insertions
    never shifts a later one onto the wrong line.
    """

    by_line: dict[int, list[str]] = {}
    for insertion in insertions:
        by_line.setdefault(insertion.line, []).append(insertion.content)

    updated: list[str] = []
    for index, line in enumerate(lines, start=1):
        updated.extend(by_line.get(index, ()))
        updated.append(line)
    return updated


def rewrite_file(path: Path, lines: list[str]) -> None:
    """Write the whole merged line list back to `path`."""

    path.write_text("\n".join(lines), encoding="utf-8", newline="")
    logger.debug("rewrote %s", path)
